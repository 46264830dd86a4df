from pathlib import Path
from typing import Any, Dict, List

import yaml
from sqlmodel import Session, select

from onair.db.models.posts import Post
from onair.db.models.shows import Show
from onair.db.models.users import User
from onair.db.models.base import utcnow
from onair.security.password import hash_password
from onair.utils.slugs import slugify

DEFAULT_SEED_PATH = Path(__file__).with_name("seed_data.yaml")


# -----------------------------
# YAML loader
# -----------------------------
def load_seed_yaml(seed_path: str | Path) -> Dict[str, Any]:
    path = Path(seed_path)
    if not path.exists():
        raise FileNotFoundError(f"Seed YAML introuvable: {path}")

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Le YAML de seed doit contenir un objet racine (mapping).")
    return data


def _build_user_key_maps(session: Session, data: Dict[str, Any]) -> Dict[str, int]:
    """user key (YAML) -> User.id, via l'email."""
    email_to_id = {u.email: u.id for u in session.exec(select(User)).all()}
    return {
        u["key"]: email_to_id[u["email"].lower()]
        for u in data.get("users", [])
        if "key" in u and u["email"].lower() in email_to_id
    }


# -----------------------------
# Seed Users
# -----------------------------
def seed_users(session: Session, data: Dict[str, Any]) -> None:
    if session.exec(select(User)).first():
        print("ℹ️ Les utilisateurs existent déjà, aucune insertion effectuée.")
        return

    users: List[Dict[str, Any]] = data.get("users", [])
    if not users:
        print("⚠️ Aucun utilisateur dans le YAML (clé 'users').")
        return

    session.add_all([
        User(
            email=u["email"].lower(),
            hashed_password=hash_password(u["password"]),
            name=u["name"],
            artist_name=u.get("artist_name"),
            role=u.get("role", "artist"),
            email_verified=True,
        )
        for u in users
    ])
    session.commit()
    print(f"✅ {len(users)} utilisateurs insérés.")


# -----------------------------
# Seed Shows
# -----------------------------
def seed_shows(session: Session, data: Dict[str, Any]) -> None:
    if session.exec(select(Show)).first():
        print("ℹ️ Les shows existent déjà, aucune insertion effectuée.")
        return

    shows: List[Dict[str, Any]] = data.get("shows", [])
    if not shows:
        print("⚠️ Aucun show dans le YAML (clé 'shows').")
        return

    user_ids = _build_user_key_maps(session, data)
    objs: List[Show] = []
    for s in shows:
        owner_key = s.get("owner_key")
        if owner_key and owner_key not in user_ids:
            raise ValueError(f"owner_key '{owner_key}' inconnu pour le show '{s['title']}'.")
        objs.append(
            Show(
                title=s["title"],
                slug=slugify(s["title"]),
                description=s.get("description", ""),
                artist_name=s["artist_name"],
                genres=s.get("genres", []),
                tags=s.get("tags", []),
                day_of_week=s.get("day_of_week"),
                time_slot=s.get("time_slot"),
                frequency=s.get("frequency", "irregular"),
                request_status=s.get("request_status", "approved"),
                status=s.get("status", "active"),
                featured=bool(s.get("featured", False)),
                created_by=user_ids.get(owner_key) if owner_key else None,
            )
        )

    session.add_all(objs)
    session.commit()
    print(f"✅ {len(objs)} shows insérés.")


# -----------------------------
# Seed Posts
# -----------------------------
def seed_posts(session: Session, data: Dict[str, Any]) -> None:
    if session.exec(select(Post)).first():
        print("ℹ️ Les posts existent déjà, aucune insertion effectuée.")
        return

    posts: List[Dict[str, Any]] = data.get("posts", [])
    if not posts:
        print("⚠️ Aucun post dans le YAML (clé 'posts').")
        return

    user_ids = _build_user_key_maps(session, data)
    objs: List[Post] = []
    for p in posts:
        author_id = user_ids.get(p["author_key"])
        if author_id is None:
            raise ValueError(f"author_key '{p['author_key']}' inconnu pour le post '{p['title']}'.")
        status = p.get("status", "draft")
        objs.append(
            Post(
                title=p["title"],
                slug=slugify(p["title"]),
                content=p["content"],
                excerpt=p.get("excerpt"),
                category=p.get("category", "news"),
                status=status,
                featured=bool(p.get("featured", False)),
                author_id=author_id,
                published_at=utcnow() if status == "published" else None,
            )
        )

    session.add_all(objs)
    session.commit()
    print(f"✅ {len(objs)} posts insérés.")


def seed_all(session: Session, seed_path: str | Path = DEFAULT_SEED_PATH) -> None:
    data = load_seed_yaml(seed_path)
    seed_users(session, data)
    seed_shows(session, data)
    seed_posts(session, data)
