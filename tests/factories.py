"""Objets de test : stockage factice et fabriques de documents."""

from datetime import datetime
from typing import BinaryIO, Dict, List, Optional

from sqlmodel import Session

from onair.core.config import jwt_settings
from onair.core.errors import StorageError
from onair.db.models.episodes import Episode
from onair.db.models.posts import Post
from onair.db.models.shows import Show
from onair.db.models.users import User
from onair.security.password import hash_password
from onair.security.tokens import create_access_token
from onair.storage.base import PresignedUpload


class FakeObjectStore:
    """Stockage en mémoire : enregistre signatures, uploads et suppressions."""

    name = "fake"

    def __init__(self):
        self.signed: List[str] = []
        self.deleted: List[str] = []
        self.objects: Dict[str, bytes] = {}
        self.fail_sign = False
        self.fail_delete = False

    def sign_upload(self, key: str, *, expires_in: int, content_type: Optional[str] = None) -> PresignedUpload:
        if self.fail_sign:
            raise StorageError("signer unavailable")
        self.signed.append(key)
        return PresignedUpload(url=f"https://storage.test/{key}?X-Amz-Expires={expires_in}", method="PUT")

    def delete_object(self, key: str) -> None:
        if self.fail_delete:
            raise StorageError("delete refused")
        self.deleted.append(key)
        self.objects.pop(key, None)

    def upload_fileobj(self, key: str, fileobj: BinaryIO, content_type: str) -> None:
        self.objects[key] = fileobj.read()

    def public_url(self, key: str) -> str:
        return f"https://cdn.test/{key}"


# -----------------------------
# Users
# -----------------------------
def make_user(
    session: Session,
    *,
    email: str,
    role: str = "artist",
    password: str = "secret123",
    verified: bool = True,
    **extra,
) -> User:
    user = User(
        email=email,
        hashed_password=hash_password(password),
        name=email.split("@")[0].title(),
        role=role,
        email_verified=verified,
        **extra,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role, settings=jwt_settings)
    return {"Authorization": f"Bearer {token}"}


# -----------------------------
# Documents
# -----------------------------
def make_show(session: Session, *, owner: Optional[User], title: str = "Nuits Electro", **fields) -> Show:
    data = dict(
        title=title,
        slug=title.lower().replace(" ", "-"),
        description="Electro live",
        artist_name=owner.artist_name if owner and owner.artist_name else "Crew",
        request_status="approved",
        status="active",
        created_by=owner.id if owner else None,
    )
    data.update(fields)
    show = Show(**data)
    session.add(show)
    session.commit()
    session.refresh(show)
    return show


def make_episode(session: Session, *, show: Show, title: str = "Episode 1", **fields) -> Episode:
    data = dict(
        show_id=show.id,
        title=title,
        air_date=datetime(2024, 5, 1, 20, 0),
        created_by=show.created_by,
    )
    data.update(fields)
    episode = Episode(**data)
    session.add(episode)
    session.commit()
    session.refresh(episode)
    return episode


def make_post(session: Session, *, author: User, title: str = "Hello", **fields) -> Post:
    data = dict(title=title, slug=title.lower().replace(" ", "-"), content="Body", author_id=author.id)
    data.update(fields)
    post = Post(**data)
    session.add(post)
    session.commit()
    session.refresh(post)
    return post
