"""
➡️ But : Configurer la base et gérer les sessions de base de données.

engine : connexion à la base (sqlite:///onair.db par défaut, toute URL SQLAlchemy acceptée).

init_db() : crée les tables à partir des modèles SQLModel.

get_session() : dépendance FastAPI qui ouvre une session par requête, puis la ferme proprement.

🔹 Avantages :

Un seul endroit pour gérer les connexions DB.

Réutilisable par injection (Depends(get_session)), remplaçable dans les tests.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

# Import de tous les modèles pour que create_all connaisse les tables
from onair.db.models.assets import Asset, OrphanedObject  # noqa: F401
from onair.db.models.users import User  # noqa: F401
from onair.db.models.refresh_tokens import RefreshToken  # noqa: F401
from onair.db.models.shows import Show  # noqa: F401
from onair.db.models.episodes import Episode  # noqa: F401
from onair.db.models.posts import Post  # noqa: F401

from onair.core.config import settings

logger = logging.getLogger(__name__)


def _build_engine() -> Engine:
    url = settings.DATABASE_URL
    assert url, "DATABASE_URL must be set"

    is_sqlite = url.startswith("sqlite:")

    connect_args: Dict[str, Any] = {}
    if is_sqlite:
        # Requis pour SQLite quand utilisé dans un serveur (multi-threads)
        connect_args["check_same_thread"] = False

    return create_engine(
        url,
        echo=False,
        connect_args=connect_args,
        pool_pre_ping=not is_sqlite,
    )


engine: Engine = _build_engine()


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Crée les tables si elles n'existent pas.
    En prod avec Alembic, préfère des migrations.
    """
    target = bind or engine
    SQLModel.metadata.create_all(target)
    logger.info("Database ready (%s)", target.url.render_as_string(hide_password=True))


def get_session():
    """
    Dépendance FastAPI : fournit une session par requête.
    Utilisation :
        def route(..., session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
