"""
Bootstrap des tests
- Variables d'environnement posées AVANT l'import de onair (settings lus à l'import)
- Base SQLite en mémoire partagée (StaticPool), recréée à chaque test
- Stockage objet factice qui enregistre les appels ; emails en mémoire (ConsoleTransport)
"""

import os
import tempfile

os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="onair-media-")
os.environ["EMAIL_BACKEND"] = "console"
os.environ["USE_SENDGRID"] = "false"
os.environ.pop("SENDGRID_API_KEY", None)
os.environ.pop("MIXCLOUD_ACCESS_TOKEN", None)
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from onair.db.session import get_session
from onair.features.notifications.services import NotificationSender
from onair.features.notifications.transports import ConsoleTransport
from onair.main import create_app

from factories import FakeObjectStore, auth_headers, make_episode, make_show, make_user


# -----------------------------
# DB
# -----------------------------
@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


# -----------------------------
# App
# -----------------------------
@pytest.fixture()
def store():
    return FakeObjectStore()


@pytest.fixture()
def outbox():
    return ConsoleTransport()


@pytest.fixture()
def notifier(outbox):
    return NotificationSender(
        transport=outbox,
        from_email="noreply@onair.test",
        from_name="OnAir Test",
        frontend_url="http://front.test",
        admin_email="admin-inbox@onair.test",
    )


@pytest.fixture()
def app(engine, store, notifier):
    app = create_app(object_store=store, notifier=notifier)

    def _session_override():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _session_override
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    return TestClient(app)


# -----------------------------
# Users / documents
# -----------------------------
@pytest.fixture()
def admin(session):
    return make_user(session, email="admin@onair.test", role="admin")


@pytest.fixture()
def artist(session):
    return make_user(session, email="nina@onair.test", artist_name="DJ Nina")


@pytest.fixture()
def other_artist(session):
    return make_user(session, email="bob@onair.test", artist_name="Bob")


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture()
def artist_headers(artist):
    return auth_headers(artist)


@pytest.fixture()
def other_headers(other_artist):
    return auth_headers(other_artist)


@pytest.fixture()
def show(session, artist):
    return make_show(session, owner=artist)


@pytest.fixture()
def episode(session, show):
    return make_episode(session, show=show)
