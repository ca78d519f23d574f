import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./clubdocs_test.db")
os.environ.setdefault("STORAGE_BACKEND", "simulated")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from clubdocs import models  # noqa: F401
from clubdocs.database import Base, build_engine, get_db, get_session_factory
from clubdocs.main import app
from clubdocs.models.athlete import Athlete
from clubdocs.models.user import User, UserRole
from clubdocs.providers import SimulatedStorageProvider, get_storage_provider
from clubdocs.services.auth import AuthService
from clubdocs.services.documents import DocumentRepository


@pytest.fixture
def engine(tmp_path):
    # A file database per test so bulk-upload worker threads get their own connections.
    engine = build_engine(f"sqlite:///{tmp_path / 'clubdocs.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def repository(db):
    return DocumentRepository(db)


@pytest.fixture
def storage():
    return SimulatedStorageProvider()


@pytest.fixture
def client(session_factory, storage):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_storage_provider] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db, email, role):
    user = User(
        email=email,
        password_hash=AuthService.get_password_hash("password123"),
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _make_athlete(db, first_name, last_name, email=None):
    athlete = Athlete(first_name=first_name, last_name=last_name, email=email)
    db.add(athlete)
    db.commit()
    db.refresh(athlete)
    return athlete


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@club.test", UserRole.ADMIN)


@pytest.fixture
def coach(db):
    return _make_user(db, "coach@club.test", UserRole.COACH)


@pytest.fixture
def athlete(db):
    return _make_athlete(db, "Lea", "Martin", email="lea@club.test")


@pytest.fixture
def athlete_user(db, athlete):
    return _make_user(db, athlete.email, UserRole.ATHLETE)


@pytest.fixture
def other_athlete(db):
    return _make_athlete(db, "Hugo", "Bernard", email="hugo@club.test")


@pytest.fixture
def other_athlete_user(db, other_athlete):
    return _make_user(db, other_athlete.email, UserRole.ATHLETE)


@pytest.fixture
def outsider(db):
    """An athlete-role account with no athlete profile."""
    return _make_user(db, "parent@club.test", UserRole.ATHLETE)


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {AuthService.create_token_for_user(user)}"}

    return _headers
