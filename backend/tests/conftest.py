"""Pytest fixtures: per-test SQLite database and upload directory."""
import os

# The application engine is never used by tests; keep it off disk.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from suivi.config import settings
from suivi.database import Base, configure_sqlite_connection, get_db
from suivi.deps import get_storage
from suivi.main import app
from suivi.models.user import User, Role
from suivi.security import create_access_token, hash_password
from suivi.storage import LocalFileStorage

# Import all models so they register with Base.metadata
from suivi.models.record import ChangeRecord          # noqa: F401
from suivi.models.attachment import Attachment        # noqa: F401
from suivi.models.purchase import PurchaseEntry       # noqa: F401


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """bcrypt's minimum cost keeps the suite fast."""
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    event.listen(engine, "connect", configure_sqlite_connection)

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session for direct assertions."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def storage(tmp_path):
    return LocalFileStorage(tmp_path / "uploads")


@pytest.fixture(scope="function")
def client(db_engine, storage):
    """FastAPI TestClient with the database and storage dependencies overridden."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    return create_test_user(db, login="admin", password="admin123", role=Role.admin,
                            display_name="Administrateur")


@pytest.fixture
def editor(db):
    return create_test_user(db, login="editeur", password="editeur123", role=Role.editor,
                            display_name="Éditeur Test")


@pytest.fixture
def reader(db):
    return create_test_user(db, login="lecteur", password="lecteur123", role=Role.reader,
                            display_name="Lecteur Test")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def create_test_user(db, login: str = "user", password: str = "secret", role: Role = Role.reader,
                     display_name: str = "Test User", active: bool = True) -> User:
    """Insert a user straight into the database and return it."""
    user = User(
        login=login,
        password_hash=hash_password(password),
        display_name=display_name,
        role=role,
        active=active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    """Bearer header for ``user`` without going through /login."""
    token = create_access_token(user.id, user.login, user.role.value)
    return {"Authorization": f"Bearer {token}"}


def create_test_record(client: TestClient, headers: dict, reference: str = "COU.001", **fields) -> dict:
    """Helper: POST /api/records and return response JSON."""
    payload = {
        "reference": reference,
        "product_line": "COUPE-FEU",
        "model": "CF30",
        "title": "Modification joint intumescent",
    }
    payload.update(fields)
    resp = client.post("/api/records/", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def failing_commit(error: Exception):
    """Replacement for ``Session.commit`` that always raises ``error``."""

    def _commit(self):
        raise error

    return _commit
