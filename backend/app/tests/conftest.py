"""
Shared fixtures: a throwaway SQLite database recreated for every test.
"""
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="focus-journal-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient
from app import models  # noqa: F401
from app.core.security import create_access_token, get_password_hash
from app.core.time_window import cooldown_bucket
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.main import app


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make_user(email="alice@focusjournal.io", password="password123"):
        user = models.User(email=email, hashed_password=get_password_hash(password))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_entry(db):
    """Insert an entry row directly, bypassing the creation pipeline."""
    def _make_entry(user_id, created_at, task="Deep work block", mood=3, deleted_at=None):
        entry = models.Entry(
            user_id=user_id,
            mood=mood,
            task=task,
            cooldown_bucket=None if deleted_at else cooldown_bucket(created_at),
            created_at=created_at,
            updated_at=created_at,
            deleted_at=deleted_at
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    return _make_entry


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
