"""
Pytest configuration and fixtures

Every test gets its own in-memory SQLite database, so nothing leaks
between tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.database import build_engine, create_tables, get_db
from app.main import app
from app.models import Activity, User, UserRole
from app.services.auth_service import create_access_token


@pytest.fixture
def engine():
    """In-memory database shared by every session of one test."""
    engine = build_engine("sqlite://")
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


def _create_user(db_session, name, role=UserRole.USER, **kwargs):
    user = User(name=name, email=f"{name.lower()}@example.com", role=role.value, **kwargs)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_user(db_session):
    return _create_user(db_session, "Runner")


@pytest.fixture
def other_user(db_session):
    return _create_user(db_session, "Walker")


@pytest.fixture
def admin_user(db_session):
    return _create_user(db_session, "Admin", role=UserRole.ADMIN)


@pytest.fixture
def make_activity(db_session):
    """Factory storing an activity for a user."""
    counter = {"next_id": 1000}

    def _make(user, date, distance, pace=None, activity_type="Run", activity_id=None, **kwargs):
        if activity_id is None:
            counter["next_id"] += 1
            activity_id = counter["next_id"]
        if isinstance(date, str):
            date = datetime.fromisoformat(date)
        activity = Activity(
            id=activity_id,
            user_id=user.id,
            name=kwargs.pop("name", f"{activity_type} {activity_id}"),
            activity_type=activity_type,
            date=date,
            distance=distance,
            duration=kwargs.pop("duration", distance * (pace or 10.0)),
            pace=pace,
            **kwargs,
        )
        db_session.add(activity)
        db_session.commit()
        return activity

    return _make


@pytest.fixture
def client(session_factory):
    """Test client whose requests use the per-test database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def user_headers(test_user):
    return auth_header(test_user)


@pytest.fixture
def admin_headers(admin_user):
    return auth_header(admin_user)
