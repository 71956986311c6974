"""
Shared fixtures: an in-memory SQLite database per test, seeded users and
an HTTP client wired to the same session.
"""
import os
from datetime import timedelta

# Set environment variables before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from inkhall.core.security import get_password_hash
from inkhall.core.timeutils import utcnow
from inkhall.db.base import Base
from inkhall.db.session import get_db
from inkhall.main import app
from tests.factories import make_course, make_user


@pytest.fixture(scope="function")
def engine():
    # StaticPool: 所有连接共享同一个内存数据库
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    # not entered as a context manager, so the startup create_all is skipped
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db_session):
    return make_user(db_session, email="admin@inkhall.com", role="admin", name="Admin")


@pytest.fixture
def teacher(db_session):
    return make_user(db_session, email="wang@inkhall.com", role="teacher", name="Teacher Wang")


@pytest.fixture
def other_teacher(db_session):
    return make_user(db_session, email="li@inkhall.com", role="teacher", name="Teacher Li")


@pytest.fixture
def student(db_session):
    return make_user(db_session, email="zhang@inkhall.com", role="student", name="Student Zhang")


@pytest.fixture
def other_student(db_session):
    return make_user(db_session, email="chen@inkhall.com", role="student", name="Student Chen")


@pytest.fixture
def real_password_user(db_session):
    """A student with a real bcrypt hash, for login tests."""
    return make_user(
        db_session,
        email="login@inkhall.com",
        role="student",
        password_hash=get_password_hash("secret123"),
    )


@pytest.fixture
def tomorrow():
    """Tomorrow 10:00 UTC, a safe future start time."""
    base = utcnow() + timedelta(days=1)
    return base.replace(hour=10, minute=0, second=0, microsecond=0)


@pytest.fixture
def course(db_session, teacher, tomorrow):
    return make_course(db_session, teacher=teacher, start=tomorrow)
