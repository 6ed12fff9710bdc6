"""
ThesisHub - Test Configuration and Fixtures
"""
import os
import tempfile
from typing import Callable, Generator

# Set testing environment before the application modules read it
os.environ['DATA_DIR'] = tempfile.mkdtemp(prefix='thesis_hub_test_')
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app import app
from api.routes.auth import create_access_token
from core.database import get_db
from models.base import Base
from schemas.user import Actor, CreateUserRequest, User, UserRole
from utils.thesis_manager import ThesisManager
from utils.user_manager import UserManager


@pytest.fixture
def engine():
    """Fresh in-memory database per test; StaticPool keeps one shared connection."""
    test_engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    """Test client whose requests run against the per-test database"""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Create users with predictable credentials (password: '<username>-pw')"""
    manager = UserManager(db_session)

    def _make(username: str, role: UserRole = UserRole.STUDENT, **extra) -> User:
        return manager.create_user(
            CreateUserRequest(
                username=username,
                password=f'{username}-pw',
                email=f'{username}@university.edu',
                full_name=username.title(),
                role=role,
                **extra,
            )
        )

    return _make


def actor(user: User) -> Actor:
    return user.to_actor()


def auth_headers(user: User) -> dict:
    return {'Authorization': f'Bearer {create_access_token(user)}'}


@pytest.fixture
def faculty(make_user) -> User:
    """Owning (main) faculty member"""
    return make_user('prof_main', UserRole.FACULTY)


@pytest.fixture
def student(make_user) -> User:
    return make_user('alice', UserRole.STUDENT)


@pytest.fixture
def assigned_thesis(db_session, faculty, student):
    """A thesis owned by `faculty` and assigned to `student`"""
    manager = ThesisManager(db_session)
    thesis = manager.create_thesis(actor(faculty), 'Distributed Ledgers', 'Consensus under churn')
    return manager.assign_thesis(actor(faculty), thesis.id, student.id)
