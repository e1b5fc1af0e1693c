"""Shared fixtures: an in-memory database per test and a client bound to it."""
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment BEFORE importing app modules
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['JWT_SECRET_KEY'] = 'test-secret'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ.setdefault('DELETE_ALLOWED_ROLES', 'mentor,admin')

from userapi.database import drop_db, get_db, init_db  # noqa: E402
from userapi.main import app  # noqa: E402
from userapi.services import user_store  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    init_db(engine)
    try:
        yield engine
    finally:
        drop_db(engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def existing_user(db):
    """A mentor created straight through the store, like a seeded account."""
    return user_store.create_user(db, {
        'name': 'John',
        'username': 'JohnSmith',
        'email': 'johnsmith@example.com',
        'password': 'password',
        'role': 'mentor',
    })
