"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- An in-memory SQLite container per test
- Seeding helpers for users and password resets
"""

import os

import pytest
from faker import Faker


# Set test environment variables BEFORE any package imports
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["AUTOCOMMIT"] = "true"
os.environ["DEFAULT_PER_PAGE"] = "15"

from orm_repositories.core.config import Settings  # noqa: E402
from orm_repositories.core.container import Container, set_container  # noqa: E402
from orm_repositories.core.database import create_db_engine, drop_db, init_db  # noqa: E402

from stubs import PasswordReset, User, UserRepository  # noqa: E402


@pytest.fixture(scope="function")
def container():
    """
    Provide a container on a fresh in-memory database.

    The container is also installed as the global one so
    Repository.instance() resolves against it.
    """
    settings = Settings(database_url="sqlite:///:memory:")
    engine = create_db_engine(settings.database_url)
    init_db(engine)

    container = Container(settings=settings, engine=engine)
    set_container(container)

    yield container

    set_container(None)
    container.remove_session()
    drop_db(engine)
    engine.dispose()


@pytest.fixture
def session(container):
    return container.session


@pytest.fixture
def repository(container):
    return UserRepository(container)


@pytest.fixture
def fake():
    return Faker()


@pytest.fixture
def make_users(session, fake):
    """
    Factory fixture: insert users directly through the session.

    Objects are expunged afterwards so repositories load fresh
    instances with nothing eager loaded.
    """

    def _make(count: int = 1, password: str = "secret") -> list[User]:
        users = [User(email=fake.unique.email(), password=password) for _ in range(count)]
        session.add_all(users)
        session.commit()
        session.expunge_all()
        return users

    return _make


@pytest.fixture
def make_resets(session, make_users):
    """Factory fixture: one user plus one password reset per count."""

    def _make(count: int = 1) -> list[PasswordReset]:
        users = make_users(count)
        resets = [
            PasswordReset(user_id=user.id, token=f"token-{user.id}")
            for user in users
        ]
        session.add_all(resets)
        session.commit()
        session.expunge_all()
        return resets

    return _make
