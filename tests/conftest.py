"""
Pytest configuration and shared fixtures.

Every test gets its own in-memory SQLite database.
"""

import os

# Set environment BEFORE importing any repokit modules
os.environ.setdefault("REPOKIT_DATABASE_URL", "sqlite://")

import pytest

from repokit.database import create_all_tables, create_db_engine, create_session_factory, drop_all_tables
from repokit.events import EventBus

from tests.sample_models import GuardedUserRepository, Post, PostRepository, User, UserRepository


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database with every table created."""
    engine = create_db_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    drop_all_tables(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """Session bound to the in-memory database."""
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# Repository Fixtures
# =============================================================================


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def users(db, bus):
    return UserRepository(db, event_bus=bus)


@pytest.fixture
def guarded_users(db):
    return GuardedUserRepository(db)


@pytest.fixture
def posts(db):
    return PostRepository(db)


@pytest.fixture
def seeded(db):
    """
    Five users and three posts.

    ada(1, status=1, age=36)  bob(2, status=1, age=17)  cy(3, status=0, age=52)
    di(4, status=1, age=25)   ed(5, status=2, age=17)
    """
    people = [
        User(name="ada", email="ada@example.com", status=1, age=36),
        User(name="bob", email="bob@example.com", status=1, age=17),
        User(name="cy", email="cy@example.com", status=0, age=52),
        User(name="di", email=None, status=1, age=25),
        User(name="ed", email="ed@example.com", status=2, age=17),
    ]
    db.add_all(people)
    db.flush()
    db.add_all([
        Post(user_id=people[0].id, title="Engines", published=True),
        Post(user_id=people[0].id, title="Notes", published=False),
        Post(user_id=people[2].id, title="Letters", published=True),
    ])
    db.flush()
    return people
