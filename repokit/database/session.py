"""
Database Session Management
============================

Handles database connections and session lifecycle.
"""

import os
from contextlib import contextmanager
from typing import Generator, Optional
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from repokit.config import settings


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create and configure the database engine.

    Args:
        database_url: Engine URL; defaults to ``settings.database_url``

    Example:
        engine = create_db_engine("sqlite://")  # in-memory, shared pool
    """
    database_url = database_url or settings.database_url

    # SQLite-specific configuration
    if database_url.startswith("sqlite"):
        # Ensure data directory exists
        if ":///" in database_url:
            db_path = database_url.split(":///")[1]
            if not db_path.startswith(":memory:"):
                db_dir = os.path.dirname(db_path)
                if db_dir and not os.path.exists(db_dir):
                    os.makedirs(db_dir, exist_ok=True)

        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=settings.app_debug
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    else:
        engine = create_engine(database_url, echo=settings.app_debug)

    return engine


def create_session_factory(engine_instance: Engine) -> sessionmaker:
    """Build a session factory bound to ``engine_instance``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine_instance)


# Create global engine and session factory
engine = create_db_engine()
SessionLocal = create_session_factory(engine)


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_db_context() as db:
            users = UserRepository(db)
            users.create({"name": "ada"})
        # committed here, rolled back if the block raised
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency-injection style session generator.

    The caller owns the transaction; the session is always closed.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_all_tables(engine_instance: Optional[Engine] = None) -> None:
    """Create all tables in the database."""
    from repokit.models.base import Base

    if engine_instance is None:
        engine_instance = engine

    Base.metadata.create_all(bind=engine_instance)


def drop_all_tables(engine_instance: Optional[Engine] = None) -> None:
    """Drop all tables in the database."""
    from repokit.models.base import Base

    if engine_instance is None:
        engine_instance = engine

    Base.metadata.drop_all(bind=engine_instance)
