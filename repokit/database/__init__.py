"""Database package."""

from repokit.database.session import (
    engine,
    SessionLocal,
    create_db_engine,
    create_session_factory,
    get_db,
    get_db_context,
    create_all_tables,
    drop_all_tables,
)

__all__ = [
    "engine",
    "SessionLocal",
    "create_db_engine",
    "create_session_factory",
    "get_db",
    "get_db_context",
    "create_all_tables",
    "drop_all_tables",
]
