"""
repokit
=======

Repository pattern over SQLAlchemy with a chainable query relay.

Usage:
    from repokit import Repository

    class UserRepository(Repository):
        model_class = User
        fillable = ("name", "email")

    with get_db_context() as db:
        users = UserRepository(db)
        users.where("status", 1).order_by("id").get()
"""

from repokit.config import Settings, get_settings, settings
from repokit.core import (
    LifecycleEvent,
    RepositoryError,
    RepositoryMethodError,
    ResourceDeleteError,
    ResourceNotFoundError,
    ResourceQueryError,
    ResourceStoreError,
    ResourceUpdateError,
    SortDirection,
)
from repokit.events import EventBus, RepositoryEvent, get_event_bus
from repokit.models import Base, BaseModel, ModelHandle
from repokit.query import Builder, JoinClause, Page, QueryMagic, QueryRelay
from repokit.repositories import Repository

__version__ = "0.1.0"

__all__ = [
    "Base",
    "BaseModel",
    "Builder",
    "EventBus",
    "JoinClause",
    "LifecycleEvent",
    "ModelHandle",
    "Page",
    "QueryMagic",
    "QueryRelay",
    "Repository",
    "RepositoryError",
    "RepositoryEvent",
    "RepositoryMethodError",
    "ResourceDeleteError",
    "ResourceNotFoundError",
    "ResourceQueryError",
    "ResourceStoreError",
    "ResourceUpdateError",
    "Settings",
    "SortDirection",
    "get_event_bus",
    "get_settings",
    "settings",
]
