"""Core constants, errors and logging helpers."""

from repokit.core.constants import LifecycleEvent, SortDirection
from repokit.core.exceptions import (
    RepositoryError,
    RepositoryMethodError,
    ResourceDeleteError,
    ResourceNotFoundError,
    ResourceQueryError,
    ResourceStoreError,
    ResourceUpdateError,
)
from repokit.core.logging import get_logger

__all__ = [
    "LifecycleEvent",
    "SortDirection",
    "RepositoryError",
    "RepositoryMethodError",
    "ResourceDeleteError",
    "ResourceNotFoundError",
    "ResourceQueryError",
    "ResourceStoreError",
    "ResourceUpdateError",
    "get_logger",
]
