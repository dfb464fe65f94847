"""
Repository error taxonomy.

Every failure crossing the data-access boundary is mapped to one of these
kinds. The original exception stays reachable as ``__cause__``.
"""

from typing import Optional


class RepositoryError(Exception):
    """Base exception for repository operations."""

    def __init__(
        self,
        message: str = "",
        entity_type: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        self.entity_type = entity_type
        self.operation = operation
        super().__init__(message)


class ResourceStoreError(RepositoryError):
    """Raised when ``create`` fails."""


class ResourceUpdateError(RepositoryError):
    """Raised when ``update`` fails to persist."""


class ResourceDeleteError(RepositoryError):
    """Raised when a single or bulk delete fails."""


class ResourceQueryError(RepositoryError):
    """Raised when a read, aggregate or column operation fails."""


class ResourceNotFoundError(RepositoryError):
    """
    Raised by the ``..._or_fail`` lookups when nothing matched.

    Signals absence, not failure, so it never carries a cause.
    """

    def __init__(
        self,
        entity_type: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        message = f"{entity_type or 'Resource'} not found"
        super().__init__(message, entity_type=entity_type, operation=operation)


class RepositoryMethodError(RepositoryError, AttributeError):
    """Raised when a name is unknown to both the repository and its relay."""

    def __init__(self, repository: str, method: str) -> None:
        super().__init__(
            f"Call to undefined method {repository}.{method}()",
            entity_type=repository,
            operation=method,
        )
        self.repository = repository
        self.method = method
