"""Base class for repository lifecycle events."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repokit.repositories.base import Repository


class RepositoryEvent:
    """
    Event published around a repository mutation.

    Subclasses are registered in a repository's ``events`` mapping and are
    constructed with the repository that fired them:

        class UserCreating(RepositoryEvent):
            pass

        class UserRepository(Repository):
            model_class = User
            events = {"creating": UserCreating}
    """

    def __init__(self, repository: "Repository"):
        self.repository = repository

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(repository={type(self.repository).__name__})>"
