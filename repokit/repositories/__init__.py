"""
Data access layer (Repository pattern).

Repositories handle all database queries,
isolating business logic from SQL.
"""

from repokit.repositories.base import Repository

__all__ = ["Repository"]
