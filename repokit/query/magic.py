"""
Reusable predicate bundles.

A QueryMagic packages a set of builder calls (a search form, a tenant
scope, a soft-delete filter) so it can be applied to any relay:

    class ActiveUsers(QueryMagic):
        def magic(self, query):
            return query.where("status", 1).where_not_null("verified_at")

    repo.when_magic(ActiveUsers()).get()
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repokit.query.relay import QueryRelay


class QueryMagic(ABC):
    """Base class for predicate bundles applied through ``QueryRelay.magic``."""

    @abstractmethod
    def magic(self, query: "QueryRelay") -> "QueryRelay":
        """Apply the bundle to ``query`` and return it."""
