"""
Query layer: the SQLAlchemy-backed builder and the relay that wraps it.
"""

from repokit.query.builder import Builder
from repokit.query.clauses import JoinClause, primary_key_name
from repokit.query.magic import QueryMagic
from repokit.query.pagination import Page
from repokit.query.relay import QueryRelay

__all__ = [
    "Builder",
    "JoinClause",
    "Page",
    "QueryMagic",
    "QueryRelay",
    "primary_key_name",
]
