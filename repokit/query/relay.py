"""
Query Relay
===========

Chainable proxy between a repository and its query builder.

The relay only accumulates: every builder call is applied to the wrapped
builder and the relay itself is returned, so calls compose left to right
in the order they are written. Execution is not the relay's job; the owning
repository takes the builder through ``get_query()`` and runs the terminal
operation, then swaps in a fresh relay.

Example:
    relay = QueryRelay(Builder(db, User), repo)
    relay.where("status", 1).where("age", ">", 18).order_by("id")
    users = relay.get_query().get()
"""

from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Sequence

from repokit.core.constants import DEFAULT_SORT
from repokit.query.builder import Builder
from repokit.query.clauses import MISSING
from repokit.query.magic import QueryMagic

if TYPE_CHECKING:
    from repokit.repositories.base import Repository


class QueryRelay:
    """
    Stateful proxy over one Builder.

    Args:
        query: The builder predicates accumulate on
        repository: Owning repository (read-only back reference)
    """

    def __init__(self, query: Builder, repository: "Repository"):
        self._query = query
        self._repository = repository

    def __repr__(self) -> str:
        return f"<QueryRelay({self._query!r})>"

    # ========================================
    # Escape Hatch
    # ========================================

    def get_query(self) -> Builder:
        """Return the underlying builder for terminal execution."""
        return self._query

    def set_query(self, query: Builder) -> "QueryRelay":
        """Replace the builder, discarding every accumulated predicate."""
        self._query = query
        return self

    def get_repository(self) -> "Repository":
        return self._repository

    # ========================================
    # Selection
    # ========================================

    def select(self, *columns: Any) -> "QueryRelay":
        self._query.select(*columns)
        return self

    def select_raw(self, expression: str, bindings: Optional[dict] = None) -> "QueryRelay":
        self._query.select_raw(expression, bindings)
        return self

    def raw(self, sql: str) -> "QueryRelay":
        """Add ``sql`` verbatim to the selected columns."""
        self._query.select_raw(sql)
        return self

    def from_(self, table: Any) -> "QueryRelay":
        self._query.from_(table)
        return self

    def distinct(self) -> "QueryRelay":
        self._query.distinct()
        return self

    def skip(self, offset: int) -> "QueryRelay":
        self._query.skip(offset)
        return self

    def take(self, limit: int) -> "QueryRelay":
        self._query.take(limit)
        return self

    # ========================================
    # Grouping & Ordering
    # ========================================

    def group_by(self, *columns: Any) -> "QueryRelay":
        self._query.group_by(*columns)
        return self

    def group_by_array(self, columns: Iterable[Any]) -> "QueryRelay":
        self._query.group_by_array(columns)
        return self

    def order_by(self, column: Any, direction: str = DEFAULT_SORT) -> "QueryRelay":
        """Order by ``column``; descending unless told otherwise."""
        self._query.order_by(column, direction)
        return self

    def order_by_array(self, columns: Any) -> "QueryRelay":
        self._query.order_by_array(columns)
        return self

    # ========================================
    # Where Clauses
    # ========================================

    def where(self, column: Any, operator: Any = MISSING, value: Any = MISSING) -> "QueryRelay":
        self._query.where(column, operator, value)
        return self

    def or_where(self, column: Any, operator: Any = MISSING, value: Any = MISSING) -> "QueryRelay":
        self._query.or_where(column, operator, value)
        return self

    def where_closure(self, callback: Callable[[Builder], Any]) -> "QueryRelay":
        self._query.where_closure(callback)
        return self

    def or_where_closure(self, callback: Callable[[Builder], Any]) -> "QueryRelay":
        self._query.or_where_closure(callback)
        return self

    def where_array(self, conditions: Any) -> "QueryRelay":
        self._query.where_array(conditions)
        return self

    def where_between(self, column: Any, values: Iterable[Any]) -> "QueryRelay":
        self._query.where_between(column, values)
        return self

    def or_where_between(self, column: Any, values: Iterable[Any]) -> "QueryRelay":
        self._query.or_where_between(column, values)
        return self

    def where_not_between(self, column: Any, values: Iterable[Any]) -> "QueryRelay":
        self._query.where_not_between(column, values)
        return self

    def or_where_not_between(self, column: Any, values: Iterable[Any]) -> "QueryRelay":
        self._query.or_where_not_between(column, values)
        return self

    def where_raw(self, sql: str, bindings: Optional[dict] = None) -> "QueryRelay":
        self._query.where_raw(sql, bindings)
        return self

    def or_where_raw(self, sql: str, bindings: Optional[dict] = None) -> "QueryRelay":
        self._query.or_where_raw(sql, bindings)
        return self

    def where_exists(self, callback: Callable[[Any], Any]) -> "QueryRelay":
        self._query.where_exists(callback)
        return self

    def or_where_exists(self, callback: Callable[[Any], Any]) -> "QueryRelay":
        self._query.or_where_exists(callback)
        return self

    def where_not_exists(self, callback: Callable[[Any], Any]) -> "QueryRelay":
        self._query.where_not_exists(callback)
        return self

    def or_where_not_exists(self, callback: Callable[[Any], Any]) -> "QueryRelay":
        self._query.or_where_not_exists(callback)
        return self

    def where_in(self, column: Any, values: Any) -> "QueryRelay":
        self._query.where_in(column, values)
        return self

    def or_where_in(self, column: Any, values: Any) -> "QueryRelay":
        self._query.or_where_in(column, values)
        return self

    def where_not_in(self, column: Any, values: Any) -> "QueryRelay":
        self._query.where_not_in(column, values)
        return self

    def or_where_not_in(self, column: Any, values: Any) -> "QueryRelay":
        self._query.or_where_not_in(column, values)
        return self

    def where_null(self, column: Any) -> "QueryRelay":
        self._query.where_null(column)
        return self

    def or_where_null(self, column: Any) -> "QueryRelay":
        self._query.or_where_null(column)
        return self

    def where_not_null(self, column: Any) -> "QueryRelay":
        self._query.where_not_null(column)
        return self

    def or_where_not_null(self, column: Any) -> "QueryRelay":
        self._query.or_where_not_null(column)
        return self

    # ========================================
    # Joins
    # ========================================

    def join(self, table: Any, first: Any = None, operator: Any = "=", second: Any = MISSING) -> "QueryRelay":
        self._query.join(table, first, operator, second)
        return self

    def join_closure(self, table: Any, callback: Callable[[Any], Any]) -> "QueryRelay":
        self._query.join_closure(table, callback)
        return self

    def left_join(self, table: Any, first: Any = None, operator: Any = "=", second: Any = MISSING) -> "QueryRelay":
        self._query.left_join(table, first, operator, second)
        return self

    def left_join_closure(self, table: Any, callback: Callable[[Any], Any]) -> "QueryRelay":
        self._query.left_join_closure(table, callback)
        return self

    def right_join(self, table: Any, first: Any = None, operator: Any = "=", second: Any = MISSING) -> "QueryRelay":
        self._query.right_join(table, first, operator, second)
        return self

    def right_join_closure(self, table: Any, callback: Callable[[Any], Any]) -> "QueryRelay":
        self._query.right_join_closure(table, callback)
        return self

    # ========================================
    # Unions & Eager Loading
    # ========================================

    def union(self, other: Any, union_all: bool = True) -> "QueryRelay":
        """Union with another relay (or a bare builder)."""
        builder = other.get_query() if isinstance(other, QueryRelay) else other
        self._query.union(builder, union_all)
        return self

    def with_(self, relation: str) -> "QueryRelay":
        self._query.with_(relation)
        return self

    def with_array(self, relations: Iterable[str]) -> "QueryRelay":
        self._query.with_(*relations)
        return self

    def without(self, relation: str) -> "QueryRelay":
        self._query.without(relation)
        return self

    def without_array(self, relations: Iterable[str]) -> "QueryRelay":
        self._query.without(*relations)
        return self

    # ========================================
    # Conditional Application
    # ========================================

    def tap(self, callback: Callable[["QueryRelay"], Any]) -> "QueryRelay":
        """Hand the relay to ``callback`` for arbitrary builder calls."""
        callback(self)
        return self

    def magic(self, query_magic: QueryMagic) -> "QueryRelay":
        result = query_magic.magic(self)
        return result if isinstance(result, QueryRelay) else self

    def when_magic(self, query_magic: Optional[QueryMagic] = None) -> "QueryRelay":
        """Apply ``query_magic`` only when one was given."""
        if query_magic is None:
            return self
        return self.magic(query_magic)

    def when(
        self,
        condition: bool,
        true_callable: Callable[["QueryRelay"], Any],
        false_callable: Optional[Callable[["QueryRelay"], Any]] = None,
    ) -> "QueryRelay":
        """
        Apply ``true_callable`` when ``condition`` holds, else ``false_callable``.

        Example:
            repo.when(
                search is not None,
                lambda q: q.where("name", "like", f"%{search}%"),
            ).get()
        """
        if condition:
            true_callable(self)
        elif false_callable is not None:
            false_callable(self)
        return self

    def when_multiple(
        self,
        conditions: Sequence[bool],
        callables: Sequence[Callable[["QueryRelay"], Any]],
    ) -> "QueryRelay":
        """
        Pair conditions with callables by position and apply the true ones.

        Raises:
            ValueError: If the two sequences differ in length
        """
        if len(conditions) != len(callables):
            raise ValueError(
                f"when_multiple() got {len(conditions)} conditions for {len(callables)} callables"
            )
        for condition, callback in zip(conditions, callables):
            if condition:
                callback(self)
        return self
