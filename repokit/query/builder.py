"""
Query builder over SQLAlchemy's ``Session.query()``.

The builder keeps every predicate, join, ordering and loader option in call
order and compiles them into a ``Query`` only when a terminal method runs.
Builder methods mutate the builder and return it; terminal methods execute.

Example:
    builder = Builder(db, User)
    adults = (
        builder.where("status", 1)
        .where("age", ">", 18)
        .order_by("name", "asc")
        .get()
    )
"""

from collections.abc import Iterable, Mapping
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from sqlalchemy import func, inspect, literal_column, not_, select, text
from sqlalchemy.orm import Query, Session, load_only, selectinload

from repokit.core.constants import ALL_COLUMNS, BOOLEAN_AND, BOOLEAN_OR, DEFAULT_SORT, SortDirection
from repokit.query.clauses import (
    MISSING,
    JoinClause,
    WhereGroup,
    compare,
    is_expression,
    primary_key_name,
    resolve_column,
    resolve_table,
)
from repokit.query.pagination import Page

INNER_JOIN = "inner"
LEFT_JOIN = "left"
RIGHT_JOIN = "right"


def _flatten(values: Tuple[Any, ...]) -> List[Any]:
    """Accept both ``f("a", "b")`` and ``f(["a", "b"])``."""
    flat: List[Any] = []
    for value in values:
        if isinstance(value, (list, tuple, set, frozenset)):
            flat.extend(value)
        else:
            flat.append(value)
    return flat


class Builder:
    """
    Chainable query builder for one mapped model.

    Args:
        session: Session used for execution
        model: Declarative model class the query selects
    """

    def __init__(self, session: Session, model: type):
        self.session = session
        self.model = model
        self._wheres = WhereGroup()
        self._joins: List[Tuple[str, Any, Any]] = []
        self._orders: List[Any] = []
        self._groups: List[Any] = []
        self._columns: List[Any] = []
        self._raw_columns: List[Any] = []
        self._eager: Dict[str, Any] = {}
        self._unions: List[Tuple["Builder", bool]] = []
        self._from: Any = None
        self._distinct = False
        self._offset: Optional[int] = None
        self._limit: Optional[int] = None

    def __repr__(self) -> str:
        return f"<Builder(model={self.model.__name__}, wheres={len(self._wheres)}, joins={len(self._joins)})>"

    @property
    def is_clean(self) -> bool:
        """True while nothing has been accumulated on this builder."""
        return not (
            len(self._wheres) or self._joins or self._orders or self._groups
            or self._columns or self._raw_columns or self._eager or self._unions
            or self._distinct or self._from is not None
            or self._offset is not None or self._limit is not None
        )

    @property
    def has_orders(self) -> bool:
        return bool(self._orders)

    @property
    def collapses_joins(self) -> bool:
        """True when joined rows are folded back to one row per entity."""
        return bool(self._joins) and not (self._raw_columns or self._groups)

    def _column(self, column: Any) -> Any:
        return resolve_column(self.model, column)

    def new_nested(self) -> "Builder":
        """Fresh builder for the same model, used for grouped predicates."""
        return type(self)(self.session, self.model)

    # ========================================
    # Selection
    # ========================================

    def select(self, *columns: Any) -> "Builder":
        """Load only the given mapped attributes; ``"*"`` keeps every column."""
        for column in _flatten(columns):
            if column == ALL_COLUMNS:
                continue
            self._columns.append(self._column(column))
        return self

    def select_raw(self, expression: str, bindings: Optional[Mapping] = None) -> "Builder":
        """
        Add a raw column expression; rows then come back as tuples.

        ``:name`` placeholders are filled from ``bindings`` and rendered as
        quoted literals for the session's dialect.

        Example:
            builder.select_raw("age * :factor AS scaled", {"factor": 2})
        """
        if bindings:
            clause = text(expression).bindparams(**bindings)
            dialect = self.session.get_bind().dialect
            expression = str(clause.compile(dialect=dialect, compile_kwargs={"literal_binds": True}))
        self._raw_columns.append(literal_column(expression))
        return self

    def from_(self, table: Any) -> "Builder":
        self._from = resolve_table(self.model, table)
        return self

    def distinct(self) -> "Builder":
        self._distinct = True
        return self

    def skip(self, offset: int) -> "Builder":
        if offset < 0:
            raise ValueError(f"Offset must be >= 0, got {offset}")
        self._offset = offset
        return self

    def take(self, limit: int) -> "Builder":
        if limit < 0:
            raise ValueError(f"Limit must be >= 0, got {limit}")
        self._limit = limit
        return self

    # ========================================
    # Grouping & Ordering
    # ========================================

    def group_by(self, *columns: Any) -> "Builder":
        self._groups.extend(self._column(column) for column in _flatten(columns))
        return self

    def group_by_array(self, columns: Iterable[Any]) -> "Builder":
        return self.group_by(*columns)

    def order_by(self, column: Any, direction: Union[str, SortDirection] = DEFAULT_SORT) -> "Builder":
        """
        Add an ORDER BY term. Direction defaults to descending.

        Raises:
            ValueError: If direction is not asc/desc
        """
        value = direction.value if isinstance(direction, SortDirection) else str(direction).lower()
        expression = self._column(column)
        if value == SortDirection.DESC.value:
            self._orders.append(expression.desc())
        elif value == SortDirection.ASC.value:
            self._orders.append(expression.asc())
        else:
            raise ValueError(f"Order direction must be 'asc' or 'desc', got {direction!r}")
        return self

    def order_by_array(self, columns: Union[Mapping, Iterable[Any]]) -> "Builder":
        """
        Add several ORDER BY terms.

        Accepts ``{"name": "asc", "id": "desc"}`` or a sequence of
        ``(column, direction)`` pairs and bare column names.
        """
        items = columns.items() if isinstance(columns, Mapping) else columns
        for item in items:
            if isinstance(item, tuple):
                self.order_by(*item)
            else:
                self.order_by(item)
        return self

    # ========================================
    # Where Clauses
    # ========================================

    def where(self, column: Any, operator: Any = MISSING, value: Any = MISSING, boolean: str = BOOLEAN_AND) -> "Builder":
        """
        Add a WHERE predicate.

        Forms:
            where("status", 1)              # status = 1
            where("age", ">", 18)           # age > 18
            where({"status": 1, "role": 2}) # same as where_array
            where(lambda q: q.where(...))   # nested group
            where(User.age > 18)            # ready-made expression
        """
        if isinstance(column, Mapping):
            return self._add_array(column.items(), boolean)
        if operator is MISSING:
            if is_expression(column):
                self._wheres.add(column, boolean)
                return self
            if callable(column):
                return self.where_closure(column, boolean)
            raise ValueError(f"where({column!r}) needs a value")
        if value is MISSING:
            operator, value = "=", operator
        self._wheres.add(compare(self._column(column), operator, value), boolean)
        return self

    def or_where(self, column: Any, operator: Any = MISSING, value: Any = MISSING) -> "Builder":
        return self.where(column, operator, value, BOOLEAN_OR)

    def where_closure(self, callback: Callable[["Builder"], Any], boolean: str = BOOLEAN_AND) -> "Builder":
        """Group the predicates added by ``callback`` in parentheses."""
        nested = self.new_nested()
        callback(nested)
        criterion = nested._wheres.compile()
        if criterion is not None:
            self._wheres.add(criterion, boolean)
        return self

    def or_where_closure(self, callback: Callable[["Builder"], Any]) -> "Builder":
        return self.where_closure(callback, BOOLEAN_OR)

    def where_array(self, conditions: Union[Mapping, Iterable[Tuple[Any, ...]]]) -> "Builder":
        """Add one predicate per mapping item or per argument tuple."""
        items = conditions.items() if isinstance(conditions, Mapping) else conditions
        return self._add_array(items, BOOLEAN_AND)

    def _add_array(self, items: Iterable[Tuple[Any, ...]], boolean: str) -> "Builder":
        nested = self.new_nested()
        for item in items:
            nested.where(*item)
        criterion = nested._wheres.compile()
        if criterion is not None:
            self._wheres.add(criterion, boolean)
        return self

    def where_between(self, column: Any, values: Iterable[Any], boolean: str = BOOLEAN_AND, negate: bool = False) -> "Builder":
        """
        Raises:
            ValueError: If ``values`` is not exactly a (low, high) pair
        """
        bounds = list(values)
        if len(bounds) != 2:
            raise ValueError(f"Between needs exactly two values, got {len(bounds)}")
        clause = self._column(column).between(bounds[0], bounds[1])
        self._wheres.add(not_(clause) if negate else clause, boolean)
        return self

    def or_where_between(self, column: Any, values: Iterable[Any]) -> "Builder":
        return self.where_between(column, values, BOOLEAN_OR)

    def where_not_between(self, column: Any, values: Iterable[Any]) -> "Builder":
        return self.where_between(column, values, BOOLEAN_AND, negate=True)

    def or_where_not_between(self, column: Any, values: Iterable[Any]) -> "Builder":
        return self.where_between(column, values, BOOLEAN_OR, negate=True)

    def where_raw(self, sql: str, bindings: Optional[Mapping] = None, boolean: str = BOOLEAN_AND) -> "Builder":
        """Raw SQL predicate with ``:name`` style bindings."""
        clause = text(sql)
        if bindings:
            clause = clause.bindparams(**bindings)
        self._wheres.add(clause, boolean)
        return self

    def or_where_raw(self, sql: str, bindings: Optional[Mapping] = None) -> "Builder":
        return self.where_raw(sql, bindings, BOOLEAN_OR)

    def where_exists(self, callback: Callable[[Any], Any], boolean: str = BOOLEAN_AND, negate: bool = False) -> "Builder":
        """
        EXISTS predicate.

        ``callback`` receives ``select(literal_column("1"))`` and returns the
        completed subquery:

            builder.where_exists(
                lambda q: q.select_from(Post.__table__).where(Post.user_id == User.id)
            )
        """
        subquery = callback(select(literal_column("1")))
        if subquery is None:
            raise ValueError("where_exists() callback must return the subquery")
        clause = subquery.exists()
        self._wheres.add(not_(clause) if negate else clause, boolean)
        return self

    def or_where_exists(self, callback: Callable[[Any], Any]) -> "Builder":
        return self.where_exists(callback, BOOLEAN_OR)

    def where_not_exists(self, callback: Callable[[Any], Any]) -> "Builder":
        return self.where_exists(callback, BOOLEAN_AND, negate=True)

    def or_where_not_exists(self, callback: Callable[[Any], Any]) -> "Builder":
        return self.where_exists(callback, BOOLEAN_OR, negate=True)

    def where_in(self, column: Any, values: Any, boolean: str = BOOLEAN_AND, negate: bool = False) -> "Builder":
        """IN predicate; ``values`` is an iterable or a subquery."""
        if not is_expression(values):
            values = list(values)
        expression = self._column(column)
        clause = expression.not_in(values) if negate else expression.in_(values)
        self._wheres.add(clause, boolean)
        return self

    def or_where_in(self, column: Any, values: Any) -> "Builder":
        return self.where_in(column, values, BOOLEAN_OR)

    def where_not_in(self, column: Any, values: Any) -> "Builder":
        return self.where_in(column, values, BOOLEAN_AND, negate=True)

    def or_where_not_in(self, column: Any, values: Any) -> "Builder":
        return self.where_in(column, values, BOOLEAN_OR, negate=True)

    def where_null(self, column: Any, boolean: str = BOOLEAN_AND, negate: bool = False) -> "Builder":
        expression = self._column(column)
        self._wheres.add(expression.is_not(None) if negate else expression.is_(None), boolean)
        return self

    def or_where_null(self, column: Any) -> "Builder":
        return self.where_null(column, BOOLEAN_OR)

    def where_not_null(self, column: Any) -> "Builder":
        return self.where_null(column, BOOLEAN_AND, negate=True)

    def or_where_not_null(self, column: Any) -> "Builder":
        return self.where_null(column, BOOLEAN_OR, negate=True)

    # ========================================
    # Joins
    # ========================================

    def join(self, table: Any, first: Any = None, operator: Any = "=", second: Any = MISSING, kind: str = INNER_JOIN) -> "Builder":
        """
        Join another table or mapped class.

        Forms:
            join(Post)                                  # ON inferred from foreign keys
            join("posts", "posts.user_id", "users.id")  # posts.user_id = users.id
            join("posts", "posts.score", ">", "users.level")
            join(Post, Post.user_id == User.id)         # ready-made ON clause
        """
        target = resolve_table(self.model, table)
        if first is None:
            onclause = None
        elif second is MISSING and is_expression(first) and operator == "=":
            onclause = first
        else:
            if second is MISSING:
                operator, second = "=", operator
            onclause = compare(self._column(first), operator, self._column(second))
        self._joins.append((kind, target, onclause))
        return self

    def left_join(self, table: Any, first: Any = None, operator: Any = "=", second: Any = MISSING) -> "Builder":
        return self.join(table, first, operator, second, kind=LEFT_JOIN)

    def right_join(self, table: Any, first: Any = None, operator: Any = "=", second: Any = MISSING) -> "Builder":
        """
        Right join, compiled as ``target LEFT OUTER JOIN model``.

        Right joins are applied before any other join.
        """
        return self.join(table, first, operator, second, kind=RIGHT_JOIN)

    def join_closure(self, table: Any, callback: Callable[[JoinClause], Any], kind: str = INNER_JOIN) -> "Builder":
        """Join whose ON conditions are collected by ``callback`` on a JoinClause."""
        target = resolve_table(self.model, table)
        clause = JoinClause(self.model, target)
        callback(clause)
        self._joins.append((kind, target, clause.compile()))
        return self

    def left_join_closure(self, table: Any, callback: Callable[[JoinClause], Any]) -> "Builder":
        return self.join_closure(table, callback, kind=LEFT_JOIN)

    def right_join_closure(self, table: Any, callback: Callable[[JoinClause], Any]) -> "Builder":
        return self.join_closure(table, callback, kind=RIGHT_JOIN)

    # ========================================
    # Unions & Eager Loading
    # ========================================

    def union(self, other: "Builder", union_all: bool = True) -> "Builder":
        self._unions.append((other, union_all))
        return self

    def with_(self, *relations: str) -> "Builder":
        """
        Eager-load relationships (``selectinload``).

        Dotted paths load nested relationships: ``with_("posts.comments")``.

        Raises:
            ValueError: If a path segment is not a relationship
        """
        for path in _flatten(relations):
            current = self.model
            loader = None
            for part in path.split("."):
                relationships = inspect(current).relationships
                if part not in relationships:
                    raise ValueError(f"{current.__name__} has no relationship {part!r}")
                attribute = getattr(current, part)
                loader = selectinload(attribute) if loader is None else loader.selectinload(attribute)
                current = relationships[part].mapper.class_
            self._eager[path] = loader
        return self

    def without(self, *relations: str) -> "Builder":
        for path in _flatten(relations):
            self._eager.pop(path, None)
        return self

    # ========================================
    # Compilation
    # ========================================

    def to_query(self, loaders: bool = True, ordered: bool = True, bounded: bool = True, collapse: bool = True) -> Query:
        """
        Compile the accumulated state into a SQLAlchemy ``Query``.

        With unions, ordering and bounds apply to the combined result.

        Args:
            loaders: Apply load_only / eager loading options
            ordered: Apply ORDER BY terms
            bounded: Apply OFFSET / LIMIT
            collapse: Select DISTINCT when joins would repeat entities
        """
        query = self.session.query(self.model, *self._raw_columns)

        if self._from is not None:
            query = query.select_from(self._from)

        # Right joins swap the left side of the FROM clause, so they go first.
        for kind, target, onclause in sorted(self._joins, key=lambda join: join[0] != RIGHT_JOIN):
            if kind == RIGHT_JOIN:
                query = query.select_from(target).outerjoin(self.model, onclause)
            elif kind == LEFT_JOIN:
                query = query.outerjoin(target, onclause) if onclause is not None else query.outerjoin(target)
            else:
                query = query.join(target, onclause) if onclause is not None else query.join(target)

        criterion = self._wheres.compile()
        if criterion is not None:
            query = query.filter(criterion)

        if self._groups:
            query = query.group_by(*self._groups)
        if self._distinct or (collapse and self.collapses_joins):
            query = query.distinct()

        for other, union_all in self._unions:
            other_query = other.to_query(loaders=False, ordered=False, bounded=False)
            query = query.union_all(other_query) if union_all else query.union(other_query)

        if loaders:
            if self._columns:
                query = query.options(load_only(*self._columns))
            if self._eager:
                query = query.options(*self._eager.values())

        if ordered and self._orders:
            query = query.order_by(*self._orders)

        if bounded:
            if self._offset is not None:
                query = query.offset(self._offset)
            if self._limit is not None:
                query = query.limit(self._limit)

        return query

    def _scalar_query(self) -> Query:
        """Unordered, unbounded, row-level query without loader options."""
        return self.to_query(loaders=False, ordered=False, bounded=False, collapse=False)

    def _total(self) -> int:
        """Number of entities ``get()`` would return without bounds."""
        return self.to_query(loaders=False, ordered=False, bounded=False).count()

    def _primary_key(self) -> Any:
        return getattr(self.model, primary_key_name(self.model))

    # ========================================
    # Terminal Operations
    # ========================================

    def first(self) -> Optional[Any]:
        return self.to_query().first()

    def get(self) -> List[Any]:
        return self.to_query().all()

    def delete(self) -> int:
        """Delete matching rows; returns the affected row count."""
        return self._scalar_query().delete(synchronize_session="fetch")

    def count(self, column: str = ALL_COLUMNS) -> int:
        """
        Row count, or non-null count of ``column``.

        Joined rows are counted once per entity, like ``get()`` returns them.
        """
        if column == ALL_COLUMNS:
            return self._total()
        return self._aggregate(func.count, column) or 0

    def max(self, column: str) -> Any:
        return self._aggregate(func.max, column)

    def min(self, column: str) -> Any:
        return self._aggregate(func.min, column)

    def sum(self, column: str) -> Any:
        """SUM over matching rows; 0 when nothing matched."""
        result = self._aggregate(func.sum, column)
        return 0 if result is None else result

    def avg(self, column: str) -> Any:
        return self._aggregate(func.avg, column)

    def _aggregate(self, function: Callable[[Any], Any], column: str) -> Any:
        row = self._scalar_query().with_entities(function(self._column(column))).first()
        return row[0] if row else None

    def value(self, column: str) -> Any:
        """Single column of the first matching row, or None."""
        row = self.to_query(loaders=False, collapse=False).with_entities(self._column(column)).first()
        return row[0] if row else None

    def pluck(self, column: str, key: Optional[str] = None) -> Union[List[Any], Dict[Any, Any]]:
        """
        List of one column, or a dict keyed by ``key`` when given.

        Example:
            builder.pluck("email")          # ["a@x.io", "b@x.io"]
            builder.pluck("email", "id")    # {1: "a@x.io", 2: "b@x.io"}
        """
        query = self.to_query(loaders=False, collapse=False)
        if key is None:
            return [row[0] for row in query.with_entities(self._column(column)).all()]
        rows = query.with_entities(self._column(column), self._column(key)).all()
        return {row[1]: row[0] for row in rows}

    def increment(self, column: str, amount: Union[int, float] = 1, extra: Optional[Mapping] = None) -> int:
        """
        Atomically add ``amount`` to ``column`` on every matching row.

        Args:
            column: Numeric column
            amount: Delta (default 1)
            extra: Additional column assignments made in the same UPDATE

        Returns:
            Number of affected rows
        """
        return self._adjust(column, amount, extra, negative=False)

    def decrement(self, column: str, amount: Union[int, float] = 1, extra: Optional[Mapping] = None) -> int:
        return self._adjust(column, amount, extra, negative=True)

    def _adjust(self, column: str, amount: Union[int, float], extra: Optional[Mapping], negative: bool) -> int:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise ValueError(f"Amount must be numeric, got {amount!r}")
        expression = self._column(column)
        values: Dict[Any, Any] = {expression: expression - amount if negative else expression + amount}
        for name, value in (extra or {}).items():
            values[self._column(name)] = value
        return self._scalar_query().update(values, synchronize_session="fetch")

    def paginate(self, per_page: int = 15, page: int = 1) -> Page:
        """
        Fetch one page plus the total row count.

        Raises:
            ValueError: If per_page or page is below 1
        """
        if per_page < 1:
            raise ValueError(f"per_page must be >= 1, got {per_page}")
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")

        total = self._total()
        items = self.to_query(bounded=False).offset((page - 1) * per_page).limit(per_page).all()
        return Page(items=items, total=total, per_page=per_page, current_page=page)

    def chunk(self, size: int, callback: Callable[[List[Any]], Any]) -> bool:
        """
        Walk matching rows ``size`` at a time.

        Orders by primary key when no order was given so pages are stable.
        ``callback`` returning ``False`` stops the walk.

        Returns:
            True if every chunk was visited, False if the callback stopped it
        """
        if size < 1:
            raise ValueError(f"Chunk size must be >= 1, got {size}")

        query = self.to_query(bounded=False)
        if not self.has_orders:
            query = query.order_by(self._primary_key().asc())

        page = 1
        while True:
            results = query.offset((page - 1) * size).limit(size).all()
            if not results:
                break
            if callback(results) is False:
                return False
            if len(results) < size:
                break
            page += 1
        return True
