"""
Clause helpers shared by the query builder.

Turns the string-based vocabulary (``"age"``, ``">"``, ``"posts.user_id"``)
into SQLAlchemy expressions, and keeps WHERE / ON predicates in call order
until the statement is compiled.
"""

import operator as _op
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import and_, inspect, literal_column, or_, table as sa_table
from sqlalchemy.sql import ClauseElement

from repokit.core.constants import BOOLEAN_AND, BOOLEAN_OR


class _Missing:
    """Marker for arguments the caller did not pass (``None`` is a value)."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


_COMPARATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "=": _op.eq,
    "==": _op.eq,
    "!=": _op.ne,
    "<>": _op.ne,
    "<": _op.lt,
    "<=": _op.le,
    ">": _op.gt,
    ">=": _op.ge,
    "like": lambda column, value: column.like(value),
    "not like": lambda column, value: column.not_like(value),
    "ilike": lambda column, value: column.ilike(value),
    "not ilike": lambda column, value: column.not_ilike(value),
    "in": lambda column, value: column.in_(value),
    "not in": lambda column, value: column.not_in(value),
}


def is_expression(value: Any) -> bool:
    """True for SQLAlchemy columns, mapped attributes and clauses."""
    return isinstance(value, ClauseElement) or hasattr(value, "__clause_element__")


def compare(column: Any, operator: str, value: Any) -> Any:
    """
    Build ``column <operator> value``.

    ``= None`` and ``!= None`` compile to ``IS NULL`` / ``IS NOT NULL``.

    Raises:
        ValueError: If the operator is not supported
    """
    key = operator.lower().strip() if isinstance(operator, str) else operator
    try:
        comparator = _COMPARATORS[key]
    except (KeyError, TypeError):
        raise ValueError(f"Unsupported operator: {operator!r}") from None
    return comparator(column, value)


def primary_key_name(model: type) -> str:
    """Attribute name of the model's (first) primary key column."""
    mapper = inspect(model)
    return mapper.get_property_by_column(mapper.primary_key[0]).key


def resolve_column(model: type, column: Any) -> Any:
    """
    Resolve a column reference against ``model``.

    - expressions are returned unchanged
    - ``"name"`` -> the mapped attribute ``model.name``
    - ``"table.name"`` -> the table column when ``table`` is in the model's
      metadata, otherwise a literal column
    """
    if not isinstance(column, str):
        return column

    if "." in column:
        table_name, column_name = column.split(".", 1)
        found = model.metadata.tables.get(table_name)
        if found is not None and column_name in found.c:
            return found.c[column_name]
        return literal_column(column)

    if column in inspect(model).all_orm_descriptors.keys():
        return getattr(model, column)
    return literal_column(column)


def resolve_table(model: type, target: Any) -> Any:
    """Resolve a join/from target given as a table name, Table or mapped class."""
    if not isinstance(target, str):
        return target
    found = model.metadata.tables.get(target)
    return found if found is not None else sa_table(target)


class WhereGroup:
    """
    Ordered list of predicates joined by AND / OR.

    Compiles with SQL precedence: consecutive AND predicates bind together,
    each OR starts a new group.

        a AND b OR c AND d  ->  (a AND b) OR (c AND d)
    """

    def __init__(self) -> None:
        self._entries: List[Tuple[str, Any]] = []

    def add(self, clause: Any, boolean: str = BOOLEAN_AND) -> None:
        if boolean not in (BOOLEAN_AND, BOOLEAN_OR):
            raise ValueError(f"Unsupported boolean: {boolean!r}")
        self._entries.append((boolean, clause))

    def __len__(self) -> int:
        return len(self._entries)

    def compile(self) -> Optional[Any]:
        groups: List[List[Any]] = []
        for boolean, clause in self._entries:
            if boolean == BOOLEAN_OR or not groups:
                groups.append([clause])
            else:
                groups[-1].append(clause)

        if not groups:
            return None

        conjunctions = [group[0] if len(group) == 1 else and_(*group) for group in groups]
        if len(conjunctions) == 1:
            return conjunctions[0]
        return or_(*conjunctions)


class JoinClause:
    """
    ON conditions for a join built from a callback.

    Example:
        def on_author(join):
            join.on("posts.user_id", "=", "users.id").where("posts.published", True)

        builder.join_closure("posts", on_author)
    """

    def __init__(self, model: type, target: Any) -> None:
        self.model = model
        self.target = target
        self._conditions = WhereGroup()

    def on(self, first: Any, operator: Any = "=", second: Any = MISSING, boolean: str = BOOLEAN_AND) -> "JoinClause":
        """Column-to-column condition; ``on(a, b)`` means ``a = b``."""
        if second is MISSING:
            operator, second = "=", operator
        self._conditions.add(
            compare(resolve_column(self.model, first), operator, resolve_column(self.model, second)),
            boolean,
        )
        return self

    def or_on(self, first: Any, operator: Any = "=", second: Any = MISSING) -> "JoinClause":
        return self.on(first, operator, second, BOOLEAN_OR)

    def where(self, column: Any, operator: Any = MISSING, value: Any = MISSING, boolean: str = BOOLEAN_AND) -> "JoinClause":
        """Column-to-value condition; ``where(a, 1)`` means ``a = 1``."""
        if operator is MISSING:
            raise ValueError("JoinClause.where() needs a value")
        if value is MISSING:
            operator, value = "=", operator
        self._conditions.add(compare(resolve_column(self.model, column), operator, value), boolean)
        return self

    def or_where(self, column: Any, operator: Any = MISSING, value: Any = MISSING) -> "JoinClause":
        return self.where(column, operator, value, BOOLEAN_OR)

    def compile(self) -> Optional[Any]:
        return self._conditions.compile()
