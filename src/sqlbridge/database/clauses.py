"""Immutable clause nodes accumulated by the query builder."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .query import QueryBuilder

OPERATORS = frozenset(
    {
        "=", "<", ">", "<=", ">=", "<>", "!=",
        "like", "not like", "ilike", "not ilike",
        "&", "|", "^", "<<", ">>",
        "is", "is not",
    }
)

JOIN_TYPES = frozenset({"inner", "left", "right", "cross"})

BOOLEANS = frozenset({"and", "or"})


class WhereType(Enum):
    """Closed set of predicate kinds a where node can carry."""

    BASIC = "basic"
    IN = "in"
    NOT_IN = "not in"
    NULL = "null"
    NOT_NULL = "not null"
    BETWEEN = "between"
    NOT_BETWEEN = "not between"
    NESTED = "nested"
    RAW = "raw"


@dataclass(slots=True, frozen=True)
class Where:
    """
    One predicate in a where list.

    ``boolean`` is the connective that joins this predicate to the one
    before it; it is ignored for the first predicate.
    """

    type: WhereType
    boolean: str = "and"
    column: str | None = None
    operator: str | None = None
    value: Any = None
    values: tuple[Any, ...] = ()
    query: QueryBuilder | None = None
    sql: str | None = None


@dataclass(slots=True, frozen=True)
class Having:
    boolean: str
    column: str | None = None
    operator: str | None = None
    value: Any = None
    sql: str | None = None


@dataclass(slots=True, frozen=True)
class Join:
    type: str
    table: str
    first: str | None = None
    operator: str | None = None
    second: str | None = None


@dataclass(slots=True, frozen=True)
class Order:
    column: str | None = None
    direction: str = "asc"
    sql: str | None = None


def check_operator(operator: str) -> str:
    """Normalize a comparison operator or raise ValueError."""
    normalized = operator.lower().strip()
    if normalized not in OPERATORS:
        raise ValueError(f"Invalid operator: {operator!r}")
    return normalized


def check_boolean(boolean: str) -> str:
    normalized = boolean.lower().strip()
    if normalized not in BOOLEANS:
        raise ValueError(f"Invalid boolean connective: {boolean!r}")
    return normalized
