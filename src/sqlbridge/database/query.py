"""Fluent SQL query builder.

This module provides:
- QueryBuilder: accumulates select/join/where/group/having/order/limit state
  and compiles it to parameterized SQL with ``?`` placeholders
- Terminal read and write operations executed through a Connection

Bindings are kept in fixed buckets and flattened in the order the clauses are
compiled, so the binding list always lines up with the placeholders.

Example:
    >>> q = conn.table("users").where("age", ">", 18).where(
    ...     lambda q: q.where("role", "admin").or_where("role", "owner")
    ... )
    >>> q.to_sql()
    'select * from users where age > ? and (role = ? or role = ?)'
    >>> q.get_bindings()
    [18, 'admin', 'owner']
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Self, assert_never

from .clauses import (
    JOIN_TYPES,
    Having,
    Join,
    Order,
    Where,
    WhereType,
    check_boolean,
    check_operator,
)

if TYPE_CHECKING:
    from .connection import Connection

BINDING_TYPES = ("select", "from", "join", "where", "group", "having", "order")

_MISSING: Any = object()

_ALIAS_RE = re.compile(r"\s+as\s+", re.IGNORECASE)


def result_key(column: str) -> str:
    """Name under which a selected column shows up in a result row."""
    column = _ALIAS_RE.split(column)[-1]
    return column.split(".")[-1].strip()


def _flatten(columns: Iterable[str | Sequence[str]]) -> list[str]:
    flat: list[str] = []
    for column in columns:
        if isinstance(column, str):
            flat.append(column)
        else:
            flat.extend(column)
    return flat


class QueryBuilder:
    """Mutable builder for a single logical query against one table."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self._table: str | None = None
        self._columns: list[str] = ["*"]
        self._distinct = False
        self._joins: list[Join] = []
        self._wheres: list[Where] = []
        self._groups: list[str] = []
        self._havings: list[Having] = []
        self._orders: list[Order] = []
        self._limit: int | None = None
        self._offset: int | None = None
        self._bindings: dict[str, list[Any]] = {name: [] for name in BINDING_TYPES}

    # Table and projection

    def from_(self, table: str, alias: str | None = None) -> Self:
        self._table = f"{table} as {alias}" if alias else table
        return self

    def table(self, table: str, alias: str | None = None) -> Self:
        return self.from_(table, alias)

    def get_table(self) -> str | None:
        return self._table

    def select(self, *columns: str | Sequence[str]) -> Self:
        """Replace the select list."""
        self._columns = _flatten(columns) or ["*"]
        return self

    def add_select(self, *columns: str | Sequence[str]) -> Self:
        self._columns.extend(_flatten(columns))
        return self

    def distinct(self) -> Self:
        self._distinct = True
        return self

    # Joins

    def join(
        self,
        table: str,
        first: str,
        operator: str,
        second: str,
        type: str = "inner",
    ) -> Self:
        type = type.lower()
        if type not in JOIN_TYPES or type == "cross":
            raise ValueError(f"Invalid join type: {type!r}")
        self._joins.append(Join(type, table, first, check_operator(operator), second))
        return self

    def left_join(self, table: str, first: str, operator: str, second: str) -> Self:
        return self.join(table, first, operator, second, "left")

    def right_join(self, table: str, first: str, operator: str, second: str) -> Self:
        return self.join(table, first, operator, second, "right")

    def cross_join(self, table: str) -> Self:
        self._joins.append(Join("cross", table))
        return self

    # Where clauses

    def where(
        self,
        column: str | Callable[[QueryBuilder], Any] | Mapping[str, Any],
        operator: Any = _MISSING,
        value: Any = _MISSING,
        boolean: str = "and",
    ) -> Self:
        """
        Add a basic where clause.

        ``where("age", 30)`` means ``age = ?``; ``where("age", ">", 30)`` uses
        the given operator. A callable receives a fresh builder for the same
        table and its predicates are grouped in parentheses. A mapping adds a
        parenthesized group of equality checks. Comparing to ``None`` with
        ``=`` or ``!=`` compiles to ``is null`` / ``is not null``.
        """
        boolean = check_boolean(boolean)

        if callable(column):
            return self._where_nested(column, boolean)

        if isinstance(column, Mapping):
            items = list(column.items())
            return self._where_nested(
                lambda query: [query.where(key, "=", val) for key, val in items],
                boolean,
            )

        if value is _MISSING:
            if operator is _MISSING:
                raise ValueError(f"A value is required for where({column!r})")
            value, operator = operator, "="
        elif not isinstance(operator, str):
            raise ValueError(f"Invalid operator: {operator!r}")

        operator = check_operator(operator)

        if value is None and operator in ("=", "!=", "<>"):
            return self.where_null(column, boolean, not_=operator != "=")

        self._wheres.append(Where(WhereType.BASIC, boolean, column, operator, value))
        self._add_binding([value], "where")
        return self

    def or_where(
        self,
        column: str | Callable[[QueryBuilder], Any] | Mapping[str, Any],
        operator: Any = _MISSING,
        value: Any = _MISSING,
    ) -> Self:
        return self.where(column, operator, value, "or")

    def _where_nested(self, callback: Callable[[QueryBuilder], Any], boolean: str) -> Self:
        query = self.for_nested_where()
        callback(query)

        if query._wheres:
            self._wheres.append(Where(WhereType.NESTED, boolean, query=query))
            # Spliced at the current position so later predicates stay aligned.
            self._add_binding(query._bindings["where"], "where")
        return self

    def for_nested_where(self) -> QueryBuilder:
        """Fresh builder scoped to this builder's table."""
        query = QueryBuilder(self.connection)
        query._table = self._table
        return query

    def where_in(
        self,
        column: str,
        values: Iterable[Any] | QueryBuilder,
        boolean: str = "and",
        not_: bool = False,
    ) -> Self:
        type = WhereType.NOT_IN if not_ else WhereType.IN
        boolean = check_boolean(boolean)

        if isinstance(values, QueryBuilder):
            self._wheres.append(Where(type, boolean, column, query=values))
            self._add_binding(values.get_bindings(), "where")
            return self

        values = tuple(values)
        self._wheres.append(Where(type, boolean, column, values=values))
        self._add_binding(values, "where")
        return self

    def where_not_in(
        self, column: str, values: Iterable[Any] | QueryBuilder, boolean: str = "and"
    ) -> Self:
        return self.where_in(column, values, boolean, not_=True)

    def or_where_in(self, column: str, values: Iterable[Any] | QueryBuilder) -> Self:
        return self.where_in(column, values, "or")

    def or_where_not_in(self, column: str, values: Iterable[Any] | QueryBuilder) -> Self:
        return self.where_in(column, values, "or", not_=True)

    def where_null(self, column: str, boolean: str = "and", not_: bool = False) -> Self:
        type = WhereType.NOT_NULL if not_ else WhereType.NULL
        self._wheres.append(Where(type, check_boolean(boolean), column))
        return self

    def where_not_null(self, column: str, boolean: str = "and") -> Self:
        return self.where_null(column, boolean, not_=True)

    def or_where_null(self, column: str) -> Self:
        return self.where_null(column, "or")

    def or_where_not_null(self, column: str) -> Self:
        return self.where_null(column, "or", not_=True)

    def where_between(
        self,
        column: str,
        values: Sequence[Any],
        boolean: str = "and",
        not_: bool = False,
    ) -> Self:
        values = tuple(values)
        if len(values) != 2:
            raise ValueError("where_between() expects exactly two values")

        type = WhereType.NOT_BETWEEN if not_ else WhereType.BETWEEN
        self._wheres.append(Where(type, check_boolean(boolean), column, values=values))
        self._add_binding(values, "where")
        return self

    def where_not_between(self, column: str, values: Sequence[Any], boolean: str = "and") -> Self:
        return self.where_between(column, values, boolean, not_=True)

    def or_where_between(self, column: str, values: Sequence[Any]) -> Self:
        return self.where_between(column, values, "or")

    def or_where_not_between(self, column: str, values: Sequence[Any]) -> Self:
        return self.where_between(column, values, "or", not_=True)

    def where_like(self, column: str, value: str, boolean: str = "and") -> Self:
        return self.where(column, "like", value, boolean)

    def where_raw(self, sql: str, bindings: Sequence[Any] = (), boolean: str = "and") -> Self:
        """Add a raw SQL predicate; ``bindings`` must match its ``?`` marks."""
        self._wheres.append(Where(WhereType.RAW, check_boolean(boolean), sql=sql))
        self._add_binding(bindings, "where")
        return self

    def or_where_raw(self, sql: str, bindings: Sequence[Any] = ()) -> Self:
        return self.where_raw(sql, bindings, "or")

    # Grouping

    def group_by(self, *groups: str | Sequence[str]) -> Self:
        self._groups.extend(_flatten(groups))
        return self

    def having(self, column: str, operator: str, value: Any, boolean: str = "and") -> Self:
        self._havings.append(
            Having(check_boolean(boolean), column, check_operator(operator), value)
        )
        self._add_binding([value], "having")
        return self

    def or_having(self, column: str, operator: str, value: Any) -> Self:
        return self.having(column, operator, value, "or")

    def having_raw(self, sql: str, bindings: Sequence[Any] = (), boolean: str = "and") -> Self:
        self._havings.append(Having(check_boolean(boolean), sql=sql))
        self._add_binding(bindings, "having")
        return self

    # Ordering and paging

    def order_by(self, column: str, direction: str = "asc") -> Self:
        direction = "desc" if direction.lower() == "desc" else "asc"
        self._orders.append(Order(column, direction))
        return self

    def order_by_desc(self, column: str) -> Self:
        return self.order_by(column, "desc")

    def order_by_raw(self, sql: str, bindings: Sequence[Any] = ()) -> Self:
        self._orders.append(Order(sql=sql))
        self._add_binding(bindings, "order")
        return self

    def latest(self, column: str = "created_at") -> Self:
        return self.order_by(column, "desc")

    def oldest(self, column: str = "created_at") -> Self:
        return self.order_by(column, "asc")

    def in_random_order(self) -> Self:
        self._orders.append(Order(sql=self.connection.random_function()))
        return self

    def sort(self, *fields: str | tuple[str, int | str]) -> Self:
        """Order by ``"name"``, ``"-created_at"`` or ``(column, 1 | -1)`` specs."""
        for column, direction in self._parse_sort_fields(*fields):
            self.order_by(column, "desc" if direction == -1 else "asc")
        return self

    def _parse_sort_fields(self, *fields: str | tuple[str, int | str]) -> list[tuple[str, int]]:
        """Parse sort field specifications into (column, direction) tuples."""
        parsed_fields = []
        for field in fields:
            if isinstance(field, tuple):
                column, direction = field
                if isinstance(direction, str):
                    direction = -1 if direction.lower() == "desc" else 1
                parsed_fields.append((column, direction))
            elif field.startswith("-"):
                parsed_fields.append((field[1:], -1))
            else:
                parsed_fields.append((field, 1))
        return parsed_fields

    def reorder(self) -> Self:
        """Drop every ordering and its bindings."""
        self._orders = []
        self._bindings["order"] = []
        return self

    def limit(self, value: int | None) -> Self:
        self._limit = None if value is None else max(0, int(value))
        return self

    def take(self, value: int | None) -> Self:
        return self.limit(value)

    def offset(self, value: int | None) -> Self:
        self._offset = None if value is None else max(0, int(value))
        return self

    def skip(self, value: int | None) -> Self:
        return self.offset(value)

    def for_page(self, page: int, per_page: int = 15) -> Self:
        return self.offset((page - 1) * per_page).limit(per_page)

    # Reads

    def get(self, columns: str | Sequence[str] | None = None) -> list[Any]:
        """Execute the query and return every row as a dict."""
        if columns is not None:
            self.select(columns)
        return self.connection.select(self.to_sql(), self.get_bindings())

    def first(self, columns: str | Sequence[str] | None = None) -> Any | None:
        results = self.limit(1).get(columns)
        return results[0] if results else None

    def find(self, id: Any, columns: str | Sequence[str] | None = None) -> Any | None:
        return self.where("id", id).first(columns)

    def value(self, column: str) -> Any:
        """Value of a single column from the first row, or None."""
        result = self.first([column])
        return result[result_key(column)] if result is not None else None

    def pluck(self, column: str, key: str | None = None) -> list[Any] | dict[Any, Any]:
        """
        Values of one column.

        With ``key`` a dict mapping each row's ``key`` column to ``column``
        is returned instead of a list.
        """
        results = self.get([column, key] if key else [column])
        value_key = result_key(column)
        if key:
            return {row[result_key(key)]: row[value_key] for row in results}
        return [row[value_key] for row in results]

    def count(self, column: str = "*") -> int:
        return int(self.aggregate("count", column) or 0)

    def max(self, column: str) -> Any:
        return self.aggregate("max", column)

    def min(self, column: str) -> Any:
        return self.aggregate("min", column)

    def avg(self, column: str) -> Any:
        return self.aggregate("avg", column)

    def sum(self, column: str) -> Any:
        result = self.aggregate("sum", column)
        return 0 if result is None else result

    def aggregate(self, function: str, column: str = "*") -> Any:
        """Run ``function(column)`` with the current constraints and return the scalar."""
        if self._distinct and column != "*":
            column = f"distinct {column}"

        columns, distinct, select_bindings = self._columns, self._distinct, self._bindings["select"]
        self._columns = [f"{function}({column}) as aggregate"]
        self._distinct = False
        self._bindings["select"] = []
        try:
            result = self.connection.select_one(self.to_sql(), self.get_bindings())
        finally:
            self._columns, self._distinct = columns, distinct
            self._bindings["select"] = select_bindings

        return result["aggregate"] if result is not None else None

    def exists(self) -> bool:
        return self.count() > 0

    def doesnt_exist(self) -> bool:
        return not self.exists()

    # Writes

    def insert(self, values: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> bool:
        """
        Insert one record or a batch of records with a single statement.

        The column list is taken from the first record; missing keys in later
        records are inserted as NULL.
        """
        if not values:
            return True

        records = [values] if isinstance(values, Mapping) else list(values)
        columns = list(records[0].keys())

        groups: list[str] = []
        bindings: list[Any] = []
        for record in records:
            groups.append("(" + ", ".join("?" for _ in columns) + ")")
            bindings.extend(record.get(column) for column in columns)

        sql = "insert into {} ({}) values {}".format(
            self._prefixed_table(), ", ".join(columns), ", ".join(groups)
        )
        return self.connection.insert(sql, bindings)

    def insert_get_id(self, values: Mapping[str, Any], sequence: str | None = None) -> Any:
        self.insert(values)
        return self.connection.last_insert_id(sequence)

    def update(self, values: Mapping[str, Any]) -> int:
        if not values:
            return 0

        columns = ", ".join(f"{column} = ?" for column in values)
        sql = f"update {self._prefixed_table()} set {columns}{self._compile_wheres()}"
        return self.connection.update(sql, [*values.values(), *self._bindings["where"]])

    def increment(
        self,
        column: str,
        amount: int | float = 1,
        extra: Mapping[str, Any] | None = None,
    ) -> int:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or math.isnan(amount):
            raise ValueError(f"Non-numeric value passed to increment(): {amount!r}")

        extra = extra or {}
        columns = [f"{column} = {column} + ?", *(f"{name} = ?" for name in extra)]
        sql = f"update {self._prefixed_table()} set {', '.join(columns)}{self._compile_wheres()}"
        return self.connection.update(sql, [amount, *extra.values(), *self._bindings["where"]])

    def decrement(
        self,
        column: str,
        amount: int | float = 1,
        extra: Mapping[str, Any] | None = None,
    ) -> int:
        return self.increment(column, -amount, extra)

    def delete(self, id: Any = None) -> int:
        if id is not None:
            self.where("id", id)

        sql = f"delete from {self._prefixed_table()}{self._compile_wheres()}"
        return self.connection.delete(sql, self._bindings["where"])

    def truncate(self) -> None:
        self.connection.statement(self.connection.compile_truncate(self._prefixed_table()))

    # Compilation

    def to_sql(self) -> str:
        return "".join(
            (
                self._compile_select(),
                self._compile_from(),
                self._compile_joins(),
                self._compile_wheres(),
                self._compile_groups(),
                self._compile_havings(),
                self._compile_orders(),
                self._compile_limit(),
                self._compile_offset(),
            )
        )

    def _prefixed_table(self) -> str:
        if self._table is None:
            raise ValueError("No table selected; call from_() first")
        return self.connection.prefix_table(self._table)

    def _compile_select(self) -> str:
        distinct = "distinct " if self._distinct else ""
        return "select " + distinct + ", ".join(self._columns)

    def _compile_from(self) -> str:
        return " from " + self._prefixed_table()

    def _compile_joins(self) -> str:
        if not self._joins:
            return ""

        sql = []
        for join in self._joins:
            table = self.connection.prefix_table(join.table)
            if join.type == "cross":
                sql.append(f"cross join {table}")
            else:
                sql.append(f"{join.type} join {table} on {join.first} {join.operator} {join.second}")
        return " " + " ".join(sql)

    def _compile_wheres(self) -> str:
        if not self._wheres:
            return ""

        sql = []
        for i, where in enumerate(self._wheres):
            prefix = "" if i == 0 else f" {where.boolean} "
            sql.append(prefix + self._compile_where(where))
        return " where " + "".join(sql)

    def _compile_where(self, where: Where) -> str:
        match where.type:
            case WhereType.BASIC:
                return f"{where.column} {where.operator} ?"
            case WhereType.IN | WhereType.NOT_IN:
                keyword = "in" if where.type is WhereType.IN else "not in"
                if where.query is not None:
                    return f"{where.column} {keyword} ({where.query.to_sql()})"
                if not where.values:
                    return "0 = 1" if where.type is WhereType.IN else "1 = 1"
                placeholders = ", ".join("?" for _ in where.values)
                return f"{where.column} {keyword} ({placeholders})"
            case WhereType.NULL:
                return f"{where.column} is null"
            case WhereType.NOT_NULL:
                return f"{where.column} is not null"
            case WhereType.BETWEEN:
                return f"{where.column} between ? and ?"
            case WhereType.NOT_BETWEEN:
                return f"{where.column} not between ? and ?"
            case WhereType.NESTED:
                assert where.query is not None
                return "(" + where.query._compile_wheres().removeprefix(" where ") + ")"
            case WhereType.RAW:
                return where.sql or ""
            case _:
                assert_never(where.type)

    def _compile_groups(self) -> str:
        if not self._groups:
            return ""
        return " group by " + ", ".join(self._groups)

    def _compile_havings(self) -> str:
        if not self._havings:
            return ""

        sql = []
        for i, having in enumerate(self._havings):
            prefix = "" if i == 0 else f" {having.boolean} "
            if having.sql is not None:
                sql.append(prefix + having.sql)
            else:
                sql.append(prefix + f"{having.column} {having.operator} ?")
        return " having " + "".join(sql)

    def _compile_orders(self) -> str:
        if not self._orders:
            return ""

        sql = [
            order.sql if order.sql is not None else f"{order.column} {order.direction}"
            for order in self._orders
        ]
        return " order by " + ", ".join(sql)

    def _compile_limit(self) -> str:
        if self._limit is None:
            # SQLite and MySQL only accept OFFSET after a LIMIT.
            if self._offset is not None:
                match self.connection.get_driver_name():
                    case "sqlite":
                        return " limit -1"
                    case "mysql":
                        return " limit 18446744073709551615"
            return ""
        return f" limit {self._limit}"

    def _compile_offset(self) -> str:
        if self._offset is None:
            return ""
        return f" offset {self._offset}"

    # Bindings

    def _add_binding(self, values: Iterable[Any], type: str = "where") -> None:
        self._bindings[type].extend(values)

    def get_bindings(self) -> list[Any]:
        """Bindings flattened in compilation order."""
        return [value for name in BINDING_TYPES for value in self._bindings[name]]

    def get_raw_bindings(self) -> dict[str, list[Any]]:
        return {name: list(values) for name, values in self._bindings.items()}

    # Copies

    def new_query(self) -> QueryBuilder:
        return QueryBuilder(self.connection)

    def clone(self) -> Self:
        """Independent copy; mutating either builder never affects the other."""
        clone = copy.copy(self)
        clone._columns = list(self._columns)
        clone._joins = list(self._joins)
        clone._wheres = list(self._wheres)
        clone._groups = list(self._groups)
        clone._havings = list(self._havings)
        clone._orders = list(self._orders)
        clone._bindings = self.get_raw_bindings()
        return clone
