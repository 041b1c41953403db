"""Database connection management."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from ..config import ConnectionConfig
from ..exceptions import ExecutionError
from .backends import Backend, get_backend
from .query import QueryBuilder

logger = logging.getLogger(__name__)

R = TypeVar("R")


class Connection:
    """
    A single lazily opened database handle.

    The driver connection is created on first use and kept until
    :meth:`disconnect` or :meth:`reconnect`. There is no pooling: concurrent
    callers should use separate Connection objects.

    Example:
        >>> conn = Connection("sqlite://")
        >>> conn.statement("create table users (id integer primary key, name text)")
        True
        >>> conn.table("users").insert({"name": "Alice"})
        True
        >>> conn.table("users").where("name", "Alice").first()
        {'id': 1, 'name': 'Alice'}
    """

    def __init__(self, config: ConnectionConfig | Mapping[str, Any] | str) -> None:
        """
        Initialize the connection without opening it.

        Args:
            config: A ConnectionConfig, a mapping accepted by
                ``ConnectionConfig.from_dict`` or a database URL

        Raises:
            ConfigurationError: If the driver is not supported
        """
        if isinstance(config, str):
            config = ConnectionConfig.from_url(config)
        elif not isinstance(config, ConnectionConfig):
            config = ConnectionConfig.from_dict(config)

        self.config = config
        self._backend: Backend = get_backend(config.driver)
        self._handle: Any = None
        self._table_prefix = config.prefix
        self._last_rowid: Any = None
        self._query_log: list[dict[str, Any]] = []
        self._logging_queries = False

    def get_handle(self) -> Any:
        """Return the driver handle, opening it on first use."""
        if self._handle is None:
            try:
                self._handle = self._backend.connect(self.config)
            except self._backend.error_class as exc:
                raise ExecutionError(
                    f"Could not connect to {self.config.driver} database: {exc}",
                    sql="",
                    original=exc,
                ) from exc
            logger.info("Opened %s connection to %s", self.config.driver, self.config.database)
        return self._handle

    def is_connected(self) -> bool:
        return self._handle is not None

    def disconnect(self) -> None:
        """Close the driver handle if one is open."""
        if self._handle is not None:
            self._backend.close(self._handle)
            self._handle = None
            logger.info("Closed %s connection to %s", self.config.driver, self.config.database)

    def reconnect(self) -> None:
        self.disconnect()
        self.get_handle()

    def table(self, table: str, alias: str | None = None) -> QueryBuilder:
        """Begin a fluent query against a table."""
        return QueryBuilder(self).from_(table, alias)

    def query(self) -> QueryBuilder:
        return QueryBuilder(self)

    def _run(self, sql: str, bindings: Sequence[Any], handler: Callable[[Any], R]) -> R:
        bindings = list(bindings)
        start = time.perf_counter()
        try:
            cursor = self._backend.execute(self.get_handle(), sql, bindings)
            try:
                result = handler(cursor)
            finally:
                cursor.close()
        except self._backend.error_class as exc:
            raise ExecutionError(str(exc), sql=sql, bindings=bindings, original=exc) from exc

        elapsed = time.perf_counter() - start
        logger.debug("%s %r (%.2f ms)", sql, bindings, elapsed * 1000)
        if self._logging_queries:
            self._query_log.append({"query": sql, "bindings": bindings, "time": elapsed})
        return result

    def select(self, sql: str, bindings: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a select statement and return every row as a dict."""
        return self._run(sql, bindings, self._backend.fetch_all)

    def select_one(self, sql: str, bindings: Sequence[Any] = ()) -> dict[str, Any] | None:
        """Run a select statement and return the first row, or None."""
        rows = self.select(sql, bindings)
        return rows[0] if rows else None

    def insert(self, sql: str, bindings: Sequence[Any] = ()) -> bool:
        def handler(cursor: Any) -> bool:
            self._last_rowid = getattr(cursor, "lastrowid", None)
            return cursor.rowcount > 0

        return self._run(sql, bindings, handler)

    def update(self, sql: str, bindings: Sequence[Any] = ()) -> int:
        return self._run(sql, bindings, _rowcount)

    def delete(self, sql: str, bindings: Sequence[Any] = ()) -> int:
        return self._run(sql, bindings, _rowcount)

    def statement(self, sql: str, bindings: Sequence[Any] = ()) -> bool:
        """Run a raw statement (DDL, pragmas, ...)."""
        return self._run(sql, bindings, lambda cursor: True)

    def last_insert_id(self, sequence: str | None = None) -> Any:
        """Return the key generated by the most recent insert on this handle."""
        try:
            return self._backend.last_insert_id(self.get_handle(), self._last_rowid, sequence)
        except self._backend.error_class as exc:
            raise ExecutionError(str(exc), sql="lastval", original=exc) from exc

    # Transactions

    def begin_transaction(self) -> None:
        """
        Start a transaction.

        Nesting is not supported: calling this while a transaction is already
        open on the same connection has driver-defined behaviour (SQLite and
        PostgreSQL both reject or warn about a second BEGIN).
        """
        self.statement("BEGIN")

    def commit(self) -> None:
        self.statement("COMMIT")

    def rollback(self) -> None:
        self.statement("ROLLBACK")

    def transaction(self, callback: Callable[[Connection], R]) -> R:
        """
        Run ``callback`` inside a transaction.

        Commits when the callback returns and rolls back, then re-raises, when
        it raises. The callback receives this connection.
        """
        self.begin_transaction()
        try:
            result = callback(self)
        except BaseException:
            logger.warning("Rolling back transaction on %s connection", self.config.driver)
            self.rollback()
            raise
        self.commit()
        return result

    # Dialect helpers

    def get_driver_name(self) -> str:
        return self.config.driver

    def get_table_prefix(self) -> str:
        return self._table_prefix

    def prefix_table(self, table: str) -> str:
        return self._table_prefix + table

    def random_function(self) -> str:
        return self._backend.random_function()

    def compile_truncate(self, table: str) -> str:
        return self._backend.compile_truncate(table)

    # Query log

    def enable_query_log(self) -> None:
        self._logging_queries = True

    def disable_query_log(self) -> None:
        self._logging_queries = False

    def get_query_log(self) -> list[dict[str, Any]]:
        return list(self._query_log)

    def flush_query_log(self) -> None:
        self._query_log = []

    def __repr__(self) -> str:
        state = "open" if self.is_connected() else "closed"
        return f"Connection({self.config.driver!r}, {self.config.database!r}, {state})"


def _rowcount(cursor: Any) -> int:
    return cursor.rowcount
