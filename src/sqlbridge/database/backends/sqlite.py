"""SQLite backend built on the standard library driver."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, Any

from .base import Backend

if TYPE_CHECKING:
    from ...config import ConnectionConfig


class SqliteBackend(Backend):
    """Backend for ``sqlite3``; ``?`` is already the native paramstyle."""

    name = "sqlite"

    @property
    def error_class(self) -> type[Exception]:
        return sqlite3.Error

    def connect(self, config: ConnectionConfig) -> sqlite3.Connection:
        options = dict(config.options)
        timeout = float(options.pop("timeout", 5.0))
        # isolation_level=None keeps the driver out of transaction handling;
        # BEGIN/COMMIT/ROLLBACK are issued explicitly by the Connection.
        handle = sqlite3.connect(config.database, timeout=timeout, isolation_level=None)
        if str(options.get("foreign_keys", "1")).lower() not in ("0", "false", "off"):
            handle.execute("PRAGMA foreign_keys = ON")
        return handle

    def last_insert_id(self, handle: Any, lastrowid: Any, sequence: str | None = None) -> Any:
        return lastrowid

    def compile_truncate(self, table: str) -> str:
        return f"delete from {table}"
