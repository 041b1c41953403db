"""Exception hierarchy for sql-bridge."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class SQLBridgeError(Exception):
    """Base class for every error raised by sql-bridge."""


class ConfigurationError(SQLBridgeError):
    """Raised when a connection or model is not configured correctly."""


class ExecutionError(SQLBridgeError):
    """
    Raised when the database driver fails to execute a statement.

    The driver exception is kept untouched on ``original`` (and as
    ``__cause__``) so callers can inspect driver specific error codes.
    Statements are never retried.
    """

    def __init__(
        self,
        message: str,
        *,
        sql: str,
        bindings: Sequence[Any] = (),
        original: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.sql = sql
        self.bindings = list(bindings)
        self.original = original

    def __str__(self) -> str:
        return f"{self.args[0]} (SQL: {self.sql})"


class NotFoundError(SQLBridgeError):
    """Raised by the ``*_or_fail`` accessors when no row matches."""

    def __init__(self, model: str, ids: Sequence[Any] = ()) -> None:
        self.model = model
        self.ids = list(ids)
        message = f"No query results for model [{model}]"
        if self.ids:
            message += " " + ", ".join(str(i) for i in self.ids)
        super().__init__(message)
