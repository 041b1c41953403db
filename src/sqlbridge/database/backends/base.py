from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from ...config import ConnectionConfig


class Backend(ABC):
    """Abstract base class for DB-API driver adapters."""

    name: ClassVar[str]

    @property
    @abstractmethod
    def error_class(self) -> type[Exception]:
        """The driver's DB-API ``Error`` base class."""
        pass

    @abstractmethod
    def connect(self, config: ConnectionConfig) -> Any:
        """Open a driver handle in autocommit mode."""
        pass

    @abstractmethod
    def last_insert_id(self, handle: Any, lastrowid: Any, sequence: str | None = None) -> Any:
        """Return the key generated by the most recent insert."""
        pass

    def prepare(self, sql: str) -> str:
        """Translate ``?`` placeholders into the driver's paramstyle."""
        return sql

    def random_function(self) -> str:
        return "RANDOM()"

    def compile_truncate(self, table: str) -> str:
        return f"truncate table {table}"

    def fetch_all(self, cursor: Any) -> list[dict[str, Any]]:
        """Convert the cursor's remaining rows into dictionaries."""
        if cursor.description is None:
            return []
        columns = [column[0] for column in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def execute(self, handle: Any, sql: str, bindings: Sequence[Any]) -> Any:
        """Run one statement and return the open cursor."""
        cursor = handle.cursor()
        cursor.execute(self.prepare(sql), tuple(bindings))
        return cursor

    def close(self, handle: Any) -> None:
        handle.close()
