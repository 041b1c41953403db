"""Driver backends."""

from ...exceptions import ConfigurationError
from .base import Backend
from .mysql import MysqlBackend
from .postgres import PostgresBackend
from .sqlite import SqliteBackend

BACKENDS: dict[str, type[Backend]] = {
    SqliteBackend.name: SqliteBackend,
    PostgresBackend.name: PostgresBackend,
    MysqlBackend.name: MysqlBackend,
}


def get_backend(driver: str) -> Backend:
    """Instantiate the backend registered for a canonical driver name."""
    try:
        return BACKENDS[driver]()
    except KeyError:
        raise ConfigurationError(f"Unsupported driver: {driver}") from None


__all__ = [
    "BACKENDS",
    "Backend",
    "MysqlBackend",
    "PostgresBackend",
    "SqliteBackend",
    "get_backend",
]
