"""Named connection registry."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..config import ConnectionConfig
from ..exceptions import ConfigurationError
from .connection import Connection
from .query import QueryBuilder

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Lazily creates and caches named connections.

    The manager is an explicit context object; pass it where connections are
    needed instead of keeping a module level instance.

    Example:
        >>> db = DatabaseManager({
        ...     "default": "main",
        ...     "connections": {
        ...         "main": {"url": "sqlite:///app.db"},
        ...         "reports": {"driver": "pgsql", "database": "reports"},
        ...     },
        ... })
        >>> db.connection().get_driver_name()
        'sqlite'
        >>> db.connection("reports").get_driver_name()
        'pgsql'
    """

    def __init__(self, config: Mapping[str, Any]) -> None:
        self.config = config
        self._default_connection: str = config.get("default", "default")
        self._connections: dict[str, Connection] = {}

    def connection(self, name: str | None = None) -> Connection:
        """Return the named (or default) connection, creating it on first use."""
        name = name or self._default_connection
        if name not in self._connections:
            self._connections[name] = self._make_connection(name)
        return self._connections[name]

    def _make_connection(self, name: str) -> Connection:
        config = self.config.get("connections", {}).get(name)
        if config is None:
            raise ConfigurationError(f"Database connection [{name}] not configured.")

        if not isinstance(config, (ConnectionConfig, str)):
            config = ConnectionConfig.from_dict(config)
        logger.debug("Creating database connection %r", name)
        return Connection(config)

    def table(self, table: str, alias: str | None = None) -> QueryBuilder:
        """Begin a query on the default connection."""
        return self.connection().table(table, alias)

    def purge(self, name: str | None = None) -> None:
        """Disconnect and forget a cached connection."""
        name = name or self._default_connection
        connection = self._connections.pop(name, None)
        if connection is not None:
            connection.disconnect()

    def disconnect(self, name: str | None = None) -> None:
        """Close a cached connection's handle but keep the object cached."""
        name = name or self._default_connection
        if name in self._connections:
            self._connections[name].disconnect()

    def reconnect(self, name: str | None = None) -> Connection:
        self.purge(name)
        return self.connection(name)

    def get_default_connection(self) -> str:
        return self._default_connection

    def set_default_connection(self, name: str) -> None:
        self._default_connection = name

    def get_connections(self) -> dict[str, Connection]:
        return dict(self._connections)
