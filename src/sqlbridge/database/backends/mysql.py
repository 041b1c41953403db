"""MySQL and MariaDB backend built on PyMySQL."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pymysql

from .base import Backend
from .postgres import translate_placeholders

if TYPE_CHECKING:
    from ...config import ConnectionConfig


class MysqlBackend(Backend):
    """Backend for MySQL through ``pymysql``; shares the ``%s`` paramstyle with psycopg2."""

    name = "mysql"

    @property
    def error_class(self) -> type[Exception]:
        return pymysql.Error

    def connect(self, config: ConnectionConfig) -> Any:
        options = dict(config.options)
        return pymysql.connect(
            host=config.host,
            port=config.port,
            database=config.database,
            user=config.username,
            password=config.password or "",
            charset=options.pop("charset", "utf8mb4"),
            autocommit=True,
            **options,
        )

    def prepare(self, sql: str) -> str:
        return translate_placeholders(sql)

    def last_insert_id(self, handle: Any, lastrowid: Any, sequence: str | None = None) -> Any:
        return lastrowid

    def random_function(self) -> str:
        return "RAND()"
