"""PostgreSQL backend built on psycopg2."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import psycopg2

from .base import Backend

if TYPE_CHECKING:
    from ...config import ConnectionConfig


def translate_placeholders(sql: str) -> str:
    """
    Rewrite ``?`` placeholders into psycopg2's ``%s`` paramstyle.

    Literal ``%`` characters are doubled so psycopg2 does not read them as
    format markers. Question marks inside single-quoted literals, double-quoted
    identifiers and ``--`` comments are left alone.

    Example:
        >>> translate_placeholders("select * from t where a = ? and b like '50%?'")
        "select * from t where a = %s and b like '50%%?'"
    """
    out: list[str] = []
    quote: str | None = None
    i = 0
    length = len(sql)
    while i < length:
        char = sql[i]
        if char == "%":
            out.append("%%")
        elif quote is not None:
            out.append(char)
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
            out.append(char)
        elif char == "-" and sql.startswith("--", i):
            end = sql.find("\n", i)
            end = length if end == -1 else end
            out.append(sql[i:end].replace("%", "%%"))
            i = end
            continue
        elif char == "?":
            out.append("%s")
        else:
            out.append(char)
        i += 1
    return "".join(out)


class PostgresBackend(Backend):
    """Backend for PostgreSQL through ``psycopg2``."""

    name = "pgsql"

    @property
    def error_class(self) -> type[Exception]:
        return psycopg2.Error

    def connect(self, config: ConnectionConfig) -> Any:
        handle = psycopg2.connect(
            host=config.host,
            port=config.port,
            dbname=config.database,
            user=config.username,
            password=config.password,
            **dict(config.options),
        )
        handle.autocommit = True
        return handle

    def prepare(self, sql: str) -> str:
        return translate_placeholders(sql)

    def last_insert_id(self, handle: Any, lastrowid: Any, sequence: str | None = None) -> Any:
        with handle.cursor() as cur:
            if sequence:
                cur.execute("SELECT currval(%s)", (sequence,))
            else:
                cur.execute("SELECT lastval()")
            row = cur.fetchone()
        return row[0] if row else None
