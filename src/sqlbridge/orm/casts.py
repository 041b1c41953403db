"""Attribute casting between stored column values and Python values."""

from __future__ import annotations

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, assert_never

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class Cast(Enum):
    """Closed set of conversions a model attribute can declare."""

    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    JSON = "json"
    DATETIME = "datetime"
    DATE = "date"

    @classmethod
    def _missing_(cls, value: object) -> Cast | None:
        if isinstance(value, str):
            return _ALIASES.get(value.lower())
        return None


_ALIASES = {
    "int": Cast.INTEGER,
    "integer": Cast.INTEGER,
    "float": Cast.FLOAT,
    "double": Cast.FLOAT,
    "real": Cast.FLOAT,
    "str": Cast.STRING,
    "string": Cast.STRING,
    "bool": Cast.BOOLEAN,
    "boolean": Cast.BOOLEAN,
    "array": Cast.ARRAY,
    "list": Cast.ARRAY,
    "json": Cast.JSON,
    "dict": Cast.JSON,
    "datetime": Cast.DATETIME,
    "timestamp": Cast.DATETIME,
    "date": Cast.DATE,
}

_FALSE_STRINGS = frozenset({"", "0", "false"})


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value)
    return datetime.fromisoformat(str(value))


def cast_value(cast: Cast, value: Any) -> Any:
    """
    Convert a stored value to its Python representation.

    ``None`` always passes through. Structured values are decoded only when
    stored as a string, and temporal values are parsed only when they are not
    already ``date``/``datetime`` objects.

    Raises:
        ValueError: If the stored value cannot be converted
    """
    if value is None:
        return None

    match cast:
        case Cast.INTEGER:
            return int(value)
        case Cast.FLOAT:
            return float(value)
        case Cast.STRING:
            return str(value)
        case Cast.BOOLEAN:
            if isinstance(value, str):
                return value.strip().lower() not in _FALSE_STRINGS
            return bool(value)
        case Cast.ARRAY | Cast.JSON:
            return json.loads(value) if isinstance(value, (str, bytes)) else value
        case Cast.DATETIME:
            return _to_datetime(value)
        case Cast.DATE:
            if isinstance(value, date) and not isinstance(value, datetime):
                return value
            return _to_datetime(value).date()
        case _:
            assert_never(cast)


def serialize_value(cast: Cast, value: Any) -> Any:
    """
    Convert a Python value to the form written to the database.

    Datetimes are written in ISO 8601 with a space separator, so microseconds
    and UTC offsets survive and :func:`cast_value` restores an equal value.
    """
    if value is None:
        return None

    match cast:
        case Cast.ARRAY | Cast.JSON:
            return value if isinstance(value, str) else json.dumps(value)
        case Cast.DATETIME:
            if isinstance(value, (date, datetime)):
                return _to_datetime(value).isoformat(sep=" ")
            return value
        case Cast.DATE:
            if isinstance(value, (date, datetime)):
                return value.strftime("%Y-%m-%d")
            return value
        case Cast.BOOLEAN:
            return int(value) if isinstance(value, bool) else value
        case _:
            return value
