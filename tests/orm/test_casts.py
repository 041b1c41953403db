"""Attribute cast conversions."""

from datetime import date, datetime, timedelta, timezone

import pytest

from sqlbridge.orm.casts import Cast, cast_value, serialize_value
from sqlbridge.orm.metaclass import snake_case


class TestCastLookup:
    def test_aliases(self):
        assert Cast("int") is Cast.INTEGER
        assert Cast("BOOL") is Cast.BOOLEAN
        assert Cast("double") is Cast.FLOAT
        assert Cast("timestamp") is Cast.DATETIME

    def test_unknown_cast(self):
        with pytest.raises(ValueError):
            Cast("money")


class TestCastValue:
    def test_none_passes_through(self):
        for cast in Cast:
            assert cast_value(cast, None) is None

    def test_scalars(self):
        assert cast_value(Cast.INTEGER, "42") == 42
        assert cast_value(Cast.FLOAT, "1.5") == 1.5
        assert cast_value(Cast.STRING, 7) == "7"

    def test_boolean(self):
        assert cast_value(Cast.BOOLEAN, 1) is True
        assert cast_value(Cast.BOOLEAN, 0) is False
        assert cast_value(Cast.BOOLEAN, "0") is False
        assert cast_value(Cast.BOOLEAN, "false") is False
        assert cast_value(Cast.BOOLEAN, "") is False
        assert cast_value(Cast.BOOLEAN, "yes") is True

    def test_structured_decoded_only_from_strings(self):
        assert cast_value(Cast.JSON, '{"a": 1}') == {"a": 1}
        assert cast_value(Cast.ARRAY, "[1, 2]") == [1, 2]
        already = {"a": 1}
        assert cast_value(Cast.JSON, already) is already

    def test_datetime(self):
        assert cast_value(Cast.DATETIME, "2024-05-01 10:30:00") == datetime(2024, 5, 1, 10, 30)
        moment = datetime(2024, 1, 1, 12, 0)
        assert cast_value(Cast.DATETIME, moment) is moment

    def test_date(self):
        assert cast_value(Cast.DATE, "2024-05-01 10:30:00") == date(2024, 5, 1)
        assert cast_value(Cast.DATE, date(2024, 5, 1)) == date(2024, 5, 1)


class TestSerializeValue:
    def test_structured_values_are_encoded(self):
        assert serialize_value(Cast.JSON, {"a": 1}) == '{"a": 1}'
        assert serialize_value(Cast.JSON, '{"a": 1}') == '{"a": 1}'

    def test_datetimes_are_formatted(self):
        assert serialize_value(Cast.DATETIME, datetime(2024, 5, 1, 10, 30, 15)) == "2024-05-01 10:30:15"
        assert serialize_value(Cast.DATE, date(2024, 5, 1)) == "2024-05-01"

    def test_datetimes_keep_microseconds_and_offset(self):
        moment = datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=timezone(timedelta(hours=2)))
        stored = serialize_value(Cast.DATETIME, moment)
        assert stored == "2024-05-01 12:30:45.123456+02:00"
        restored = cast_value(Cast.DATETIME, stored)
        assert restored == moment
        assert restored.utcoffset() == timedelta(hours=2)

    def test_booleans_are_stored_as_integers(self):
        assert serialize_value(Cast.BOOLEAN, True) == 1
        assert serialize_value(Cast.BOOLEAN, False) == 0

    def test_other_values_untouched(self):
        assert serialize_value(Cast.INTEGER, "5") == "5"


def test_snake_case():
    assert snake_case("User") == "user"
    assert snake_case("UserProfile") == "user_profile"
    assert snake_case("HTTPLog") == "http_log"
