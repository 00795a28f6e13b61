"""Tests for UTC timestamp handling."""
from datetime import datetime, timedelta, timezone, UTC

from sqlalchemy import DateTime
from sqlmodel import SQLModel

from karaoke.utils.datetime_helpers import ensure_utc, utcnow


def test_utcnow_is_aware():
    now = utcnow()
    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)


def test_ensure_utc_treats_naive_as_utc():
    naive = datetime(2026, 1, 2, 3, 4, 5)
    assert ensure_utc(naive) == datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


def test_ensure_utc_converts_other_zones():
    plus_two = datetime(2026, 1, 2, 5, 0, tzinfo=timezone(timedelta(hours=2)))
    converted = ensure_utc(plus_two)
    assert converted.tzinfo == UTC
    assert converted.hour == 3


def test_ensure_utc_passes_none():
    assert ensure_utc(None) is None


def test_every_timestamp_column_is_timezone_aware():
    columns = [
        f"{table.name}.{column.name}"
        for table in SQLModel.metadata.tables.values()
        for column in table.columns
        if isinstance(column.type, DateTime) and not column.type.timezone
    ]
    assert columns == []


async def test_new_rows_carry_utc_timestamps(user_factory):
    user = await user_factory("Clock")
    assert ensure_utc(user.created_at) <= utcnow()
    assert ensure_utc(user.last_seen) <= utcnow()
