"""Tests for session creation, code resolution and closing."""
from uuid import uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from karaoke.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from karaoke.services.roster import ParticipantRoster
from karaoke.services.session_directory import (
    CODE_DIGITS,
    CODE_LETTERS,
    SessionDirectory,
    generate_code,
    normalize_code,
)


def test_generate_code_shape():
    for _ in range(50):
        code = generate_code(8)
        assert len(code) == 8
        assert all(c in CODE_LETTERS for c in code[:4])
        assert all(c in CODE_DIGITS for c in code[4:])


def test_generated_codes_avoid_ambiguous_characters():
    seen = "".join(generate_code(8) for _ in range(200))
    assert not set(seen) & set("OIL01")


def test_normalize_code():
    assert normalize_code("  abcd2345 ") == "ABCD2345"
    assert normalize_code("") == ""
    assert normalize_code(None) == ""


async def test_create_then_resolve_round_trip(db_session, feed, user_factory):
    host = await user_factory("Host")
    directory = SessionDirectory(db_session, feed)

    session = await directory.create_session("Friday Night", host.id)
    resolved = await directory.resolve_session(session.code)

    assert resolved.id == session.id
    assert resolved.name == "Friday Night"
    assert resolved.host_id == host.id
    assert resolved.is_active is True
    assert len(session.code) == 8


async def test_host_is_enrolled_on_create(db_session, feed, recorder, user_factory):
    host = await user_factory("Host")
    session = await SessionDirectory(db_session, feed).create_session("Party", host.id)

    roster = ParticipantRoster(db_session, feed)
    assert await roster.is_member(session.id, host.id)
    assert await roster.count(session.id) == 1

    inserts = [e for e in recorder if e.table == "session_participants"]
    assert len(inserts) == 1
    assert inserts[0].new["user_id"] == str(host.id)


async def test_resolve_is_case_insensitive(db_session, feed, user_factory):
    host = await user_factory()
    directory = SessionDirectory(db_session, feed)
    session = await directory.create_session("Party", host.id)

    resolved = await directory.resolve_session(f"  {session.code.lower()}  ")
    assert resolved.id == session.id


async def test_resolve_unknown_code(db_session, feed):
    with pytest.raises(NotFoundError) as exc_info:
        await SessionDirectory(db_session, feed).resolve_session("ZZZZ9999")
    assert exc_info.value.message == "Invalid session code"


async def test_resolve_empty_code(db_session, feed):
    with pytest.raises(InvalidArgumentError):
        await SessionDirectory(db_session, feed).resolve_session("   ")


async def test_closed_session_does_not_resolve(db_session, feed, recorder, user_factory):
    host = await user_factory()
    directory = SessionDirectory(db_session, feed)
    session = await directory.create_session("Party", host.id)

    closed = await directory.close_session(session.id)
    assert closed.is_active is False

    with pytest.raises(NotFoundError):
        await directory.resolve_session(session.code)

    updates = [e for e in recorder if e.table == "sessions"]
    assert updates and updates[-1].new["is_active"] is False


async def test_blank_name_rejected(db_session, feed, user_factory):
    host = await user_factory()
    with pytest.raises(InvalidArgumentError):
        await SessionDirectory(db_session, feed).create_session("   ", host.id)


async def test_create_with_foreign_keys_enforced(db_session, feed, user_factory):
    enforced = await db_session.execute(text("PRAGMA foreign_keys"))
    assert enforced.scalar_one() == 1

    host = await user_factory("Host")
    session = await SessionDirectory(db_session, feed).create_session("Party", host.id)
    assert await ParticipantRoster(db_session, feed).is_member(session.id, host.id)


async def test_unknown_host_is_not_a_code_collision(db_session, feed):
    with pytest.raises(IntegrityError):
        await SessionDirectory(db_session, feed).create_session("Party", uuid4())


async def test_code_taken_on_insert_is_a_conflict(db_session, feed, user_factory, monkeypatch):
    host = await user_factory("Host")
    directory = SessionDirectory(db_session, feed)
    first = await directory.create_session("First", host.id)

    # Another creator inserted the same code after our uniqueness check
    async def same_code(self):
        return first.code

    monkeypatch.setattr(SessionDirectory, "_generate_unique_code", same_code)
    with pytest.raises(ConflictError):
        await directory.create_session("Second", host.id)
