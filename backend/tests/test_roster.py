"""Tests for session membership and the live roster view."""
import pytest

from karaoke.core.errors import InvalidStateError, PermissionDeniedError
from karaoke.services.change_feed import ChangeEvent, INSERT, DELETE
from karaoke.services.roster import ParticipantRoster, RosterView
from karaoke.services.session_directory import SessionDirectory


@pytest.fixture
async def party(db_session, feed, user_factory):
    host = await user_factory("Host")
    session = await SessionDirectory(db_session, feed).create_session("Party", host.id)
    return session, host


async def test_join_is_idempotent(db_session, feed, recorder, party, user_factory):
    session, _ = party
    guest = await user_factory("Guest")
    roster = ParticipantRoster(db_session, feed)

    first = await roster.join(session.id, guest.id)
    second = await roster.join(session.id, guest.id)

    assert first.id == second.id
    assert await roster.count(session.id) == 2
    guest_inserts = [
        e for e in recorder
        if e.table == "session_participants" and e.event_type == INSERT and e.new["user_id"] == str(guest.id)
    ]
    assert len(guest_inserts) == 1


async def test_join_records_inviter(db_session, feed, party, user_factory):
    session, host = party
    guest = await user_factory("Guest")
    participant = await ParticipantRoster(db_session, feed).join(session.id, guest.id, invited_by=host.id)
    assert participant.invited_by == host.id


async def test_join_closed_session(db_session, feed, party, user_factory):
    session, _ = party
    await SessionDirectory(db_session, feed).close_session(session.id)
    guest = await user_factory("Guest")

    with pytest.raises(InvalidStateError):
        await ParticipantRoster(db_session, feed).join(session.id, guest.id)


async def test_leave(db_session, feed, recorder, party, user_factory):
    session, _ = party
    guest = await user_factory("Guest")
    roster = ParticipantRoster(db_session, feed)
    await roster.join(session.id, guest.id)

    assert await roster.leave(session.id, guest.id) is True
    assert await roster.leave(session.id, guest.id) is False
    assert not await roster.is_member(session.id, guest.id)
    assert recorder[-1].event_type == DELETE


async def test_require_member(db_session, feed, party, user_factory):
    session, host = party
    outsider = await user_factory("Outsider")
    roster = ParticipantRoster(db_session, feed)

    await roster.require_member(session.id, host.id)
    with pytest.raises(PermissionDeniedError):
        await roster.require_member(session.id, outsider.id)


async def test_list_in_join_order(db_session, feed, party, user_factory):
    session, host = party
    roster = ParticipantRoster(db_session, feed)
    a = await user_factory("A")
    b = await user_factory("B")
    await roster.join(session.id, a.id)
    await roster.join(session.id, b.id)

    names = [u.display_name for u in await roster.list(session.id)]
    assert names == ["Host", "A", "B"]


async def test_roster_view_follows_feed(db_session, session_factory, feed, party, user_factory):
    session, _ = party
    roster = ParticipantRoster(db_session, feed)
    view = RosterView(session.id, feed, session_factory)
    await view.load()
    unsubscribe = await feed.subscribe(session.id, "session_participants", view.apply)

    guest = await user_factory("Guest")
    await roster.join(session.id, guest.id)
    assert [u.display_name for u in view.users] == ["Host", "Guest"]

    await roster.leave(session.id, guest.id)
    assert [u.display_name for u in view.users] == ["Host"]
    await unsubscribe()


async def test_roster_view_ignores_duplicate_insert(db_session, session_factory, feed, party, user_factory):
    session, host = party
    view = RosterView(session.id, feed, session_factory)
    await view.load()

    # Notification for a user already in the snapshot
    event = ChangeEvent(
        table="session_participants",
        event_type=INSERT,
        session_id=str(session.id),
        new={"user_id": str(host.id), "session_id": str(session.id)},
    )
    assert await view.apply(event) is False
    assert len(view.users) == 1


async def test_roster_view_ignores_other_sessions(db_session, session_factory, feed, party, user_factory):
    session, _ = party
    other_host = await user_factory("Other")
    other = await SessionDirectory(db_session, feed).create_session("Elsewhere", other_host.id)

    view = RosterView(session.id, feed, session_factory)
    await view.load()
    event = ChangeEvent(
        table="session_participants",
        event_type=INSERT,
        session_id=str(other.id),
        new={"user_id": str(other_host.id)},
    )
    assert await view.apply(event) is False
    assert len(view.users) == 1


async def test_roster_view_holds_no_connection(db_session, test_engine, session_factory, feed, party, user_factory):
    session, _ = party
    view = RosterView(session.id, feed, session_factory)
    unsubscribe = await feed.subscribe(session.id, "session_participants", view.apply)

    in_use = test_engine.pool.checkedout()
    await view.load()
    assert test_engine.pool.checkedout() == in_use

    guest = await user_factory("Guest")
    await ParticipantRoster(db_session, feed).join(session.id, guest.id)
    assert [u.display_name for u in view.users] == ["Host", "Guest"]
    await unsubscribe()
