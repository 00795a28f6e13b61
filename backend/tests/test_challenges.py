"""Tests for the challenge lifecycle."""
import pytest

from karaoke.core.errors import InvalidArgumentError, InvalidStateError, NotFoundError
from karaoke.models.challenge import ChallengeStatus
from karaoke.schemas.queue import SongIn
from karaoke.services.challenges import ChallengeLedger
from karaoke.services.roster import ParticipantRoster
from karaoke.services.session_directory import SessionDirectory
from karaoke.services.song_queue import SongQueue


def _as_song_in(song):
    return SongIn(youtube_id=song.youtube_id, title=song.title, artist=song.artist)


@pytest.fixture
async def duel(db_session, feed, user_factory, song_factory):
    host = await user_factory("Host")
    rival = await user_factory("Rival")
    session = await SessionDirectory(db_session, feed).create_session("Party", host.id)
    await ParticipantRoster(db_session, feed).join(session.id, rival.id)
    song = await SongQueue(db_session, feed).get_or_create_song(song_factory(title="My Way"))
    return session, host, rival, song


async def test_accept_then_complete(db_session, feed, recorder, duel):
    session, host, rival, song = duel
    ledger = ChallengeLedger(db_session, feed)

    challenge = await ledger.create(session.id, host.id, rival.id, song.id, "  You got this  ")
    assert challenge.status == ChallengeStatus.PENDING
    assert challenge.message == "You got this"

    accepted = await ledger.respond(challenge.id, accept=True)
    assert accepted.status == ChallengeStatus.ACCEPTED
    assert accepted.responded_at is not None

    item = await SongQueue(db_session, feed).enqueue(session.id, _as_song_in(song), rival.id)
    completed = await ledger.complete(challenge.id, item.id)
    assert completed.status == ChallengeStatus.COMPLETED
    assert completed.queue_item_id == item.id
    assert completed.completed_at is not None

    linked = await SongQueue(db_session, feed).get_item(item.id)
    assert linked.is_challenge is True
    assert linked.challenged_user_id == rival.id
    assert linked.challenge_accepted is True

    statuses = [e.new["status"] for e in recorder if e.table == "challenges"]
    assert statuses == ["pending", "accepted", "completed"]


async def test_decline_is_final(db_session, feed, duel):
    session, host, rival, song = duel
    ledger = ChallengeLedger(db_session, feed)
    challenge = await ledger.create(session.id, host.id, rival.id, song.id)

    declined = await ledger.respond(challenge.id, accept=False)
    assert declined.status == ChallengeStatus.DECLINED

    with pytest.raises(InvalidStateError):
        await ledger.respond(challenge.id, accept=True)


async def test_complete_requires_acceptance(db_session, feed, duel):
    session, host, rival, song = duel
    ledger = ChallengeLedger(db_session, feed)
    challenge = await ledger.create(session.id, host.id, rival.id, song.id)
    item = await SongQueue(db_session, feed).enqueue(session.id, _as_song_in(song), rival.id)

    with pytest.raises(InvalidStateError):
        await ledger.complete(challenge.id, item.id)


async def test_respond_twice_race(db_session, session_factory, feed, duel):
    session, host, rival, song = duel
    challenge = await ChallengeLedger(db_session, feed).create(session.id, host.id, rival.id, song.id)

    # The first session still holds the pending row when the second answers
    async with session_factory() as other_db:
        await ChallengeLedger(other_db, feed).respond(challenge.id, accept=False)

    with pytest.raises(InvalidStateError):
        await ChallengeLedger(db_session, feed).respond(challenge.id, accept=True)


async def test_cannot_challenge_yourself(db_session, feed, duel):
    session, host, _, song = duel
    with pytest.raises(InvalidArgumentError):
        await ChallengeLedger(db_session, feed).create(session.id, host.id, host.id, song.id)


async def test_unknown_song(db_session, feed, duel):
    from uuid import uuid4

    session, host, rival, _ = duel
    with pytest.raises(NotFoundError):
        await ChallengeLedger(db_session, feed).create(session.id, host.id, rival.id, uuid4())


async def test_listings(db_session, feed, duel):
    session, host, rival, song = duel
    ledger = ChallengeLedger(db_session, feed)
    first = await ledger.create(session.id, host.id, rival.id, song.id)
    second = await ledger.create(session.id, rival.id, host.id, song.id)
    await ledger.respond(second.id, accept=True)

    assert [c.id for c in await ledger.list_pending_for(rival.id)] == [first.id]
    assert await ledger.list_pending_for(host.id) == []
    assert len(await ledger.list_for_session(session.id)) == 2
    accepted = await ledger.list_for_session(session.id, ChallengeStatus.ACCEPTED)
    assert [c.id for c in accepted] == [second.id]
