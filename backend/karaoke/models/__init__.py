from karaoke.models.user import User
from karaoke.models.session import Session, Participant
from karaoke.models.song import Song, QueueItem, QueueStatus
from karaoke.models.vote import SkipVote, Rating
from karaoke.models.challenge import Challenge, ChallengeStatus
from karaoke.models.invitation import SessionInvitation

__all__ = [
    "User",
    "Session",
    "Participant",
    "Song",
    "QueueItem",
    "QueueStatus",
    "SkipVote",
    "Rating",
    "Challenge",
    "ChallengeStatus",
    "SessionInvitation",
]
