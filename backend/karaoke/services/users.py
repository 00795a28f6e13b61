import logging
from uuid import UUID

from sqlmodel.ext.asyncio.session import AsyncSession

from karaoke.core.errors import InvalidArgumentError, NotFoundError
from karaoke.models.user import User, DEFAULT_AVATAR
from karaoke.utils.datetime_helpers import utcnow

logger = logging.getLogger(__name__)

MAX_DISPLAY_NAME = 50


class UserService:
    """Bare identity rows; no credentials."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, display_name: str, avatar_emoji: str | None = None) -> User:
        name = (display_name or "").strip()
        if not name:
            raise InvalidArgumentError("Please enter a display name")
        if len(name) > MAX_DISPLAY_NAME:
            raise InvalidArgumentError(f"Display name must be at most {MAX_DISPLAY_NAME} characters")

        user = User(display_name=name, avatar_emoji=(avatar_emoji or "").strip() or DEFAULT_AVATAR)
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"Created user {user.id} ({name})")
        return user

    async def get(self, user_id: UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def touch(self, user_id: UUID) -> User:
        user = await self.get(user_id)
        user.last_seen = utcnow()
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user
