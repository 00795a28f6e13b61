"""
Client context persistence.

A browser keeps "who am I / which session am I in" across reloads by saving a
SessionContext under its device token.
"""
import json
import logging
from dataclasses import dataclass, asdict
from typing import Optional
from uuid import UUID

from redis.asyncio import Redis

from karaoke.core.redis import get_redis_client

logger = logging.getLogger(__name__)

CONTEXT_TTL = 60 * 60 * 24 * 30  # 30 days


@dataclass(frozen=True)
class SessionContext:
    user_id: Optional[UUID] = None
    session_id: Optional[UUID] = None

    def with_session(self, session_id: Optional[UUID]) -> "SessionContext":
        return SessionContext(user_id=self.user_id, session_id=session_id)

    def to_dict(self) -> dict:
        return {k: str(v) if v is not None else None for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: dict) -> "SessionContext":
        return cls(
            user_id=UUID(data["user_id"]) if data.get("user_id") else None,
            session_id=UUID(data["session_id"]) if data.get("session_id") else None,
        )


class ContextStore:
    """Persistence adapter interface."""

    async def save(self, device_id: str, context: SessionContext) -> None:
        raise NotImplementedError

    async def load(self, device_id: str) -> Optional[SessionContext]:
        raise NotImplementedError

    async def clear(self, device_id: str) -> None:
        raise NotImplementedError


class RedisContextStore(ContextStore):
    def __init__(self, redis: Redis):
        self.redis = redis

    def _key(self, device_id: str) -> str:
        return f"context:{device_id}"

    async def save(self, device_id: str, context: SessionContext) -> None:
        await self.redis.set(self._key(device_id), json.dumps(context.to_dict()), ex=CONTEXT_TTL)

    async def load(self, device_id: str) -> Optional[SessionContext]:
        raw = await self.redis.get(self._key(device_id))
        if not raw:
            return None
        try:
            return SessionContext.from_dict(json.loads(raw))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Discarding unreadable context for {device_id}: {e}")
            await self.clear(device_id)
            return None

    async def clear(self, device_id: str) -> None:
        await self.redis.delete(self._key(device_id))


async def get_context_store() -> ContextStore:
    redis = await get_redis_client()
    return RedisContextStore(redis)
