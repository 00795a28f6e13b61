"""
Change feed: row-level notifications scoped to a session.

ChangeFeed dispatches in-process. RedisChangeFeed routes every event through a
Redis channel per session so all API instances see every write:
  - Single shared PubSub connection per process (not per session)
  - Subscribe on first local subscriber, unsubscribe when the last one leaves
  - A failing callback is logged and never blocks delivery to the others
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID

from redis.asyncio import Redis

from karaoke.core.redis import get_redis_client

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
ANY = "*"


@dataclass
class ChangeEvent:
    table: str
    event_type: str
    session_id: str
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None

    @property
    def record(self) -> Dict[str, Any]:
        return self.new if self.new is not None else (self.old or {})

    def to_json(self) -> str:
        return json.dumps({
            "table": self.table,
            "event_type": self.event_type,
            "session_id": self.session_id,
            "new": self.new,
            "old": self.old,
        })

    @classmethod
    def from_json(cls, raw: str) -> "ChangeEvent":
        data = json.loads(raw)
        return cls(
            table=data["table"],
            event_type=data["event_type"],
            session_id=data["session_id"],
            new=data.get("new"),
            old=data.get("old"),
        )


Callback = Callable[[ChangeEvent], Awaitable[None]]
Predicate = Callable[[Dict[str, Any]], bool]
Unsubscribe = Callable[[], Awaitable[None]]


@dataclass(eq=False)
class _Subscription:
    table: str
    event_type: str
    callback: Callback
    predicate: Optional[Predicate] = None

    def matches(self, event: ChangeEvent) -> bool:
        if self.table != event.table:
            return False
        if self.event_type != ANY and self.event_type != event.event_type:
            return False
        return self.predicate is None or self.predicate(event.record)


def row_payload(row) -> Dict[str, Any]:
    """JSON-safe dict of a model row (UUIDs, datetimes and enums become strings)."""
    return json.loads(row.model_dump_json())


class ChangeFeed:
    """In-process feed. Enough for a single API instance and for tests."""

    def __init__(self):
        self._subscriptions: Dict[str, List[_Subscription]] = {}

    async def publish(self, event: ChangeEvent):
        await self._dispatch(event)

    async def emit(self, table: str, event_type: str, session_id: UUID | str, new=None, old=None):
        """Build and publish an event from model rows."""
        event = ChangeEvent(
            table=table,
            event_type=event_type,
            session_id=str(session_id),
            new=row_payload(new) if new is not None else None,
            old=row_payload(old) if old is not None else None,
        )
        await self.publish(event)

    async def subscribe(
        self,
        session_id: UUID | str,
        table: str,
        callback: Callback,
        event_type: str = ANY,
        predicate: Optional[Predicate] = None,
    ) -> Unsubscribe:
        key = str(session_id)
        sub = _Subscription(table=table, event_type=event_type, callback=callback, predicate=predicate)
        first = key not in self._subscriptions
        self._subscriptions.setdefault(key, []).append(sub)
        if first:
            await self._on_first_subscriber(key)

        async def unsubscribe():
            subs = self._subscriptions.get(key)
            if not subs or sub not in subs:
                return
            subs.remove(sub)
            if not subs:
                del self._subscriptions[key]
                await self._on_last_unsubscribed(key)

        return unsubscribe

    async def _dispatch(self, event: ChangeEvent):
        for sub in list(self._subscriptions.get(event.session_id, [])):
            if not sub.matches(event):
                continue
            try:
                await sub.callback(event)
            except Exception:
                logger.exception(f"Change feed callback failed for {event.table} {event.event_type}")

    async def _on_first_subscriber(self, session_id: str):
        pass

    async def _on_last_unsubscribed(self, session_id: str):
        pass

    def get_stats(self) -> dict:
        return {
            "sessions": len(self._subscriptions),
            "subscriptions": sum(len(s) for s in self._subscriptions.values()),
        }


class RedisChangeFeed(ChangeFeed):
    def __init__(self):
        super().__init__()
        self._pubsub = None
        self._listener_task: asyncio.Task | None = None
        self._subscribed_sessions: set[str] = set()

    @staticmethod
    def _channel(session_id: str) -> str:
        return f"session_events:{session_id}"

    async def publish(self, event: ChangeEvent):
        """Publish to Redis; every instance (this one included) dispatches on receipt."""
        redis: Redis = await get_redis_client()
        await redis.publish(self._channel(event.session_id), event.to_json())

    async def _on_first_subscriber(self, session_id: str):
        await self._ensure_pubsub()
        await self._pubsub.subscribe(self._channel(session_id))
        self._subscribed_sessions.add(session_id)
        logger.info(f"PubSub subscribed: {session_id} (total: {len(self._subscribed_sessions)})")

    async def _on_last_unsubscribed(self, session_id: str):
        if session_id in self._subscribed_sessions and self._pubsub:
            try:
                await self._pubsub.unsubscribe(self._channel(session_id))
                self._subscribed_sessions.discard(session_id)
                logger.info(f"PubSub unsubscribed: {session_id} (total: {len(self._subscribed_sessions)})")
            except Exception as e:
                logger.warning(f"Unsubscribe error for {session_id}: {e}")

    # ─────────────────── shared PubSub ───────────────────

    async def _ensure_pubsub(self):
        """Create shared PubSub connection and listener if not running."""
        if self._pubsub is None:
            redis = await get_redis_client()
            self._pubsub = redis.pubsub()

        if self._listener_task is None or self._listener_task.done():
            self._listener_task = asyncio.create_task(self._shared_listener())
            logger.info("Shared PubSub listener started")

    async def _shared_listener(self):
        """Single background task that receives ALL session events."""
        try:
            async for message in self._pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    event = ChangeEvent.from_json(message["data"])
                except (json.JSONDecodeError, KeyError) as e:
                    logger.warning(f"PubSub parse error: {e}")
                    continue
                await self._dispatch(event)
        except asyncio.CancelledError:
            logger.info("PubSub listener cancelled")
        except Exception as e:
            logger.error(f"PubSub listener crashed: {e}")
            # Auto-restart after brief delay
            await asyncio.sleep(1)
            self._listener_task = asyncio.create_task(self._shared_listener())

    async def close(self):
        if self._listener_task is not None:
            self._listener_task.cancel()
            self._listener_task = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        self._subscribed_sessions.clear()


change_feed: ChangeFeed = RedisChangeFeed()


def get_change_feed() -> ChangeFeed:
    return change_feed
