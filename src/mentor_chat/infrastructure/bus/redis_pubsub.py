"""Change feed over Redis Pub/Sub: one channel per conversation."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable
from uuid import UUID

import pydantic
import redis.asyncio as aioredis

from mentor_chat.application.ports.change_feed import OnChange
from mentor_chat.domain.value_objects.enums import ChangeKind
from mentor_chat.infrastructure.bus.serializer import decode_change, serialize_event

logger = logging.getLogger(__name__)

ChannelName = Callable[[UUID], str]


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, event_type: str, payload: dict[str, Any]) -> None:
        await self._redis.publish(channel, serialize_event(event_type, payload))


class RedisFeedSubscription:
    """Background task that listens to one conversation channel."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        on_insert: OnChange,
        on_update: OnChange,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._handlers = {ChangeKind.INSERT: on_insert, ChangeKind.UPDATE: on_update}
        self._ready = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name=f"change-feed-{self._channel}")
        ready = asyncio.create_task(self._ready.wait())
        await asyncio.wait({ready, self._task}, return_when=asyncio.FIRST_COMPLETED)
        if not self._ready.is_set():
            ready.cancel()
            self._task.result()
        logger.info("Change feed subscribed: channel=%s", self._channel)

    async def unsubscribe(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Change feed unsubscribed: channel=%s", self._channel)

    async def dispatch(self, raw: str | bytes) -> None:
        try:
            event = decode_change(raw)
        except (ValueError, KeyError, pydantic.ValidationError):
            logger.warning("Dropping malformed feed payload on %s", self._channel, exc_info=True)
            return
        await self._handlers[event.kind](event)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        self._ready.set()
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    await self.dispatch(message["data"])
                except Exception:
                    logger.exception("Error processing feed message on %s", self._channel)
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()


class RedisChangeFeed:
    """Implements application.ports.change_feed.ChangeFeed."""

    def __init__(self, redis: aioredis.Redis, channel_name: ChannelName) -> None:
        self._redis = redis
        self._channel_name = channel_name

    async def subscribe(
        self,
        conversation_id: UUID,
        on_insert: OnChange,
        on_update: OnChange,
    ) -> RedisFeedSubscription:
        subscription = RedisFeedSubscription(
            self._redis, self._channel_name(conversation_id), on_insert, on_update,
        )
        await subscription.start()
        return subscription
