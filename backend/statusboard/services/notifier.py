"""Real-time fan-out of incident changes over Redis pub/sub."""

import asyncio
import enum
import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, AsyncIterator, Protocol
from uuid import UUID

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from statusboard.config import get_settings
from statusboard.errors import NotifyError

logger = logging.getLogger(__name__)


class IncidentOperation(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"

    @property
    def event_name(self) -> str:
        return _EVENT_NAMES[self]


_EVENT_NAMES = {
    IncidentOperation.CREATE: "incident-created",
    IncidentOperation.UPDATE: "incident-updated",
}


class RealtimeTransport(Protocol):
    async def publish(self, channel: str, event: str, payload: Any) -> None:
        ...


class RedisTransport:
    """
    Publishes events as JSON envelopes on Redis channels.

    Envelope Format:
    {
        "event": "incident-created",
        "data": {...hydrated incident...}
    }
    """

    def __init__(self, redis_url: str | None = None):
        settings = get_settings()
        self.redis_url = redis_url or settings.redis_url
        self._redis: aioredis.Redis | None = None

    async def _get_redis(self) -> aioredis.Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def publish(self, channel: str, event: str, payload: Any) -> None:
        message = json.dumps({"event": event, "data": payload})
        try:
            redis = await self._get_redis()
            receivers = await redis.publish(channel, message)
        except (RedisError, ValueError) as exc:
            raise NotifyError(f"Publish to {channel} failed: {exc}") from exc
        logger.debug("Published %s on %s to %d subscribers", event, channel, receivers)

    async def subscribe(self, channel: str) -> AsyncIterator[dict]:
        """Yield decoded envelopes published on ``channel`` until cancelled."""
        redis = await self._get_redis()
        pubsub = redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    yield json.loads(message["data"])
                except json.JSONDecodeError:
                    logger.warning("Dropping malformed message on %s", channel)
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()


@dataclass
class PublishOutcome:
    channel: str
    event: str
    delivered: bool
    error: str | None = None


def channel_for(org_id: UUID) -> str:
    return f"{get_settings().realtime_channel_prefix}{org_id}"


class IncidentNotifier:
    """Single-attempt, time-bounded publisher. Failures are reported, not raised."""

    def __init__(self, transport: RealtimeTransport, timeout: float | None = None):
        self.transport = transport
        self.timeout = timeout if timeout is not None else get_settings().notify_timeout_seconds

    async def publish_incident(
        self,
        org_id: UUID,
        operation: IncidentOperation,
        payload: dict,
    ) -> PublishOutcome:
        channel = channel_for(org_id)
        event = operation.event_name
        try:
            await asyncio.wait_for(
                self.transport.publish(channel, event, payload),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            error = f"timed out after {self.timeout}s"
        except NotifyError as exc:
            error = str(exc)
        except Exception as exc:
            logger.exception("Unexpected error publishing %s on %s", event, channel)
            error = f"{type(exc).__name__}: {exc}"
        else:
            return PublishOutcome(channel=channel, event=event, delivered=True)

        logger.warning(
            "Notify failed: event=%s channel=%s incident=%s notify_status=failed error=%s",
            event,
            channel,
            payload.get("id"),
            error,
        )
        return PublishOutcome(channel=channel, event=event, delivered=False, error=error)


@lru_cache
def get_transport() -> RedisTransport:
    return RedisTransport()


def get_notifier() -> IncidentNotifier:
    return IncidentNotifier(get_transport())
