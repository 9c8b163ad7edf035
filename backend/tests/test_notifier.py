"""Tests for real-time incident notification."""

import json
import uuid
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from statusboard.errors import NotifyError
from statusboard.services.notifier import (
    IncidentNotifier,
    IncidentOperation,
    RedisTransport,
    channel_for,
)


ORG_ID = uuid.uuid4()
PAYLOAD = {"id": str(uuid.uuid4()), "title": "API latency issues", "services": []}


class TestEventNames:

    def test_operations_map_to_distinct_events(self):
        assert IncidentOperation.CREATE.event_name == "incident-created"
        assert IncidentOperation.UPDATE.event_name == "incident-updated"

    def test_channel_is_namespaced_by_organization(self):
        assert channel_for(ORG_ID) == f"org-{ORG_ID}"


class TestIncidentNotifier:

    @pytest.mark.asyncio
    async def test_successful_publish(self, notifier, transport):
        outcome = await notifier.publish_incident(ORG_ID, IncidentOperation.CREATE, PAYLOAD)

        assert outcome.delivered is True
        assert outcome.error is None
        assert transport.events == [(f"org-{ORG_ID}", "incident-created", PAYLOAD)]

    @pytest.mark.asyncio
    async def test_transport_failure_is_captured(self, notifier, transport, caplog):
        transport.fail = True

        outcome = await notifier.publish_incident(ORG_ID, IncidentOperation.UPDATE, PAYLOAD)

        assert outcome.delivered is False
        assert "transport unavailable" in outcome.error
        assert "notify_status=failed" in caplog.text

    @pytest.mark.asyncio
    async def test_publish_is_bounded_by_timeout(self, transport):
        transport.delay = 1.0
        notifier = IncidentNotifier(transport, timeout=0.05)

        outcome = await notifier.publish_incident(ORG_ID, IncidentOperation.CREATE, PAYLOAD)

        assert outcome.delivered is False
        assert "timed out" in outcome.error
        assert transport.events == []

    @pytest.mark.asyncio
    async def test_single_attempt_only(self, transport):
        transport.fail = True
        transport.publish = AsyncMock(side_effect=NotifyError("down"))
        notifier = IncidentNotifier(transport, timeout=0.5)

        await notifier.publish_incident(ORG_ID, IncidentOperation.CREATE, PAYLOAD)

        assert transport.publish.await_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_captured(self, transport, caplog):
        transport.publish = AsyncMock(side_effect=RuntimeError("socket closed"))
        notifier = IncidentNotifier(transport, timeout=0.5)

        outcome = await notifier.publish_incident(ORG_ID, IncidentOperation.UPDATE, PAYLOAD)

        assert outcome.delivered is False
        assert outcome.error == "RuntimeError: socket closed"
        assert "Unexpected error publishing" in caplog.text


class TestRedisTransport:

    @pytest.mark.asyncio
    async def test_publishes_json_envelope(self):
        redis = AsyncMock()
        redis.publish.return_value = 3
        transport = RedisTransport("redis://example:6379")

        with patch.object(transport, "_get_redis", AsyncMock(return_value=redis)):
            await transport.publish("org-1", "incident-created", PAYLOAD)

        channel, message = redis.publish.await_args.args
        assert channel == "org-1"
        assert json.loads(message) == {"event": "incident-created", "data": PAYLOAD}

    @pytest.mark.asyncio
    async def test_redis_errors_become_notify_errors(self):
        redis = AsyncMock()
        redis.publish.side_effect = RedisConnectionError("Connection refused")
        transport = RedisTransport("redis://example:6379")

        with patch.object(transport, "_get_redis", AsyncMock(return_value=redis)):
            with pytest.raises(NotifyError):
                await transport.publish("org-1", "incident-created", PAYLOAD)

    @pytest.mark.asyncio
    async def test_invalid_url_becomes_notify_error(self):
        transport = RedisTransport("notredis://host:1")

        with pytest.raises(NotifyError):
            await transport.publish("org-1", "incident-created", PAYLOAD)
