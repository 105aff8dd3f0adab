"""Tests for events/bus.py -- lifecycle event delivery for coordinator sessions.

Covers delivery to subscribers, buffering before the first subscriber, the
SESSION_CLOSED sentinel, unsubscribe, bounded buffering and isolation of a
failing subscriber.
"""

import asyncio

from events.bus import EventBus
from events.types import AgentEvent, EventType

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _spawned(session_id: str = "sess_btc", agent_id: str = "news") -> AgentEvent:
    return AgentEvent(
        type=EventType.AGENT_SPAWNED,
        session_id=session_id,
        agent_id=agent_id,
        agent_role="News Agent",
        data={"role": "News Agent", "mount_id": f"{agent_id}_root"},
    )


async def _next(queue: asyncio.Queue[AgentEvent]) -> AgentEvent:
    return await asyncio.wait_for(queue.get(), timeout=1.0)


# =========================================================================
# Delivery
# =========================================================================


class TestDelivery:
    """Events reach every subscriber of their own session only."""

    async def test_subscriber_receives_event(self, event_bus: EventBus) -> None:
        queue = event_bus.subscribe("sess_btc")
        await event_bus.publish(_spawned())
        event = await _next(queue)
        assert event.type == EventType.AGENT_SPAWNED
        assert event.data["mount_id"] == "news_root"

    async def test_fan_out_to_all_subscribers(self, event_bus: EventBus) -> None:
        dashboard = event_bus.subscribe("sess_btc")
        log_shipper = event_bus.subscribe("sess_btc")
        await event_bus.publish(_spawned())
        assert (await _next(dashboard)).agent_id == "news"
        assert (await _next(log_shipper)).agent_id == "news"

    async def test_sessions_are_isolated(self, event_bus: EventBus) -> None:
        btc = event_bus.subscribe("sess_btc")
        eth = event_bus.subscribe("sess_eth")
        await event_bus.publish(_spawned("sess_btc"))
        assert (await _next(btc)).session_id == "sess_btc"
        assert eth.empty()

    async def test_order_preserved(self, event_bus: EventBus) -> None:
        queue = event_bus.subscribe("sess_btc")
        for agent_id in ("market_data", "news"):
            await event_bus.publish(_spawned(agent_id=agent_id))
        assert [(await _next(queue)).agent_id for _ in range(2)] == ["market_data", "news"]


# =========================================================================
# Buffering
# =========================================================================


class TestBuffering:
    """Events published before anyone subscribes are held for the first subscriber."""

    async def test_first_subscriber_gets_backlog(self, event_bus: EventBus) -> None:
        await event_bus.publish(AgentEvent(type=EventType.SESSION_STARTED, session_id="sess_btc"))
        await event_bus.publish(_spawned())

        queue = event_bus.subscribe("sess_btc")

        assert (await _next(queue)).type == EventType.SESSION_STARTED
        assert (await _next(queue)).type == EventType.AGENT_SPAWNED

    async def test_backlog_delivered_once(self, event_bus: EventBus) -> None:
        await event_bus.publish(_spawned())
        first = event_bus.subscribe("sess_btc")
        second = event_bus.subscribe("sess_btc")
        assert first.qsize() == 1
        assert second.empty()

    async def test_buffer_keeps_most_recent_events(self, event_bus: EventBus) -> None:
        limit = EventBus.MAX_BUFFER_PER_SESSION
        for index in range(limit + 5):
            await event_bus.publish(
                AgentEvent(
                    type=EventType.AGENT_COMPLETE,
                    session_id="sess_btc",
                    data={"message_count": index},
                )
            )

        queue = event_bus.subscribe("sess_btc")

        assert queue.qsize() == limit
        assert queue.get_nowait().data["message_count"] == 5


# =========================================================================
# Unsubscribe
# =========================================================================


class TestUnsubscribe:
    """Removing a queue stops delivery to it."""

    async def test_unsubscribed_queue_gets_nothing(self, event_bus: EventBus) -> None:
        queue = event_bus.subscribe("sess_btc")
        event_bus.unsubscribe("sess_btc", queue)
        await event_bus.publish(_spawned())
        assert queue.empty()
        assert event_bus.get_subscriber_count("sess_btc") == 0

    async def test_unknown_session_ignored(self, event_bus: EventBus) -> None:
        event_bus.unsubscribe("sess_missing", asyncio.Queue())

    async def test_foreign_queue_ignored(self, event_bus: EventBus) -> None:
        event_bus.subscribe("sess_btc")
        event_bus.unsubscribe("sess_btc", asyncio.Queue())
        assert event_bus.get_subscriber_count("sess_btc") == 1


# =========================================================================
# close_session
# =========================================================================


class TestCloseSession:
    """Closing a session signals and drops its subscribers."""

    async def test_every_subscriber_gets_sentinel(self, event_bus: EventBus) -> None:
        queues = [event_bus.subscribe("sess_btc") for _ in range(2)]
        await event_bus.close_session("sess_btc")
        for queue in queues:
            sentinel = await _next(queue)
            assert sentinel.type == EventType.SESSION_CLOSED
            assert sentinel.session_id == "sess_btc"
        assert event_bus.get_subscriber_count("sess_btc") == 0

    async def test_close_discards_backlog(self, event_bus: EventBus) -> None:
        await event_bus.publish(_spawned())
        await event_bus.close_session("sess_btc")
        assert event_bus.subscribe("sess_btc").empty()

    async def test_close_unknown_session(self, event_bus: EventBus) -> None:
        await event_bus.close_session("sess_missing")
        assert event_bus.get_subscriber_count("sess_missing") == 0


# =========================================================================
# Error isolation
# =========================================================================


class TestErrorIsolation:
    """One broken subscriber never blocks the others."""

    async def test_failing_queue_does_not_block_delivery(self, event_bus: EventBus) -> None:
        broken = event_bus.subscribe("sess_btc")
        healthy = event_bus.subscribe("sess_btc")
        attempts = 0

        async def failing_put(item: AgentEvent) -> None:
            nonlocal attempts
            attempts += 1
            raise RuntimeError("subscriber gone")

        broken.put = failing_put  # type: ignore[method-assign]

        await event_bus.publish(_spawned())

        assert attempts == 1
        assert healthy.get_nowait().type == EventType.AGENT_SPAWNED


# =========================================================================
# AgentEvent
# =========================================================================


class TestAgentEvent:
    """Model defaults and serialization."""

    def test_defaults(self) -> None:
        event = AgentEvent(type=EventType.SESSION_STARTED, session_id="sess_btc")
        assert event.agent_id is None
        assert event.data == {}
        assert event.timestamp > 0

    def test_json_round_trip(self) -> None:
        event = _spawned()
        restored = AgentEvent.model_validate_json(event.model_dump_json())
        assert restored == event
        assert restored.type == EventType.AGENT_SPAWNED
