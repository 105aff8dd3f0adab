"""Async event bus for coordinator lifecycle events.

This module provides an EventBus class for publish/subscribe delivery of
AgentEvents to observers (log shippers, dashboards, tests) per session.

The bus supports:
- Multiple subscribers per session
- Async event delivery via asyncio.Queue
- Buffering of events published before the first subscriber connects
- Session close that terminates all subscribers with a sentinel event
"""

import asyncio
from collections import defaultdict

import structlog

from events.types import AgentEvent, EventType

logger = structlog.get_logger()


class EventBus:
    """Async pub/sub event bus for coordinator sessions.

    Event Buffering:
        Events published before any subscriber connects are buffered.
        When the first subscriber connects, all buffered events are
        delivered immediately, so an observer attached right after a
        session starts does not miss its opening events.

    Usage:
        >>> bus = EventBus()
        >>> queue = bus.subscribe("sess_123")
        >>> await bus.publish(AgentEvent(
        ...     type=EventType.AGENT_SPAWNED,
        ...     session_id="sess_123",
        ...     agent_id="news",
        ... ))
        >>> event = await queue.get()
        >>> await bus.close_session("sess_123")

    Attributes:
        _subscribers: Dict mapping session_id to list of subscriber queues
        _event_buffer: Dict mapping session_id to list of buffered events
    """

    # Upper bound on events buffered for a session nobody has subscribed to.
    MAX_BUFFER_PER_SESSION = 1000

    def __init__(self) -> None:
        """Initialize an empty event bus."""
        self._subscribers: dict[str, list[asyncio.Queue[AgentEvent]]] = defaultdict(list)
        self._event_buffer: dict[str, list[AgentEvent]] = defaultdict(list)
        logger.debug("event_bus_initialized")

    def subscribe(self, session_id: str) -> asyncio.Queue[AgentEvent]:
        """Subscribe to events for a session.

        Buffered events for the session are delivered to the new
        subscriber immediately and then discarded.

        Args:
            session_id: The session to subscribe to

        Returns:
            A queue that receives AgentEvent objects for this session
        """
        queue: asyncio.Queue[AgentEvent] = asyncio.Queue()
        self._subscribers[session_id].append(queue)

        buffered_events = self._event_buffer.pop(session_id, [])
        for event in buffered_events:
            queue.put_nowait(event)

        logger.debug(
            "subscriber_added",
            session_id=session_id,
            subscriber_count=len(self._subscribers[session_id]),
            buffered_events_delivered=len(buffered_events),
        )
        return queue

    def unsubscribe(self, session_id: str, queue: asyncio.Queue[AgentEvent]) -> None:
        """Remove a subscriber queue. Unknown queues are ignored.

        Args:
            session_id: The session to unsubscribe from
            queue: The queue to remove
        """
        queues = self._subscribers.get(session_id)
        if not queues or queue not in queues:
            logger.debug("unsubscribe_queue_not_found", session_id=session_id)
            return

        queues.remove(queue)
        if not queues:
            del self._subscribers[session_id]

    async def publish(self, event: AgentEvent) -> None:
        """Publish an event to all subscribers of its session.

        If there are no subscribers the event is buffered. A failing
        subscriber queue never prevents delivery to the others.

        Args:
            event: The AgentEvent to publish
        """
        subscribers = list(self._subscribers.get(event.session_id, []))

        if not subscribers:
            buffer = self._event_buffer[event.session_id]
            buffer.append(event)
            if len(buffer) > self.MAX_BUFFER_PER_SESSION:
                del buffer[0]
            return

        for queue in subscribers:
            try:
                await queue.put(event)
            except Exception as e:
                logger.warning(
                    "event_delivery_failed",
                    session_id=event.session_id,
                    event_type=event.type.value,
                    error=str(e),
                )

        logger.debug(
            "event_published",
            session_id=event.session_id,
            event_type=event.type.value,
            subscriber_count=len(subscribers),
            agent_id=event.agent_id,
        )

    async def close_session(self, session_id: str) -> None:
        """Close a session and signal its subscribers.

        Each subscriber receives a SESSION_CLOSED sentinel so read loops can
        exit. Subscribers and buffered events are then dropped.

        Args:
            session_id: The session to close
        """
        queues = self._subscribers.pop(session_id, [])
        self._event_buffer.pop(session_id, None)

        for queue in queues:
            queue.put_nowait(
                AgentEvent(
                    type=EventType.SESSION_CLOSED,
                    session_id=session_id,
                    data={"reason": "session_closed"},
                )
            )

        logger.debug(
            "session_closed",
            session_id=session_id,
            subscribers_signalled=len(queues),
        )

    def get_subscriber_count(self, session_id: str) -> int:
        """Number of subscribers for a session."""
        return len(self._subscribers.get(session_id, []))
