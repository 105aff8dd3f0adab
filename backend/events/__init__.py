"""Lifecycle event system for coordinator observability.

The coordinator publishes AgentEvents describing session and agent lifecycle
to an EventBus. This is a side channel for observers; the A2UI message stream
itself is returned directly by the coordinator.

Usage:
    >>> from events import EventBus, EventType
    >>>
    >>> bus = EventBus()
    >>> queue = bus.subscribe(session_id)
    >>> event = await queue.get()
    >>> print(f"Received: {event.type.value}")
"""

from events.bus import EventBus
from events.types import AgentEvent, EventType

__all__ = [
    "AgentEvent",
    "EventBus",
    "EventType",
]
