"""Event type definitions for coordinator observability.

These events describe orchestration lifecycle (sessions and agents) for
dashboards and logs. They travel on the EventBus, separate from the A2UI
message stream the consumer renders.
"""

import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class EventType(StrEnum):
    """All lifecycle event types emitted by the coordinator."""

    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_COMPLETE = "session_complete"
    SESSION_ERROR = "session_error"
    SESSION_CLOSED = "session_closed"

    # Agent lifecycle
    AGENT_SPAWNED = "agent_spawned"
    AGENT_COMPLETE = "agent_complete"
    AGENT_ERROR = "agent_error"


class AgentEvent(BaseModel):
    """A lifecycle event emitted during a coordinator session.

    Payload schemas by event type:

    SESSION_STARTED:
        - request: str - The request being orchestrated
        - agents: list[str] - Agent ids in flush order

    AGENT_SPAWNED:
        - role: str - The agent's role
        - mount_id: str - Shell component the agent fills

    AGENT_COMPLETE:
        - message_count: int - Messages in the agent's sequence
        - duration_ms: int - Wall time of the agent run

    AGENT_ERROR:
        - error: str - Error message
        - error_type: str - Exception class name

    SESSION_COMPLETE:
        - message_count: int - Messages emitted on the merged stream
        - duration_ms: int - Wall time of the session

    SESSION_ERROR:
        - error: str - Error message
        - phase: str - Coordinator phase that failed
    """

    type: EventType
    timestamp: float = Field(default_factory=time.time)
    session_id: str
    agent_id: str | None = None
    agent_role: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "type": "agent_spawned",
                    "timestamp": 1699876543.123,
                    "session_id": "sess_abc123def456",
                    "agent_id": "market_data",
                    "agent_role": "Market Data Agent",
                    "data": {
                        "role": "Market Data Agent",
                        "mount_id": "market_root",
                    },
                }
            ]
        }
    }
