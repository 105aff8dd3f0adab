"""Agent runners: failure-contained wrappers around message producers.

An agent turns a request (a topic, a symbol) into a finite ordered list of
protocol messages. AgentRunner.run never lets an Exception escape: a failed
agent is reported as a single SurfaceUpdate that replaces the agent's mount
component with an error text, so the failure shows up where the agent's
content would have been.

Caller contract:
    Component ids must be unique across all agents of a coordinator session.
    Runners do not namespace or deduplicate ids.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

import structlog

from protocol.messages import ProtocolMessage, SurfaceUpdate, text_component

logger = structlog.get_logger()


@dataclass
class AgentResult:
    """Outcome of one agent run.

    Attributes:
        agent_id: The agent that produced the result
        messages: The agent's message sequence (the failure fragment on error)
        error: Error text if the agent failed, None otherwise
        error_type: Exception class name of the failure
        duration_ms: Wall time of the run
    """

    agent_id: str
    messages: list[ProtocolMessage] = field(default_factory=list)
    error: str | None = None
    error_type: str | None = None
    duration_ms: int = 0

    @property
    def failed(self) -> bool:
        return self.error is not None


class AgentRunner(ABC):
    """Base class for agents driven by the coordinator.

    Subclasses implement produce(); callers use run() or execute().

    Attributes:
        agent_id: Stable identifier, also used in logs and events
        role: Human-readable role shown in status metadata
        mount_id: Shell component id the agent's root fills
    """

    def __init__(self, agent_id: str, role: str, mount_id: str | None = None) -> None:
        self.agent_id = agent_id
        self.role = role
        self.mount_id = mount_id or f"{agent_id}_root"

    @abstractmethod
    async def produce(self, request: str) -> list[ProtocolMessage]:
        """Produce the agent's message sequence. May raise."""

    async def execute(self, request: str) -> AgentResult:
        """Run the agent and capture its outcome without raising.

        Args:
            request: Task-specific request value

        Returns:
            AgentResult with either the produced messages or the failure fragment
        """
        start_time = time.time()
        logger.info("agent_run_started", agent_id=self.agent_id, role=self.role)

        try:
            messages = list(await self.produce(request))
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "agent_run_failed",
                agent_id=self.agent_id,
                error_type=type(e).__name__,
                error=str(e),
                duration_ms=duration_ms,
            )
            return AgentResult(
                agent_id=self.agent_id,
                messages=[self.failure_message(e)],
                error=f"{type(e).__name__}: {e}",
                error_type=type(e).__name__,
                duration_ms=duration_ms,
            )

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "agent_run_complete",
            agent_id=self.agent_id,
            message_count=len(messages),
            duration_ms=duration_ms,
        )
        return AgentResult(agent_id=self.agent_id, messages=messages, duration_ms=duration_ms)

    async def run(self, request: str) -> list[ProtocolMessage]:
        """Run the agent and return its message sequence. Never raises Exception."""
        result = await self.execute(request)
        return result.messages

    def failure_message(self, error: Exception) -> SurfaceUpdate:
        """Build the displayable fragment that stands in for a failed agent."""
        detail = str(error) or type(error).__name__
        return SurfaceUpdate(
            components=[
                text_component(self.mount_id, f"{self.role} failed: {detail}", usage_hint="Body"),
            ]
        )


class StaticAgent(AgentRunner):
    """Agent that returns a fixed message sequence, optionally after a delay."""

    def __init__(
        self,
        agent_id: str,
        role: str,
        messages: Sequence[ProtocolMessage],
        mount_id: str | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        super().__init__(agent_id, role, mount_id)
        self.messages = list(messages)
        self.delay_seconds = delay_seconds

    async def produce(self, request: str) -> list[ProtocolMessage]:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        return list(self.messages)


class CallableAgent(AgentRunner):
    """Agent backed by an async function of the request."""

    def __init__(
        self,
        agent_id: str,
        role: str,
        func: Callable[[str], Awaitable[Sequence[ProtocolMessage]]],
        mount_id: str | None = None,
    ) -> None:
        super().__init__(agent_id, role, mount_id)
        self.func = func

    async def produce(self, request: str) -> list[ProtocolMessage]:
        return list(await self.func(request))
