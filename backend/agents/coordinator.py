"""Multi-agent coordinator LangGraph implementation.

The coordinator turns one request into a single merged A2UI message stream
built from several agents' output.

Session phases:
    INIT -> ANNOUNCE -> DISPATCH -> FLUSH -> FINALIZE -> DONE
                  (any uncaught failure) -> TERMINAL

Graph structure (dispatch phase only):
    START -> dispatch -> run_agent(×N) -> END

Agents run concurrently and are joined, never interleaved: the merged stream
carries each agent's full sequence in configured agent order, regardless of
which agent finished first. Identical agent results therefore always produce
an identical merged stream.

Events emitted (when an EventBus is supplied):
- SESSION_STARTED, SESSION_COMPLETE, SESSION_ERROR
- AGENT_SPAWNED, AGENT_COMPLETE, AGENT_ERROR
The session is closed on the bus when the stream ends, so subscribers get
SESSION_CLOSED last and nothing stays buffered.
"""

import asyncio
import operator
import time
from collections.abc import AsyncIterator, Sequence
from enum import StrEnum
from typing import Annotated, Any, TypedDict
from uuid import uuid4

import structlog
from langgraph.graph import END, START, StateGraph
from langgraph.types import Send

from agents.runner import AgentResult, AgentRunner
from agents.specialists import create_default_agents
from config import settings
from events.bus import EventBus
from events.types import AgentEvent, EventType
from protocol.messages import (
    CONTEXT_TAG,
    PROTOCOL_VERSION,
    BeginRendering,
    ComponentEntry,
    DataModelUpdate,
    ProtocolMessage,
    StatusEvent,
    SurfaceUpdate,
    column_component,
    status_event,
    text_component,
)

logger = structlog.get_logger()

HEADER_ID = "header"
ERROR_ROOT_ID = "error_root"
DIVIDER_TEXT = "─" * 40

STATUS_COORDINATOR_ACTIVE = "COORDINATOR_ACTIVE"
STATUS_DELEGATING = "DELEGATING_TO_AGENTS"


class CoordinatorPhase(StrEnum):
    """Phases of a coordinator session."""

    INIT = "init"
    ANNOUNCE = "announce"
    DISPATCH = "dispatch"
    FLUSH = "flush"
    FINALIZE = "finalize"
    TERMINAL = "terminal"
    DONE = "done"


class IndexedResult(TypedDict):
    """An agent result tagged with the agent's configured position."""

    agent_index: int
    result: AgentResult


class CoordinatorState(TypedDict):
    """State for the dispatch graph.

    Attributes:
        session_id: Unique identifier for this session
        request: The request every agent receives
        results: Agent results in completion order (reducer: append)
    """

    session_id: str
    request: str
    results: Annotated[list[IndexedResult], operator.add]


def divider_id(index: int) -> str:
    """Id of the divider placed before the agent at ``index`` (index >= 1)."""
    return "divider" if index == 1 else f"divider_{index}"


def find_id_collisions(
    results: Sequence[AgentResult],
    reserved: dict[str, str],
) -> dict[str, list[str]]:
    """Find component ids registered by more than one owner.

    Args:
        results: Agent results in flush order
        reserved: Ids already owned before any agent ran, mapped to the owner
            (the coordinator for shell ids, the agent for its mount id)

    Returns:
        Mapping of colliding id to every owner that registered it, in order
    """
    owners: dict[str, list[str]] = {
        component_id: [owner] for component_id, owner in reserved.items()
    }
    for result in results:
        for message in result.messages:
            if not isinstance(message, SurfaceUpdate):
                continue
            for entry in message.components:
                claimed = owners.setdefault(entry.id, [])
                if result.agent_id not in claimed:
                    claimed.append(result.agent_id)

    return {
        component_id: claimed
        for component_id, claimed in owners.items()
        if len(claimed) > 1
    }


class Coordinator:
    """Fans a request out to agents and merges their output into one stream.

    Caller contract:
        Agents must keep component ids unique across the session. Collisions
        are logged as ``agent_id_collision`` warnings but never rewritten;
        the later agent in flush order wins in the consumer's registry.

    Attributes:
        agents: Agents in flush order
        event_bus: Optional bus for lifecycle events
        root_id: Id of the shell's root Column
        title_template: ``str.format`` template for the header text
        timeout_seconds: Wall-time cap for the dispatch phase
        status_delay: Pause after the first status event, advisory only
    """

    def __init__(
        self,
        agents: Sequence[AgentRunner],
        event_bus: EventBus | None = None,
        root_id: str | None = None,
        title_template: str = "{request} Analysis Dashboard",
        timeout_seconds: float | None = None,
        status_delay: float | None = None,
        scenario: str | None = None,
    ) -> None:
        self.agents = list(agents)
        self.event_bus = event_bus
        self.root_id = root_id or settings.coordinator_root_id
        self.title_template = title_template
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None
            else settings.orchestration_timeout_seconds
        )
        self.status_delay = (
            status_delay if status_delay is not None
            else settings.status_event_delay_seconds
        )
        self.scenario = scenario
        self._compiled_graph = self._build_graph()

    def _build_graph(self) -> Any:
        """Build and compile the dispatch graph.

        Returns:
            Compiled StateGraph ready for execution
        """
        graph = StateGraph(CoordinatorState)

        graph.add_node("dispatch", self._dispatch)
        graph.add_node("run_agent", self._run_agent)

        graph.add_edge(START, "dispatch")
        graph.add_conditional_edges("dispatch", self._fan_out, ["run_agent"])
        graph.add_edge("run_agent", END)

        return graph.compile()

    # -------------------------------------------------------------------------
    # Shell
    # -------------------------------------------------------------------------

    def shell_layout(self) -> list[str]:
        """Child ids of the root Column: header, then mounts split by dividers."""
        layout = [HEADER_ID]
        for index, agent in enumerate(self.agents):
            if index > 0:
                layout.append(divider_id(index))
            layout.append(agent.mount_id)
        return layout

    def reserved_ids(self) -> dict[str, str]:
        """Shell ids mapped to their owner."""
        reserved = {self.root_id: "coordinator", HEADER_ID: "coordinator"}
        for index, agent in enumerate(self.agents):
            if index > 0:
                reserved[divider_id(index)] = "coordinator"
            reserved[agent.mount_id] = agent.agent_id
        return reserved

    def init_messages(self, request: str) -> list[ProtocolMessage]:
        """Shell messages: the root Column, then header, dividers and empty mounts."""
        components: list[ComponentEntry] = [
            text_component(HEADER_ID, self.title_template.format(request=request), usage_hint="H1"),
        ]
        for index in range(1, len(self.agents)):
            components.append(text_component(divider_id(index), DIVIDER_TEXT, usage_hint="Body"))
        for agent in self.agents:
            components.append(column_component(agent.mount_id, []))

        return [
            SurfaceUpdate(components=[column_component(self.root_id, self.shell_layout())]),
            SurfaceUpdate(components=components),
        ]

    def context_event(self, request: str) -> StatusEvent:
        context: dict[str, Any] = {
            "request": request,
            "agents": [agent.role for agent in self.agents],
            "protocol": PROTOCOL_VERSION,
        }
        if self.scenario:
            context["scenario"] = self.scenario
        return StatusEvent(tag=CONTEXT_TAG, payload={"context": context})

    def terminal_messages(self, error: str) -> list[ProtocolMessage]:
        """The diagnostic pair that ends a failed session."""
        return [
            SurfaceUpdate(components=[text_component(ERROR_ROOT_ID, f"Error: {error}")]),
            BeginRendering(root=ERROR_ROOT_ID),
        ]

    # -------------------------------------------------------------------------
    # Event Emission Helpers
    # -------------------------------------------------------------------------

    async def _publish(
        self,
        event_type: EventType,
        session_id: str,
        agent: AgentRunner | None = None,
        **data: Any,
    ) -> None:
        if self.event_bus is None:
            return
        await self.event_bus.publish(
            AgentEvent(
                type=event_type,
                session_id=session_id,
                agent_id=agent.agent_id if agent else None,
                agent_role=agent.role if agent else None,
                data=data,
            )
        )

    # -------------------------------------------------------------------------
    # Graph Nodes
    # -------------------------------------------------------------------------

    async def _dispatch(self, state: CoordinatorState) -> dict[str, Any]:
        """Announce every agent before the fan-out."""
        for agent in self.agents:
            await self._publish(
                EventType.AGENT_SPAWNED,
                state["session_id"],
                agent,
                role=agent.role,
                mount_id=agent.mount_id,
            )
        return {}

    def _fan_out(self, state: CoordinatorState) -> list[Send]:
        """Create one Send() per configured agent."""
        sends = [
            Send(
                "run_agent",
                {
                    "agent_index": index,
                    "session_id": state["session_id"],
                    "request": state["request"],
                },
            )
            for index in range(len(self.agents))
        ]

        logger.info(
            "coordinator_fan_out",
            session_id=state["session_id"],
            agent_count=len(sends),
        )
        return sends

    async def _run_agent(self, state: dict[str, Any]) -> dict[str, Any]:
        """Run one agent.

        Args:
            state: Agent-specific state from Send()

        Returns:
            State update appending the indexed result
        """
        index = state["agent_index"]
        agent = self.agents[index]
        result = await agent.execute(state["request"])

        if result.failed:
            await self._publish(
                EventType.AGENT_ERROR,
                state["session_id"],
                agent,
                error=result.error,
                error_type=result.error_type,
            )
        else:
            await self._publish(
                EventType.AGENT_COMPLETE,
                state["session_id"],
                agent,
                message_count=len(result.messages),
                duration_ms=result.duration_ms,
            )

        return {"results": [IndexedResult(agent_index=index, result=result)]}

    async def gather(self, session_id: str, request: str) -> list[AgentResult]:
        """Run every agent concurrently and return results in agent order.

        Raises:
            TimeoutError: If the dispatch exceeds timeout_seconds
        """
        initial_state = CoordinatorState(session_id=session_id, request=request, results=[])
        final_state = await asyncio.wait_for(
            self._compiled_graph.ainvoke(initial_state),
            timeout=self.timeout_seconds,
        )
        ordered = sorted(final_state.get("results", []), key=lambda item: item["agent_index"])
        return [item["result"] for item in ordered]

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def stream(
        self,
        request: str,
        session_id: str | None = None,
    ) -> AsyncIterator[ProtocolMessage]:
        """Run one orchestration session.

        Args:
            request: The request every agent receives, e.g. a ticker symbol
            session_id: Optional session id (generated when omitted)

        Yields:
            The merged message stream. Nothing follows the terminal pair.
        """
        session_id = session_id or f"sess_{uuid4().hex[:12]}"
        start_time = time.time()
        phase = CoordinatorPhase.INIT
        emitted = 0

        logger.info(
            "coordinator_session_started",
            session_id=session_id,
            request=request,
            agents=[agent.agent_id for agent in self.agents],
        )

        try:
            await self._publish(
                EventType.SESSION_STARTED,
                session_id,
                request=request,
                agents=[agent.agent_id for agent in self.agents],
            )

            for message in self.init_messages(request):
                emitted += 1
                yield message

            phase = CoordinatorPhase.ANNOUNCE
            logger.debug("coordinator_phase", session_id=session_id, phase=phase.value)
            emitted += 1
            yield status_event(STATUS_COORDINATOR_ACTIVE)
            if self.status_delay > 0:
                await asyncio.sleep(self.status_delay)
            emitted += 1
            yield self.context_event(request)
            emitted += 1
            yield status_event(STATUS_DELEGATING)
            emitted += 1
            yield BeginRendering(root=self.root_id)

            phase = CoordinatorPhase.DISPATCH
            logger.debug("coordinator_phase", session_id=session_id, phase=phase.value)
            try:
                results = await self.gather(session_id, request)
            except TimeoutError as e:
                raise TimeoutError(
                    f"Orchestration timed out after {self.timeout_seconds}s"
                ) from e

            collisions = find_id_collisions(results, self.reserved_ids())
            for component_id, claimed in collisions.items():
                logger.warning(
                    "agent_id_collision",
                    session_id=session_id,
                    component_id=component_id,
                    owners=claimed,
                )

            phase = CoordinatorPhase.FLUSH
            logger.debug("coordinator_phase", session_id=session_id, phase=phase.value)
            for result in results:
                logger.info(
                    "coordinator_flush_agent",
                    session_id=session_id,
                    agent_id=result.agent_id,
                    message_count=len(result.messages),
                    failed=result.failed,
                )
                for message in result.messages:
                    emitted += 1
                    yield message

            phase = CoordinatorPhase.FINALIZE
            logger.debug("coordinator_phase", session_id=session_id, phase=phase.value)
            emitted += 1
            yield DataModelUpdate(contents={})
            emitted += 1
            yield BeginRendering(root=self.root_id)

        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error(
                "coordinator_session_failed",
                session_id=session_id,
                phase=phase.value,
                error_type=type(e).__name__,
                error=error,
            )
            await self._publish(
                EventType.SESSION_ERROR,
                session_id,
                error=error,
                phase=phase.value,
            )
            phase = CoordinatorPhase.TERMINAL
            logger.debug("coordinator_phase", session_id=session_id, phase=phase.value)
            for message in self.terminal_messages(error):
                yield message

        else:
            phase = CoordinatorPhase.DONE
            duration_ms = int((time.time() - start_time) * 1000)
            logger.info(
                "coordinator_session_complete",
                session_id=session_id,
                phase=phase.value,
                message_count=emitted,
                duration_ms=duration_ms,
            )
            await self._publish(
                EventType.SESSION_COMPLETE,
                session_id,
                message_count=emitted,
                duration_ms=duration_ms,
            )

        finally:
            if self.event_bus is not None:
                await self.event_bus.close_session(session_id)

    async def run(self, request: str, session_id: str | None = None) -> list[ProtocolMessage]:
        """Collect the whole merged stream for a request."""
        return [message async for message in self.stream(request, session_id=session_id)]


# -----------------------------------------------------------------------------
# Factory Function
# -----------------------------------------------------------------------------


def create_coordinator(
    agents: Sequence[AgentRunner] | None = None,
    event_bus: EventBus | None = None,
    **kwargs: Any,
) -> Coordinator:
    """Factory function to create a Coordinator.

    Args:
        agents: Agents in flush order (defaults to the market and news agents)
        event_bus: Optional event bus for lifecycle events
        **kwargs: Passed through to Coordinator

    Returns:
        Configured Coordinator instance
    """
    if agents is None:
        agents = create_default_agents()
    return Coordinator(agents, event_bus=event_bus, **kwargs)
