"""Agents, LLM integration, and the multi-agent coordinator.

This module exports the key components needed for orchestration:
- LLM streaming client with retry logic (and a scripted mock)
- Agent runners that contain producer failures
- LLM-backed agents and the market/news specialists
- The coordinator that merges agent output into one stream
"""

from agents.coordinator import (
    Coordinator,
    CoordinatorPhase,
    CoordinatorState,
    create_coordinator,
    find_id_collisions,
)
from agents.generator import LLMAgent, generate_a2ui, stream_a2ui
from agents.llm import LLMClient, MockLLMClient
from agents.runner import AgentResult, AgentRunner, CallableAgent, StaticAgent
from agents.specialists import (
    create_default_agents,
    create_market_data_agent,
    create_news_agent,
)

__all__ = [
    # LLM
    "LLMClient",
    "MockLLMClient",
    "stream_a2ui",
    "generate_a2ui",
    # Runners
    "AgentResult",
    "AgentRunner",
    "CallableAgent",
    "StaticAgent",
    "LLMAgent",
    # Specialists
    "create_default_agents",
    "create_market_data_agent",
    "create_news_agent",
    # Coordinator
    "Coordinator",
    "CoordinatorPhase",
    "CoordinatorState",
    "create_coordinator",
    "find_id_collisions",
]
