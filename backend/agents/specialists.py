"""Specialist agents for the market analysis dashboard.

Two LLM agents contribute subtrees to the coordinator's shell: a market data
agent that charts recent prices and a news agent that lists headlines as
cards. Each owns a mount id reserved in the shell.
"""

from agents.generator import LLMAgent
from agents.llm import LLMClient
from agents.prompts import (
    MARKET_DATA_EXAMPLE,
    NEWS_EXAMPLE,
    build_specialist_instruction,
)
from agents.runner import AgentRunner
from config import settings

MARKET_DATA_MOUNT_ID = "market_root"
NEWS_MOUNT_ID = "news_root"


def create_market_data_agent(
    llm_client: LLMClient | None = None,
    model: str | None = None,
) -> LLMAgent:
    """Create the agent that charts recent price data for a symbol."""
    return LLMAgent(
        agent_id="market_data",
        role="Market Data Agent",
        llm_client=llm_client or LLMClient(),
        system_instruction=build_specialist_instruction(
            role="Market Data Specialist",
            task="Analyze price trends and create A2UI Chart components.",
            mount_id=MARKET_DATA_MOUNT_ID,
            example=MARKET_DATA_EXAMPLE,
        ),
        prompt_template=(
            "Find current {request} price data for the last 5 days "
            "and create a line chart in A2UI format."
        ),
        mount_id=MARKET_DATA_MOUNT_ID,
        model=model or settings.agent_model,
    )


def create_news_agent(
    llm_client: LLMClient | None = None,
    model: str | None = None,
) -> LLMAgent:
    """Create the agent that lists the latest headlines for a symbol."""
    return LLMAgent(
        agent_id="news",
        role="News Agent",
        llm_client=llm_client or LLMClient(),
        system_instruction=build_specialist_instruction(
            role="News Analyst",
            task="Find the latest news and create A2UI Card components.",
            mount_id=NEWS_MOUNT_ID,
            example=NEWS_EXAMPLE,
        ),
        prompt_template=(
            "Find the top 3 latest news articles about {request} "
            "and create Card components in A2UI format."
        ),
        mount_id=NEWS_MOUNT_ID,
        model=model or settings.agent_model,
    )


def create_default_agents(llm_client: LLMClient | None = None) -> list[AgentRunner]:
    """The dashboard's agents in display order."""
    client = llm_client or LLMClient()
    return [
        create_market_data_agent(client),
        create_news_agent(client),
    ]
