"""LLM-driven A2UI generation.

stream_a2ui is the single-agent path: it streams model text through the
framer and decoder and yields messages as soon as each line completes.
LLMAgent wraps the same pipeline as an AgentRunner for the coordinator,
collecting the full sequence before handing it over.
"""

from collections.abc import AsyncIterator
from typing import Any

import structlog

from agents.llm import LLMClient
from agents.prompts import A2UI_REMINDER, A2UI_SYSTEM_INSTRUCTION
from agents.runner import AgentRunner
from protocol.decoder import decode_stream
from protocol.messages import ProtocolMessage, Unrecognized

logger = structlog.get_logger()


def build_messages(prompt: str, system_instruction: str) -> list[dict[str, Any]]:
    """Build the chat messages for an A2UI request."""
    return [
        {"role": "system", "content": system_instruction},
        {"role": "user", "content": f"{prompt}\n\n{A2UI_REMINDER}"},
    ]


async def stream_a2ui(
    prompt: str,
    llm_client: LLMClient,
    system_instruction: str = A2UI_SYSTEM_INSTRUCTION,
    model: str | None = None,
    temperature: float = 0.7,
) -> AsyncIterator[ProtocolMessage]:
    """Stream decoded A2UI messages for a prompt.

    Args:
        prompt: The user request
        llm_client: Source of streamed text
        system_instruction: Instruction describing the expected output
        model: Model override
        temperature: Sampling temperature

    Yields:
        Messages in stream order, including Unrecognized diagnostics
    """
    fragments = llm_client.stream_text(
        build_messages(prompt, system_instruction),
        model=model,
        temperature=temperature,
    )
    async for message in decode_stream(fragments):
        yield message


async def generate_a2ui(
    prompt: str,
    llm_client: LLMClient,
    system_instruction: str = A2UI_SYSTEM_INSTRUCTION,
    model: str | None = None,
) -> list[ProtocolMessage]:
    """Collect every message stream_a2ui yields for a prompt."""
    return [
        message
        async for message in stream_a2ui(
            prompt, llm_client, system_instruction=system_instruction, model=model
        )
    ]


class LLMAgent(AgentRunner):
    """Agent whose messages are generated by an LLM.

    Unrecognized lines are logged and dropped; only messages that decode
    into protocol kinds are forwarded to the coordinator.

    Attributes:
        llm_client: Streaming client (carries the credential)
        system_instruction: The agent's system instruction
        prompt_template: ``str.format`` template with a ``{request}`` field
        model: Model override
    """

    def __init__(
        self,
        agent_id: str,
        role: str,
        llm_client: LLMClient,
        system_instruction: str,
        prompt_template: str,
        mount_id: str | None = None,
        model: str | None = None,
    ) -> None:
        super().__init__(agent_id, role, mount_id)
        self.llm_client = llm_client
        self.system_instruction = system_instruction
        self.prompt_template = prompt_template
        self.model = model

    async def produce(self, request: str) -> list[ProtocolMessage]:
        prompt = self.prompt_template.format(request=request)
        messages: list[ProtocolMessage] = []
        dropped = 0

        async for message in stream_a2ui(
            prompt,
            self.llm_client,
            system_instruction=self.system_instruction,
            model=self.model,
        ):
            if isinstance(message, Unrecognized):
                dropped += 1
                logger.warning(
                    "agent_line_unrecognized",
                    agent_id=self.agent_id,
                    reason=message.reason.value,
                    preview=message.raw[:100],
                )
                continue
            messages.append(message)

        logger.info(
            "agent_generated_messages",
            agent_id=self.agent_id,
            message_count=len(messages),
            dropped=dropped,
        )
        return messages
