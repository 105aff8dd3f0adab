"""LLM streaming client used as the text-fragment source for agents.

This module provides:
- LLMClient: Wrapper around LiteLLM streaming completions with retry logic
  for opening the stream
- MockLLMClient: Scripted chunk replay for tests
"""

import asyncio
import time
from collections.abc import AsyncIterator
from typing import Any

import structlog
from litellm import acompletion
from litellm.exceptions import (
    AuthenticationError,
    BadRequestError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)

from config import settings

logger = structlog.get_logger()


def _chunk_text(chunk: Any) -> str:
    """Extract the text delta from a streamed LiteLLM chunk."""
    choices = getattr(chunk, "choices", None)
    if not choices:
        return ""
    delta = getattr(choices[0], "delta", None)
    content = getattr(delta, "content", None) if delta is not None else None
    return content or ""


class LLMClient:
    """Streaming wrapper around LiteLLM with retry on transient errors.

    Only opening the stream is retried. Once text has started flowing, a
    failure propagates to the caller: replaying a half-delivered stream
    would duplicate records downstream.

    Retries on: RateLimitError (429), ServiceUnavailableError (5xx), Timeout.
    Does NOT retry on: AuthenticationError, BadRequestError.

    Attributes:
        default_model: Model to use if not specified per call
        api_key: Credential passed through to the provider
        retry_attempts: Number of retries after the first attempt
        retry_delay: Base delay in seconds for exponential backoff
    """

    def __init__(
        self,
        default_model: str | None = None,
        api_key: str | None = None,
        retry_attempts: int | None = None,
        retry_delay: float = 1.0,
    ) -> None:
        self.default_model = default_model or settings.default_model
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.retry_attempts = (
            retry_attempts if retry_attempts is not None
            else settings.llm_max_retries
        )
        self.retry_delay = retry_delay

    async def stream_text(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> AsyncIterator[str]:
        """Stream response text fragments for a chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to self.default_model)
            temperature: Sampling temperature

        Yields:
            Non-empty text fragments in arrival order
        """
        model = model or self.default_model
        start_time = time.time()
        stream = await self._open_stream(messages, model, temperature)

        chunk_count = 0
        char_count = 0
        async for chunk in stream:
            text = _chunk_text(chunk)
            if not text:
                continue
            chunk_count += 1
            char_count += len(text)
            yield text

        logger.info(
            "llm_stream_complete",
            model=model,
            chunks=chunk_count,
            chars=char_count,
            latency_ms=int((time.time() - start_time) * 1000),
        )

    async def _open_stream(
        self,
        messages: list[dict[str, Any]],
        model: str,
        temperature: float,
    ) -> Any:
        """Open a streaming completion, retrying transient failures.

        Raises:
            AuthenticationError: If the credential is rejected
            BadRequestError: If the request is malformed
            Exception: The last transient error after all retries
        """
        last_exception: Exception | None = None

        for attempt in range(self.retry_attempts + 1):
            try:
                return await self._make_request(messages, model, temperature)
            except (RateLimitError, ServiceUnavailableError, Timeout) as e:
                last_exception = e
                if attempt < self.retry_attempts:
                    delay = min(self.retry_delay * (2 ** attempt), 4.0)
                    logger.warning(
                        "llm_stream_retry",
                        model=model,
                        attempt=attempt + 1,
                        max_retries=self.retry_attempts,
                        error_type=type(e).__name__,
                        retry_delay=delay,
                    )
                    await self._async_sleep(delay)
                else:
                    logger.error(
                        "llm_stream_failed_all_retries",
                        model=model,
                        attempts=self.retry_attempts + 1,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
            except (AuthenticationError, BadRequestError) as e:
                logger.error(
                    "llm_stream_failed_no_retry",
                    model=model,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise

        raise last_exception or RuntimeError("LLM stream failed after all retries")

    async def _make_request(
        self,
        messages: list[dict[str, Any]],
        model: str,
        temperature: float,
    ) -> Any:
        """Make the actual LiteLLM streaming request."""
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "stream": True,
            "timeout": settings.llm_request_timeout_seconds,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key

        return await acompletion(**kwargs)

    async def _async_sleep(self, seconds: float) -> None:
        """Async sleep for retry delay, extracted for tests."""
        await asyncio.sleep(seconds)


class MockLLMClient(LLMClient):
    """Mock LLM client that replays scripted chunk lists.

    Each call to stream_text consumes the next script. A script is either a
    list of text chunks or an exception to raise instead.

    Usage:
        >>> client = MockLLMClient(scripts=[['{"beginRendering":', '{"root":"a"}}\\n']])
        >>> chunks = [c async for c in client.stream_text([...])]
    """

    def __init__(
        self,
        scripts: list[list[str] | Exception] | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("api_key", "")
        super().__init__(**kwargs)
        self.scripts = list(scripts) if scripts else []
        self.call_history: list[dict[str, Any]] = []
        self._script_index = 0

    async def stream_text(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> AsyncIterator[str]:
        """Yield the next scripted chunks.

        Raises:
            IndexError: If no more scripts are available
            Exception: If the next script is an exception
        """
        self.call_history.append({
            "messages": messages,
            "model": model or self.default_model,
            "temperature": temperature,
        })

        if self._script_index >= len(self.scripts):
            raise IndexError("No more mock scripts available")

        script = self.scripts[self._script_index]
        self._script_index += 1

        if isinstance(script, Exception):
            raise script

        for chunk in script:
            await asyncio.sleep(0)
            yield chunk
