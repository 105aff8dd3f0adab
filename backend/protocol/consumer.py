"""Single-owner consumer loop for a merged protocol message stream.

StreamConsumer is the one place that mutates a ComponentRegistry. It applies
messages strictly in arrival order and re-renders whenever a beginRendering
arrives, which is the cue renderers use to repaint.
"""

from collections.abc import AsyncIterable

import structlog

from protocol.messages import (
    BeginRendering,
    ProtocolMessage,
    StatusEvent,
    Unrecognized,
)
from protocol.registry import ComponentRegistry
from protocol.renderer import RenderedNode, TreeRenderer

logger = structlog.get_logger()


class StreamConsumer:
    """Apply a message stream to a registry and keep rendered frames.

    Attributes:
        registry: The registry this consumer owns
        renderer: Renderer invoked on each beginRendering
        frames: Rendered trees, one per beginRendering on the primary surface
        status_events: Advisory StatusEvents seen, in order
        diagnostics: Unrecognized messages seen, in order
        message_count: Total messages consumed
    """

    def __init__(
        self,
        registry: ComponentRegistry | None = None,
        renderer: TreeRenderer | None = None,
    ) -> None:
        self.registry = registry if registry is not None else ComponentRegistry()
        self.renderer = renderer if renderer is not None else TreeRenderer(self.registry)
        self.frames: list[RenderedNode] = []
        self.status_events: list[StatusEvent] = []
        self.diagnostics: list[Unrecognized] = []
        self.message_count = 0

    def handle(self, message: ProtocolMessage) -> RenderedNode | None:
        """Apply one message; return a new frame if it triggered a render."""
        self.message_count += 1

        if isinstance(message, StatusEvent):
            self.status_events.append(message)
            logger.debug("consumer_status_event", tag=message.tag)
            return None
        if isinstance(message, Unrecognized):
            self.diagnostics.append(message)
            logger.debug("consumer_unrecognized", reason=message.reason.value)
            return None

        self.registry.apply(message)

        if isinstance(message, BeginRendering) and message.surface_id is None:
            frame = self.renderer.render()
            if frame is not None:
                self.frames.append(frame)
            return frame
        return None

    async def consume(self, messages: AsyncIterable[ProtocolMessage]) -> RenderedNode | None:
        """Drain a message stream.

        Returns:
            The last rendered frame, or None if nothing was rendered
        """
        async for message in messages:
            self.handle(message)

        logger.info(
            "consumer_stream_complete",
            messages=self.message_count,
            frames=len(self.frames),
            diagnostics=len(self.diagnostics),
            **self.registry.stats(),
        )
        return self.last_frame

    @property
    def last_frame(self) -> RenderedNode | None:
        return self.frames[-1] if self.frames else None
