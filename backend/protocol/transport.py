"""Line and event-stream encodings for protocol messages.

The engine itself only requires that each message serialize to one
self-contained line. These helpers provide the two framings a transport
typically uses: plain JSONL and Server-Sent Events (``data: <json>``
frames terminated by ``data: [DONE]``).
"""

from collections.abc import AsyncIterable, AsyncIterator

from protocol.framing import LineFramer
from protocol.messages import ProtocolMessage

SSE_DATA_PREFIX = "data:"
SSE_DONE_PAYLOAD = "[DONE]"
SSE_DONE = f"data: {SSE_DONE_PAYLOAD}\n\n"
SSE_HEARTBEAT = ": heartbeat\n\n"


def encode_jsonl(message: ProtocolMessage) -> str:
    """Serialize a message as one newline-terminated JSONL record."""
    return message.to_json() + "\n"


def encode_sse(message: ProtocolMessage) -> str:
    """Serialize a message as one SSE ``data`` event."""
    return f"data: {message.to_json()}\n\n"


async def iter_sse_payloads(fragments: AsyncIterable[str]) -> AsyncIterator[str]:
    """Extract ``data`` payloads from a chunked SSE text stream.

    Comment lines (heartbeats), blank separators and other fields are
    skipped. Iteration stops at the ``[DONE]`` terminator.

    Args:
        fragments: Raw event-stream text in arbitrary chunks

    Yields:
        Each data payload, stripped of the ``data:`` prefix
    """
    framer = LineFramer()

    async for fragment in fragments:
        for line in framer.feed(fragment):
            payload = _data_payload(line)
            if payload is None:
                continue
            if payload == SSE_DONE_PAYLOAD:
                return
            yield payload

    for line in framer.flush():
        payload = _data_payload(line)
        if payload is not None and payload != SSE_DONE_PAYLOAD:
            yield payload


def _data_payload(line: str) -> str | None:
    line = line.rstrip("\r")
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    return line[len(SSE_DATA_PREFIX):].strip()
