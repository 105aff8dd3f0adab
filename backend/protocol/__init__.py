"""A2UI streaming protocol engine.

This package turns an arbitrarily chunked text stream into typed A2UI
messages and assembles those messages into a renderable component graph.

Key Components:
    - LineFramer: Reassembles newline-delimited records from text fragments
    - decode / decode_stream: Classify records into protocol messages
    - ComponentRegistry: Id-keyed component graph with root pointers
    - TreeRenderer: Resolves the graph into a tree with local placeholders
    - StreamConsumer: Single-owner loop applying a message stream
    - encode_jsonl / encode_sse: One-message-per-line transport encodings

Usage:
    >>> from protocol import StreamConsumer, decode_stream
    >>>
    >>> consumer = StreamConsumer()
    >>> frame = await consumer.consume(decode_stream(llm_text_chunks))
    >>> print(consumer.registry.stats())
"""

from protocol.consumer import StreamConsumer
from protocol.decoder import decode, decode_object, decode_stream
from protocol.framing import LineFramer, iter_records
from protocol.messages import (
    BeginRendering,
    ComponentEntry,
    ComponentKind,
    ComponentNode,
    DataModelUpdate,
    DeleteSurface,
    KnownComponent,
    ProtocolMessage,
    StatusEvent,
    SurfaceUpdate,
    UnknownComponent,
    Unrecognized,
    UnrecognizedReason,
)
from protocol.registry import ComponentRegistry
from protocol.renderer import RenderedNode, TreeRenderer
from protocol.transport import encode_jsonl, encode_sse, iter_sse_payloads

__all__ = [
    # Messages
    "BeginRendering",
    "ComponentEntry",
    "ComponentKind",
    "ComponentNode",
    "DataModelUpdate",
    "DeleteSurface",
    "KnownComponent",
    "ProtocolMessage",
    "StatusEvent",
    "SurfaceUpdate",
    "UnknownComponent",
    "Unrecognized",
    "UnrecognizedReason",
    # Framing and decoding
    "LineFramer",
    "iter_records",
    "decode",
    "decode_object",
    "decode_stream",
    # Graph
    "ComponentRegistry",
    "RenderedNode",
    "TreeRenderer",
    "StreamConsumer",
    # Transport
    "encode_jsonl",
    "encode_sse",
    "iter_sse_payloads",
]
