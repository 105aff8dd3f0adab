"""Decoding of framed records into typed protocol messages.

decode() never raises: every failure is expressed as an Unrecognized message
so that one malformed line from the model cannot end an otherwise healthy
stream.

Classification order:
1. Blank record -> Unrecognized(blank)
2. Not starting with '{' or '[' -> Unrecognized(not_structured)
3. JSON parse failure -> Unrecognized(malformed)
4. Exactly one known top-level key -> that message kind
5. No known key but a string ``_meta`` -> StatusEvent
6. Otherwise -> Unrecognized(no_known_key | ambiguous | malformed)
"""

import json
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

import structlog
from pydantic import ValidationError

from protocol.framing import LineFramer
from protocol.messages import (
    BEGIN_RENDERING_KEY,
    DATA_MODEL_UPDATE_KEY,
    DELETE_SURFACE_KEY,
    MESSAGE_KEYS,
    META_KEY,
    SURFACE_UPDATE_KEY,
    BeginRendering,
    ComponentEntry,
    DataModelUpdate,
    DeleteSurface,
    ProtocolMessage,
    StatusEvent,
    SurfaceUpdate,
    Unrecognized,
    UnrecognizedReason,
    parse_component,
)

logger = structlog.get_logger()

# Reasons that mark framing noise rather than a broken protocol record.
NOISE_REASONS = frozenset({UnrecognizedReason.BLANK, UnrecognizedReason.NOT_STRUCTURED})


def decode(record: str) -> ProtocolMessage:
    """Decode one framed record.

    Args:
        record: A single line of stream text (newline already removed)

    Returns:
        The decoded message; Unrecognized on any failure
    """
    text = record.strip()
    if not text:
        return Unrecognized(raw=record, reason=UnrecognizedReason.BLANK)
    if text[0] not in "{[":
        return Unrecognized(raw=record, reason=UnrecognizedReason.NOT_STRUCTURED)

    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError):
        # ValueError covers JSONDecodeError and oversized integer literals
        return Unrecognized(raw=record, reason=UnrecognizedReason.MALFORMED)

    return decode_object(parsed, raw=record)


def decode_object(obj: Any, raw: str | None = None) -> ProtocolMessage:
    """Classify an already-parsed JSON value.

    Args:
        obj: The parsed value
        raw: Original record text, kept on Unrecognized results.
            Re-serialized from ``obj`` when not given.

    Returns:
        The decoded message; Unrecognized on any failure
    """
    if raw is None:
        try:
            raw = json.dumps(obj, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError, RecursionError):
            raw = repr(obj)

    if not isinstance(obj, dict):
        return Unrecognized(raw=raw, reason=UnrecognizedReason.NO_KNOWN_KEY)

    present = [key for key in MESSAGE_KEYS if key in obj]
    if len(present) > 1:
        return Unrecognized(raw=raw, reason=UnrecognizedReason.AMBIGUOUS)

    if not present:
        tag = obj.get(META_KEY)
        if isinstance(tag, str) and tag:
            payload = {key: value for key, value in obj.items() if key != META_KEY}
            return StatusEvent(tag=tag, payload=payload)
        return Unrecognized(raw=raw, reason=UnrecognizedReason.NO_KNOWN_KEY)

    key = present[0]
    body = obj[key]
    if not isinstance(body, dict):
        return Unrecognized(raw=raw, reason=UnrecognizedReason.MALFORMED)

    try:
        if key == SURFACE_UPDATE_KEY:
            update = _decode_surface_update(body)
            if update is not None:
                return update
        if key == DATA_MODEL_UPDATE_KEY:
            contents = body.get("contents")
            return DataModelUpdate(contents=contents if contents is not None else {})
        if key == BEGIN_RENDERING_KEY:
            return BeginRendering(root=body.get("root"), surface_id=body.get("surfaceId"))
        if key == DELETE_SURFACE_KEY:
            return DeleteSurface(surface_id=body.get("surfaceId"))
    except ValidationError as e:
        logger.debug(
            "record_validation_failed",
            message_key=key,
            error_count=e.error_count(),
        )
    return Unrecognized(raw=raw, reason=UnrecognizedReason.MALFORMED)


def _decode_surface_update(body: dict[str, Any]) -> SurfaceUpdate | None:
    """Build a SurfaceUpdate, skipping entries that cannot be registered.

    Returns:
        The update, or None when ``components`` is not a list

    Raises:
        ValidationError: If ``surfaceId`` is not a string
    """
    raw_components = body.get("components")
    if raw_components is None:
        raw_components = []
    if not isinstance(raw_components, list):
        return None

    entries: list[ComponentEntry] = []
    skipped = 0
    for raw_entry in raw_components:
        entry = _decode_entry(raw_entry)
        if entry is None:
            skipped += 1
        else:
            entries.append(entry)

    if skipped:
        logger.warning(
            "surface_update_entries_skipped",
            skipped=skipped,
            kept=len(entries),
        )

    return SurfaceUpdate(components=entries, surface_id=body.get("surfaceId"))


def _decode_entry(raw_entry: Any) -> ComponentEntry | None:
    if not isinstance(raw_entry, dict):
        return None
    component_id = raw_entry.get("id")
    if not isinstance(component_id, str) or not component_id:
        return None
    node = parse_component(raw_entry.get("component"))
    if node is None:
        return None
    return ComponentEntry(id=component_id, component=node)


async def decode_stream(fragments: AsyncIterable[str]) -> AsyncIterator[ProtocolMessage]:
    """Turn a raw text-fragment stream into protocol messages.

    Framing noise (blank lines and prose around the JSONL) is dropped.
    Broken structured records are yielded as Unrecognized for diagnostics.
    The flushed remainder at end of stream is never dropped silently: if it
    holds anything but whitespace and fails to decode, it is yielded as
    Unrecognized.

    Args:
        fragments: Any async iterable of text chunks

    Yields:
        Decoded messages in stream order
    """
    framer = LineFramer()
    noise = 0

    async for fragment in fragments:
        for record in framer.feed(fragment):
            message = decode(record)
            if isinstance(message, Unrecognized) and message.reason in NOISE_REASONS:
                noise += 1
                continue
            yield message

    for record in framer.flush():
        message = decode(record)
        if isinstance(message, Unrecognized):
            if message.reason == UnrecognizedReason.BLANK:
                continue
            logger.warning(
                "stream_remainder_unrecognized",
                reason=message.reason.value,
                preview=record[:100],
            )
        yield message

    if noise:
        logger.debug("stream_noise_dropped", records=noise)
