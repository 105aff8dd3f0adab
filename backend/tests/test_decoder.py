"""Tests for protocol/decoder.py -- record classification.

Covers each message kind, every Unrecognized reason, entry skipping inside
surfaceUpdate, idempotence, and noise handling in decode_stream.
"""

import json

import pytest

from protocol.decoder import decode, decode_object, decode_stream
from protocol.messages import (
    BeginRendering,
    ComponentKind,
    DataModelUpdate,
    DeleteSurface,
    KnownComponent,
    StatusEvent,
    SurfaceUpdate,
    UnknownComponent,
    Unrecognized,
    UnrecognizedReason,
)
from tests.conftest import aiter_chunks, collect, split_every

TEXT_RECORD = '{"surfaceUpdate":{"components":[{"id":"a","component":{"Text":{"text":{"literalString":"Hi"}}}}]}}'


# =========================================================================
# Message kinds
# =========================================================================


class TestMessageKinds:
    """Well-formed records decode into their message kind."""

    def test_surface_update(self) -> None:
        message = decode(TEXT_RECORD)
        assert isinstance(message, SurfaceUpdate)
        assert [entry.id for entry in message.components] == ["a"]
        node = message.components[0].component
        assert isinstance(node, KnownComponent)
        assert node.kind == ComponentKind.TEXT
        assert node.properties == {"text": {"literalString": "Hi"}}

    def test_surface_update_with_surface_id(self) -> None:
        message = decode('{"surfaceUpdate":{"surfaceId":"side","components":[]}}')
        assert isinstance(message, SurfaceUpdate)
        assert message.surface_id == "side"
        assert message.components == []

    def test_unknown_component_kind(self) -> None:
        message = decode(
            '{"surfaceUpdate":{"components":[{"id":"m","component":{"Map":{"lat":1}}}]}}'
        )
        assert isinstance(message, SurfaceUpdate)
        node = message.components[0].component
        assert isinstance(node, UnknownComponent)
        assert node.name == "Map"
        assert node.raw_properties == {"lat": 1}

    def test_data_model_update(self) -> None:
        message = decode('{"dataModelUpdate":{"contents":{"price":42}}}')
        assert message == DataModelUpdate(contents={"price": 42})

    def test_data_model_update_without_contents(self) -> None:
        assert decode('{"dataModelUpdate":{}}') == DataModelUpdate(contents={})

    def test_begin_rendering(self) -> None:
        assert decode('{"beginRendering":{"root":"main_root"}}') == BeginRendering(root="main_root")

    def test_begin_rendering_named_surface(self) -> None:
        message = decode('{"beginRendering":{"root":"r","surfaceId":"side"}}')
        assert message == BeginRendering(root="r", surface_id="side")

    def test_delete_surface(self) -> None:
        assert decode('{"deleteSurface":{"surfaceId":"side"}}') == DeleteSurface(surface_id="side")

    def test_status_event(self) -> None:
        message = decode('{"_meta":"A2A_STATUS","status":"COORDINATOR_ACTIVE"}')
        assert message == StatusEvent(tag="A2A_STATUS", payload={"status": "COORDINATOR_ACTIVE"})

    def test_surrounding_whitespace_is_ignored(self) -> None:
        assert decode('  {"beginRendering":{"root":"a"}}\r') == BeginRendering(root="a")

    def test_decode_object_accepts_parsed_value(self) -> None:
        message = decode_object({"beginRendering": {"root": "a"}})
        assert message == BeginRendering(root="a")


# =========================================================================
# Unrecognized
# =========================================================================


class TestUnrecognized:
    """Anything that fails to decode is classified, never raised."""

    @pytest.mark.parametrize(
        ("record", "reason"),
        [
            ("", UnrecognizedReason.BLANK),
            ("   ", UnrecognizedReason.BLANK),
            ("not json", UnrecognizedReason.NOT_STRUCTURED),
            ("```json", UnrecognizedReason.NOT_STRUCTURED),
            ('{"surfaceUpdate":', UnrecognizedReason.MALFORMED),
            ("{not json}", UnrecognizedReason.MALFORMED),
            ("[1, 2, 3]", UnrecognizedReason.NO_KNOWN_KEY),
            ('{"hello":"world"}', UnrecognizedReason.NO_KNOWN_KEY),
            ('{"_meta":""}', UnrecognizedReason.NO_KNOWN_KEY),
            ('{"_meta":42}', UnrecognizedReason.NO_KNOWN_KEY),
            ('{"beginRendering":{"root":"a"},"dataModelUpdate":{}}', UnrecognizedReason.AMBIGUOUS),
            ('{"beginRendering":"a"}', UnrecognizedReason.MALFORMED),
            ('{"beginRendering":{}}', UnrecognizedReason.MALFORMED),
            ('{"beginRendering":{"root":""}}', UnrecognizedReason.MALFORMED),
            ('{"beginRendering":{"root":"a","surfaceId":""}}', UnrecognizedReason.MALFORMED),
            ('{"surfaceUpdate":{"components":[],"surfaceId":""}}', UnrecognizedReason.MALFORMED),
            ('{"surfaceUpdate":{"components":"a"}}', UnrecognizedReason.MALFORMED),
            ('{"dataModelUpdate":{"contents":[1]}}', UnrecognizedReason.MALFORMED),
            ('{"deleteSurface":{}}', UnrecognizedReason.MALFORMED),
        ],
    )
    def test_classification(self, record: str, reason: UnrecognizedReason) -> None:
        message = decode(record)
        assert isinstance(message, Unrecognized)
        assert message.reason == reason
        assert message.raw == record

    def test_deeply_nested_record_does_not_raise(self) -> None:
        record = "[" * 100_000 + "]" * 100_000
        message = decode(record)
        assert isinstance(message, Unrecognized)

    def test_oversized_integer_literal_does_not_raise(self) -> None:
        record = '{"dataModelUpdate": {"contents": {"n": ' + "1" * 5000 + "}}}"
        message = decode(record)
        assert isinstance(message, Unrecognized)
        assert message.reason == UnrecognizedReason.MALFORMED

    def test_known_key_wins_over_meta(self) -> None:
        message = decode('{"_meta":"X","beginRendering":{"root":"a"}}')
        assert message == BeginRendering(root="a")

    def test_unrecognized_serializes_raw_text(self) -> None:
        message = decode("{oops")
        assert json.loads(message.to_json()) == {"_unrecognized": "{oops", "reason": "malformed"}


# =========================================================================
# Entry skipping
# =========================================================================


class TestEntrySkipping:
    """Invalid entries are dropped without failing the whole update."""

    def test_invalid_entries_skipped(self) -> None:
        record = json.dumps({
            "surfaceUpdate": {
                "components": [
                    {"id": "ok", "component": {"Text": {"text": {"literalString": "x"}}}},
                    {"component": {"Text": {}}},
                    {"id": "", "component": {"Text": {}}},
                    {"id": "no_component"},
                    {"id": "empty", "component": {}},
                    "garbage",
                ]
            }
        })
        message = decode(record)
        assert isinstance(message, SurfaceUpdate)
        assert [entry.id for entry in message.components] == ["ok"]

    def test_known_kind_with_non_object_body_is_unknown(self) -> None:
        message = decode('{"surfaceUpdate":{"components":[{"id":"t","component":{"Text":"hi"}}]}}')
        node = message.components[0].component
        assert isinstance(node, UnknownComponent)
        assert node.name == "Text"


# =========================================================================
# Idempotence
# =========================================================================


class TestIdempotence:
    """Decoding the same record twice yields equal results."""

    @pytest.mark.parametrize(
        "record",
        [
            TEXT_RECORD,
            '{"beginRendering":{"root":"a"}}',
            '{"_meta":"A2A_STATUS","status":"DONE"}',
            "not json",
            "{broken",
            "",
        ],
    )
    def test_decode_twice(self, record: str) -> None:
        assert decode(record) == decode(record)

    def test_reencoded_message_decodes_equal(self) -> None:
        message = decode(TEXT_RECORD)
        assert decode(message.to_json()) == message


# =========================================================================
# decode_stream
# =========================================================================


class TestDecodeStream:
    """Streaming decode over chunked text."""

    async def test_noise_dropped_and_broken_records_kept(self) -> None:
        text = (
            "Sure! Here is the UI:\n"
            "\n"
            f"{TEXT_RECORD}\n"
            '{"surfaceUpdate":{"components":\n'
            '{"beginRendering":{"root":"a"}}\n'
        )
        messages = await collect(decode_stream(aiter_chunks(split_every(text, 11))))
        assert isinstance(messages[0], SurfaceUpdate)
        assert isinstance(messages[1], Unrecognized)
        assert messages[1].reason == UnrecognizedReason.MALFORMED
        assert messages[2] == BeginRendering(root="a")
        assert len(messages) == 3

    async def test_two_fragment_scenario(self) -> None:
        fragments = [
            '{"surfaceUpdate":{"components":[{"id":"a",',
            '"component":{"Text":{"text":{"literalString":"Hi"}}}}]}}\n',
        ]
        messages = await collect(decode_stream(aiter_chunks(fragments)))
        assert len(messages) == 1
        assert isinstance(messages[0], SurfaceUpdate)
        assert [entry.id for entry in messages[0].components] == ["a"]

    async def test_unterminated_final_record_is_decoded(self) -> None:
        messages = await collect(decode_stream(aiter_chunks(['{"beginRendering":', '{"root":"a"}}'])))
        assert messages == [BeginRendering(root="a")]

    async def test_unterminated_prose_remainder_is_reported(self) -> None:
        messages = await collect(decode_stream(aiter_chunks(["Hope this helps!"])))
        assert len(messages) == 1
        assert isinstance(messages[0], Unrecognized)
        assert messages[0].reason == UnrecognizedReason.NOT_STRUCTURED

    async def test_whitespace_remainder_is_dropped(self) -> None:
        messages = await collect(decode_stream(aiter_chunks(['{"dataModelUpdate":{}}\n', "  "])))
        assert messages == [DataModelUpdate(contents={})]

    async def test_oversized_integer_line_does_not_end_stream(self) -> None:
        text = (
            '{"dataModelUpdate":{"contents":{"price":' + "9" * 5000 + "}}}\n"
            '{"beginRendering":{"root":"a"}}\n'
        )
        messages = await collect(decode_stream(aiter_chunks([text])))
        assert isinstance(messages[0], Unrecognized)
        assert messages[1] == BeginRendering(root="a")
