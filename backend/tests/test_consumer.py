"""Tests for protocol/consumer.py -- the single-owner consumer loop."""

from protocol.consumer import StreamConsumer
from protocol.decoder import decode_stream
from protocol.messages import (
    BeginRendering,
    DataModelUpdate,
    StatusEvent,
    SurfaceUpdate,
    Unrecognized,
    UnrecognizedReason,
    column_component,
    status_event,
    text_component,
)
from tests.conftest import aiter_chunks, aiter_messages, split_every


class TestHandle:
    """Message-by-message application."""

    def test_surface_update_applied_without_render(self, consumer: StreamConsumer) -> None:
        frame = consumer.handle(SurfaceUpdate(components=[text_component("a", "Hi")]))
        assert frame is None
        assert consumer.registry.resolve("a") is not None
        assert consumer.frames == []

    def test_begin_rendering_produces_frame(self, consumer: StreamConsumer) -> None:
        consumer.handle(SurfaceUpdate(components=[text_component("a", "Hi")]))
        frame = consumer.handle(BeginRendering(root="a"))
        assert frame is not None
        assert frame.component_id == "a"
        assert consumer.last_frame is frame

    def test_named_surface_does_not_produce_frame(self, consumer: StreamConsumer) -> None:
        consumer.handle(SurfaceUpdate(components=[text_component("a", "Hi")]))
        assert consumer.handle(BeginRendering(root="a", surface_id="side")) is None
        assert consumer.frames == []

    def test_status_events_recorded_not_applied(self, consumer: StreamConsumer) -> None:
        consumer.handle(status_event("COORDINATOR_ACTIVE"))
        assert consumer.status_events == [
            StatusEvent(tag="A2A_STATUS", payload={"status": "COORDINATOR_ACTIVE"})
        ]
        assert len(consumer.registry) == 0

    def test_unrecognized_recorded_as_diagnostic(self, consumer: StreamConsumer) -> None:
        bad = Unrecognized(raw="{x", reason=UnrecognizedReason.MALFORMED)
        consumer.handle(bad)
        assert consumer.diagnostics == [bad]
        assert len(consumer.registry) == 0

    def test_message_count(self, consumer: StreamConsumer) -> None:
        consumer.handle(status_event("X"))
        consumer.handle(DataModelUpdate(contents={}))
        assert consumer.message_count == 2


class TestConsume:
    """Draining a full stream."""

    async def test_repaint_per_begin_rendering(self, consumer: StreamConsumer) -> None:
        messages = [
            SurfaceUpdate(components=[column_component("root", ["a"])]),
            BeginRendering(root="root"),
            SurfaceUpdate(components=[text_component("a", "late")]),
            BeginRendering(root="root"),
        ]
        last = await consumer.consume(aiter_messages(messages))

        assert len(consumer.frames) == 2
        assert consumer.frames[0].children[0].kind == "Missing"
        assert last.children[0].kind == "Text"

    async def test_consume_empty_stream(self, consumer: StreamConsumer) -> None:
        assert await consumer.consume(aiter_messages([])) is None
        assert consumer.message_count == 0

    async def test_end_to_end_from_text_chunks(self) -> None:
        text = (
            '{"surfaceUpdate":{"components":[{"id":"t","component":{"Text":{"text":{"literalString":"Hello"}}}}]}}\n'
            "garbage line\n"
            '{"surfaceUpdate":{"components":[{"id":"root","component":{"Column":{"children":{"explicitList":["t"]}}}}]}}\n'
            '{"dataModelUpdate":{"contents":{}}}\n'
            '{"beginRendering":{"root":"root"}}'
        )
        consumer = StreamConsumer()
        frame = await consumer.consume(decode_stream(aiter_chunks(split_every(text, 13))))

        assert frame.to_dict() == {
            "kind": "Column",
            "id": "root",
            "children": [
                {"kind": "Text", "id": "t", "properties": {"text": {"literalString": "Hello"}}},
            ],
        }
        assert consumer.diagnostics == []
