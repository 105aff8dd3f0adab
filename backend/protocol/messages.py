"""A2UI protocol message and component definitions.

This module defines the typed messages that flow through the streaming engine.
Every decoded record becomes exactly one of the message variants below:

- SurfaceUpdate: Register (or overwrite) components by id
- DataModelUpdate: Opaque data-binding contents, stored but not interpreted
- BeginRendering: Declare the root of a surface and trigger a render
- DeleteSurface: Drop a named secondary surface
- StatusEvent: Out-of-band orchestration signal (``_meta`` records)
- Unrecognized: Anything that failed to decode, kept for diagnostics

Components are a flat adjacency list: each entry has an id and a node whose
properties reference children by id. The node kind is the first key of the
component object on the wire, e.g. ``{"Text": {"text": {...}}}``.
"""

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

META_KEY = "_meta"
STATUS_TAG = "A2A_STATUS"
CONTEXT_TAG = "COORDINATOR_CONTEXT"
PROTOCOL_VERSION = "A2UI v0.8"

# Top-level wire keys, in the order they are probed by the decoder.
SURFACE_UPDATE_KEY = "surfaceUpdate"
DATA_MODEL_UPDATE_KEY = "dataModelUpdate"
BEGIN_RENDERING_KEY = "beginRendering"
DELETE_SURFACE_KEY = "deleteSurface"

MESSAGE_KEYS = (
    SURFACE_UPDATE_KEY,
    DATA_MODEL_UPDATE_KEY,
    BEGIN_RENDERING_KEY,
    DELETE_SURFACE_KEY,
)


class ComponentKind(StrEnum):
    """Component kinds the renderer knows how to display."""

    TEXT = "Text"
    COLUMN = "Column"
    ROW = "Row"
    CARD = "Card"
    IMAGE = "Image"
    BUTTON = "Button"
    CHART = "Chart"


KNOWN_KINDS = frozenset(kind.value for kind in ComponentKind)

# Kinds whose ``children.explicitList`` holds an ordered list of child ids.
CONTAINER_KINDS = frozenset({ComponentKind.COLUMN, ComponentKind.ROW})


class UnrecognizedReason(StrEnum):
    """Why a record could not be decoded into a protocol message."""

    BLANK = "blank"
    NOT_STRUCTURED = "not_structured"
    MALFORMED = "malformed"
    NO_KNOWN_KEY = "no_known_key"
    AMBIGUOUS = "ambiguous"


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class _ProtocolModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# -----------------------------------------------------------------------------
# Component nodes
# -----------------------------------------------------------------------------


class KnownComponent(_ProtocolModel):
    """A component whose kind is one of ComponentKind.

    Attributes:
        kind: The component kind
        properties: The kind's property object as received on the wire
    """

    kind: ComponentKind
    properties: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return {self.kind.value: self.properties}


class UnknownComponent(_ProtocolModel):
    """Fallback for component kinds this engine does not know.

    Kept as data so a renderer can show a labeled placeholder instead of
    failing, and so newer kinds survive a round trip untouched.
    """

    name: str
    raw_properties: Any = None

    def to_wire(self) -> dict[str, Any]:
        return {self.name: self.raw_properties}


ComponentNode = KnownComponent | UnknownComponent


def parse_component(raw: Any) -> ComponentNode | None:
    """Build a component node from its wire object.

    The first key of the object names the kind. Known kinds with an object
    body become KnownComponent; everything else becomes UnknownComponent.

    Args:
        raw: The ``component`` value of a component entry

    Returns:
        The parsed node, or None if ``raw`` is not a non-empty object
    """
    if not isinstance(raw, dict) or not raw:
        return None

    name = next(iter(raw))
    properties = raw[name]
    if not isinstance(name, str):
        return None
    if name in KNOWN_KINDS and isinstance(properties, dict):
        return KnownComponent(kind=ComponentKind(name), properties=properties)
    return UnknownComponent(name=name, raw_properties=properties)


def child_slots(node: ComponentNode) -> list[str | ComponentNode]:
    """Return a node's children in display order.

    Each slot is either a referenced component id or an inline node (a Card
    may embed its child directly instead of referencing it).
    """
    if not isinstance(node, KnownComponent):
        return []

    props = node.properties
    if node.kind in CONTAINER_KINDS:
        children = props.get("children")
        if isinstance(children, dict):
            children = children.get("explicitList")
        if not isinstance(children, list):
            return []
        return [child for child in children if isinstance(child, str) and child]

    if node.kind == ComponentKind.CARD:
        child = props.get("child")
        if isinstance(child, str) and child:
            return [child]
        inline = parse_component(child)
        if inline is not None:
            return [inline]

    return []


def child_references(node: ComponentNode) -> list[str]:
    """Return every component id a node references, including via inline nodes."""
    refs: list[str] = []
    for slot in child_slots(node):
        if isinstance(slot, str):
            refs.append(slot)
        else:
            refs.extend(child_references(slot))
    return refs


class ComponentEntry(_ProtocolModel):
    """One registration inside a surfaceUpdate.

    Attributes:
        id: Caller-chosen identifier, unique within the registry
        component: The node registered under that id
    """

    id: str = Field(min_length=1)
    component: ComponentNode

    def to_wire(self) -> dict[str, Any]:
        return {"id": self.id, "component": self.component.to_wire()}


# -----------------------------------------------------------------------------
# Protocol messages
# -----------------------------------------------------------------------------


class SurfaceUpdate(_ProtocolModel):
    """Register components; later entries overwrite earlier ones by id."""

    components: list[ComponentEntry] = Field(default_factory=list)
    surface_id: str | None = Field(default=None, min_length=1)

    def to_wire(self) -> dict[str, Any]:
        body: dict[str, Any] = {"components": [entry.to_wire() for entry in self.components]}
        if self.surface_id is not None:
            body["surfaceId"] = self.surface_id
        return {SURFACE_UPDATE_KEY: body}

    def to_json(self) -> str:
        return _compact_json(self.to_wire())


class DataModelUpdate(_ProtocolModel):
    """Data-binding contents. Accepted and stored, never interpreted here."""

    contents: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return {DATA_MODEL_UPDATE_KEY: {"contents": self.contents}}

    def to_json(self) -> str:
        return _compact_json(self.to_wire())


class BeginRendering(_ProtocolModel):
    """Declare the root of a surface. The only message that makes a registry renderable."""

    root: str = Field(min_length=1)
    surface_id: str | None = Field(default=None, min_length=1)

    def to_wire(self) -> dict[str, Any]:
        body: dict[str, Any] = {"root": self.root}
        if self.surface_id is not None:
            body["surfaceId"] = self.surface_id
        return {BEGIN_RENDERING_KEY: body}

    def to_json(self) -> str:
        return _compact_json(self.to_wire())


class DeleteSurface(_ProtocolModel):
    """Remove a named secondary surface."""

    surface_id: str = Field(min_length=1)

    def to_wire(self) -> dict[str, Any]:
        return {DELETE_SURFACE_KEY: {"surfaceId": self.surface_id}}

    def to_json(self) -> str:
        return _compact_json(self.to_wire())


class StatusEvent(_ProtocolModel):
    """Advisory orchestration signal carried in a ``_meta`` record.

    Consumers may drop these without affecting what is rendered.

    Attributes:
        tag: The ``_meta`` value (e.g. "A2A_STATUS")
        payload: Every other key of the record
    """

    tag: str
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return {META_KEY: self.tag, **self.payload}

    def to_json(self) -> str:
        return _compact_json(self.to_wire())


class Unrecognized(_ProtocolModel):
    """A record that did not decode. Never applied to a registry."""

    raw: str
    reason: UnrecognizedReason

    def to_wire(self) -> dict[str, Any]:
        return {"_unrecognized": self.raw, "reason": self.reason.value}

    def to_json(self) -> str:
        return _compact_json(self.to_wire())


ProtocolMessage = (
    SurfaceUpdate
    | DataModelUpdate
    | BeginRendering
    | DeleteSurface
    | StatusEvent
    | Unrecognized
)

# Messages that describe UI, as opposed to signals and diagnostics.
RENDERABLE_TYPES = (SurfaceUpdate, DataModelUpdate, BeginRendering, DeleteSurface)


def is_renderable(message: ProtocolMessage) -> bool:
    """True for messages that mutate the component graph or its roots."""
    return isinstance(message, RENDERABLE_TYPES)


# -----------------------------------------------------------------------------
# Builders
# -----------------------------------------------------------------------------


def text_component(
    component_id: str,
    text: str,
    usage_hint: str | None = None,
) -> ComponentEntry:
    """Build a Text entry with a literal string."""
    properties: dict[str, Any] = {"text": {"literalString": text}}
    if usage_hint:
        properties["usageHint"] = usage_hint
    return ComponentEntry(
        id=component_id,
        component=KnownComponent(kind=ComponentKind.TEXT, properties=properties),
    )


def column_component(component_id: str, children: list[str]) -> ComponentEntry:
    """Build a Column entry over an explicit list of child ids."""
    return ComponentEntry(
        id=component_id,
        component=KnownComponent(
            kind=ComponentKind.COLUMN,
            properties={"children": {"explicitList": list(children)}},
        ),
    )


def status_event(status: str) -> StatusEvent:
    """Build an ``A2A_STATUS`` event."""
    return StatusEvent(tag=STATUS_TAG, payload={"status": status})
