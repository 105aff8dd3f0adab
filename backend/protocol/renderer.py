"""Tree renderer over a ComponentRegistry.

Produces a display-agnostic tree of RenderedNode objects from the registry's
read interface. Anything that cannot be resolved is rendered as a local
placeholder node so one bad reference never takes down the whole tree:

- Missing: a child id with no registered component
- Unknown: a component kind outside ComponentKind
- Cycle: a reference back to an ancestor
- TooDeep: nesting beyond MAX_RENDER_DEPTH
"""

from dataclasses import dataclass, field
from typing import Any

import structlog

from protocol.messages import (
    CONTAINER_KINDS,
    ComponentKind,
    ComponentNode,
    KnownComponent,
    UnknownComponent,
    child_slots,
)
from protocol.registry import ComponentRegistry

logger = structlog.get_logger()

MISSING_KIND = "Missing"
UNKNOWN_KIND = "Unknown"
CYCLE_KIND = "Cycle"
TOO_DEEP_KIND = "TooDeep"

# Depth (root = 0) at which a subtree is replaced by a TooDeep placeholder.
MAX_RENDER_DEPTH = 200

# Properties that carry structure and are replaced by rendered children.
_STRUCTURAL_PROPS = {"children", "child"}


@dataclass
class RenderedNode:
    """One displayed element.

    Attributes:
        kind: Component kind, or a placeholder kind (Missing, Unknown, Cycle)
        component_id: Registry id, None for inline nodes
        properties: Non-structural properties, passed through opaquely
        children: Rendered children in display order
        error: Placeholder explanation, None for real components
    """

    kind: str
    component_id: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    children: list["RenderedNode"] = field(default_factory=list)
    error: str | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to plain dicts for serialization or snapshot comparison."""
        data: dict[str, Any] = {"kind": self.kind, "id": self.component_id}
        if self.properties:
            data["properties"] = self.properties
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        if self.error is not None:
            data["error"] = self.error
        return data

    def walk(self) -> list["RenderedNode"]:
        """This node and all descendants, depth first."""
        nodes = [self]
        for child in self.children:
            nodes.extend(child.walk())
        return nodes


class TreeRenderer:
    """Render the active surface of a registry into a RenderedNode tree.

    Usage:
        >>> renderer = TreeRenderer(registry)
        >>> tree = renderer.render()
        >>> tree.to_dict() if tree else None
    """

    def __init__(self, registry: ComponentRegistry) -> None:
        self.registry = registry

    def render(self, surface_id: str | None = None) -> RenderedNode | None:
        """Render a surface from its active root.

        Args:
            surface_id: Named surface; None renders the primary surface

        Returns:
            The rendered tree, or None if the surface has no active root
        """
        root_id = self.registry.active_root(surface_id)
        if root_id is None:
            logger.debug("render_skipped_no_root", surface_id=surface_id)
            return None
        return self._render_ref(root_id, ancestors=(), depth=0)

    def _render_ref(
        self,
        component_id: str,
        ancestors: tuple[str, ...],
        depth: int,
    ) -> RenderedNode:
        if depth >= MAX_RENDER_DEPTH:
            logger.warning("render_depth_exceeded", component_id=component_id, depth=depth)
            return RenderedNode(
                kind=TOO_DEEP_KIND,
                component_id=component_id,
                error=f"Max render depth exceeded at component: {component_id}",
            )

        if component_id in ancestors:
            logger.warning("render_cycle_detected", component_id=component_id)
            return RenderedNode(
                kind=CYCLE_KIND,
                component_id=component_id,
                error=f"Reference cycle at component: {component_id}",
            )

        node = self.registry.resolve(component_id)
        if node is None:
            logger.warning("render_component_not_found", component_id=component_id)
            return RenderedNode(
                kind=MISSING_KIND,
                component_id=component_id,
                error=f"Component not found: {component_id}",
            )

        return self._render_node(node, component_id, (*ancestors, component_id), depth)

    def _render_node(
        self,
        node: ComponentNode,
        component_id: str | None,
        ancestors: tuple[str, ...],
        depth: int,
    ) -> RenderedNode:
        if isinstance(node, UnknownComponent):
            return RenderedNode(
                kind=UNKNOWN_KIND,
                component_id=component_id,
                properties={"name": node.name},
                error=f"Unknown component type: {node.name}",
            )

        rendered = RenderedNode(
            kind=node.kind.value,
            component_id=component_id,
            properties={
                key: value
                for key, value in node.properties.items()
                if key not in _STRUCTURAL_PROPS or not _is_structural(node, key)
            },
        )
        for slot in child_slots(node):
            if isinstance(slot, str):
                rendered.children.append(self._render_ref(slot, ancestors, depth + 1))
            elif depth + 1 >= MAX_RENDER_DEPTH:
                rendered.children.append(
                    RenderedNode(kind=TOO_DEEP_KIND, error="Max render depth exceeded at inline child")
                )
            else:
                rendered.children.append(self._render_node(slot, None, ancestors, depth + 1))
        return rendered


def _is_structural(node: KnownComponent, key: str) -> bool:
    if key == "children":
        return node.kind in CONTAINER_KINDS
    return node.kind == ComponentKind.CARD
