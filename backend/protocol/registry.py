"""Component registry: the mutable UI graph for one response session.

The registry is a flat store of component nodes keyed by id plus the root
pointers declared by beginRendering messages. Structure is resolved only
through child references, never through insertion order.

Ownership:
    A registry is created per response session and mutated by exactly one
    consumer loop reading the merged message stream. Producers never touch
    it directly, so it carries no locking.
"""

from typing import Any

import structlog

from protocol.messages import (
    BeginRendering,
    ComponentNode,
    DataModelUpdate,
    DeleteSurface,
    KnownComponent,
    ProtocolMessage,
    SurfaceUpdate,
)

logger = structlog.get_logger()


class ComponentRegistry:
    """Reference-based component graph with last-write-wins registration.

    Invariants:
        - An id maps to at most one node; re-registering replaces the node
          wholesale (no merge of properties).
        - The primary surface becomes renderable only once a beginRendering
          without ``surfaceId`` has been applied.
        - Dangling child references are accepted; resolving them is the
          renderer's job.

    Usage:
        >>> registry = ComponentRegistry()
        >>> registry.apply(SurfaceUpdate(components=[text_component("a", "Hi")]))
        >>> registry.active_root() is None
        True
        >>> registry.apply(BeginRendering(root="a"))
        >>> registry.active_root()
        'a'
    """

    def __init__(self) -> None:
        self._components: dict[str, ComponentNode] = {}
        self._root: str | None = None
        self._surfaces: dict[str, str] = {}
        self._data_model: dict[str, Any] = {}

    def apply(self, message: ProtocolMessage) -> None:
        """Apply one protocol message.

        StatusEvent and Unrecognized messages are no-ops.

        Args:
            message: The decoded message
        """
        if isinstance(message, SurfaceUpdate):
            overwritten = 0
            for entry in message.components:
                if entry.id in self._components:
                    overwritten += 1
                self._components[entry.id] = entry.component
            logger.debug(
                "registry_surface_update",
                registered=len(message.components),
                overwritten=overwritten,
                total=len(self._components),
            )
        elif isinstance(message, BeginRendering):
            if message.surface_id is None:
                self._root = message.root
            else:
                self._surfaces[message.surface_id] = message.root
            logger.debug(
                "registry_root_set",
                root=message.root,
                surface_id=message.surface_id,
            )
        elif isinstance(message, DataModelUpdate):
            self._data_model.update(message.contents)
        elif isinstance(message, DeleteSurface):
            removed = self._surfaces.pop(message.surface_id, None)
            if removed is None:
                logger.debug("registry_delete_unknown_surface", surface_id=message.surface_id)

    def resolve(self, component_id: str) -> ComponentNode | None:
        """Look up a component by id.

        Returns:
            The registered node, or None if the id is not registered
        """
        return self._components.get(component_id)

    def active_root(self, surface_id: str | None = None) -> str | None:
        """Return the root id of a surface, or None if it has not begun rendering.

        Args:
            surface_id: Named surface; None selects the primary surface
        """
        if surface_id is None:
            return self._root
        return self._surfaces.get(surface_id)

    @property
    def is_ready(self) -> bool:
        """Whether the primary surface has an active root."""
        return self._root is not None

    @property
    def data_model(self) -> dict[str, Any]:
        """Merged dataModelUpdate contents (a copy)."""
        return dict(self._data_model)

    def surfaces(self) -> dict[str, str]:
        """Named surfaces and their root ids."""
        return dict(self._surfaces)

    def component_ids(self) -> list[str]:
        """Registered ids in first-registration order."""
        return list(self._components)

    def reset(self) -> None:
        """Forget every component, root pointer and data-model entry."""
        self._components.clear()
        self._surfaces.clear()
        self._data_model.clear()
        self._root = None
        logger.debug("registry_reset")

    def stats(self) -> dict[str, Any]:
        """Summarize the registry for diagnostics.

        Returns:
            Dict with component_count, root_id and the component kinds in use
        """
        kinds: list[str] = []
        for node in self._components.values():
            name = node.kind.value if isinstance(node, KnownComponent) else node.name
            if name not in kinds:
                kinds.append(name)
        return {
            "component_count": len(self._components),
            "root_id": self._root,
            "kinds": kinds,
        }

    def __len__(self) -> int:
        return len(self._components)

    def __contains__(self, component_id: object) -> bool:
        return component_id in self._components
