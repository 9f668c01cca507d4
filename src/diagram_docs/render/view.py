"""
Render-time state for a single diagram on screen.

A view renders its definition asynchronously, and only once the SVG has been
parsed in full does it resolve nodes and bind click handlers. The view can be
torn down while a render is in flight; the late completion is then dropped.
"""

from __future__ import annotations

import itertools
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..logging import get_logger
from ..schema import DiagramSection, SourceRef
from ..util.errors import RenderError
from .renderer import DiagramRenderer
from .resolver import NodeResolver, RenderedDiagram

LOG = get_logger(__name__)

PENDING = "pending"
RENDERED = "rendered"
ERROR = "error"
CANCELLED = "cancelled"

CLICKABLE_CLASS = "clickable-node"

# Render ids must not collide across renders of the same diagram.
_render_counter = itertools.count()


@dataclass(frozen=True)
class Popover:
    node_id: str
    ref: SourceRef
    anchor: ET.Element


class PopoverState:
    """At most one open popover. Owned by the caller and shared with the views it drives."""

    def __init__(self) -> None:
        self.current: Optional[Popover] = None

    def toggle(self, node_id: str, ref: SourceRef, anchor: ET.Element) -> Optional[Popover]:
        if self.current is not None and self.current.node_id == node_id:
            self.current = None
        else:
            self.current = Popover(node_id=node_id, ref=ref, anchor=anchor)
        return self.current

    def close(self) -> None:
        self.current = None


@dataclass
class NodeBinding:
    node_id: str
    ref: SourceRef
    elements: List[ET.Element] = field(default_factory=list)


def _mark_clickable(element: ET.Element, node_id: str) -> None:
    style = element.get("style", "").strip()
    if "cursor:" not in style.replace(" ", ""):
        style = f"{style}; cursor: pointer" if style else "cursor: pointer"
        element.set("style", style.lstrip("; "))
    classes = element.get("class", "").split()
    if CLICKABLE_CLASS not in classes:
        classes.append(CLICKABLE_CLASS)
        element.set("class", " ".join(classes))
    element.set("data-source-node", node_id)


class DiagramView:
    def __init__(
        self,
        diagram: DiagramSection,
        renderer: DiagramRenderer,
        popover: PopoverState,
        *,
        view_id: Optional[str] = None,
        resolver: Optional[NodeResolver] = None,
    ) -> None:
        self.diagram = diagram
        self.renderer = renderer
        self.popover = popover
        self.view_id = view_id or diagram.id
        self.resolver = resolver or NodeResolver()
        self.status = PENDING
        self.error: Optional[str] = None
        self.rendered: Optional[RenderedDiagram] = None
        self.bindings: Dict[str, NodeBinding] = {}
        self._handlers: Dict[int, List[Callable[[], None]]] = {}
        self._cancelled = False
        # bumped by every render() and by cancel(); only the latest render may commit
        self._generation = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def unresolved(self) -> List[str]:
        return [node_id for node_id, binding in self.bindings.items() if not binding.elements]

    def cancel(self) -> None:
        """Tear the view down; an in-flight render will not touch it anymore."""
        self._cancelled = True
        self._generation += 1
        self._handlers.clear()

    def _is_stale(self, token: int) -> bool:
        return self._cancelled or token != self._generation

    async def render(self) -> str:
        self._generation += 1
        token = self._generation
        render_id = f"mermaid-{self.view_id}-{next(_render_counter)}"
        try:
            svg = await self.renderer.render(render_id, self.diagram.definition)
            rendered = RenderedDiagram.from_svg(svg)
        except RenderError as e:
            if self._is_stale(token):
                return CANCELLED
            LOG.warning("Diagram render failed", extra={"diagram": self.view_id, "error": str(e)})
            self._reset()
            self.status = ERROR
            self.error = str(e) or "Failed to render diagram"
            return self.status
        if self._is_stale(token):
            LOG.debug("Discarding stale render", extra={"diagram": self.view_id, "render_id": render_id})
            return CANCELLED
        self._reset()
        self.rendered = rendered
        self._bind_nodes(rendered)
        self.status = RENDERED
        return self.status

    def _reset(self) -> None:
        self.rendered = None
        self.error = None
        self.bindings = {}
        self._handlers = {}

    def _bind_nodes(self, rendered: RenderedDiagram) -> None:
        for node_id, ref in self.diagram.node_map.items():
            elements = self.resolver.resolve(rendered, node_id, self.diagram.participant_map)
            self.bindings[node_id] = NodeBinding(node_id=node_id, ref=ref, elements=list(elements))
            for element in elements:
                _mark_clickable(element, node_id)
                self._handlers.setdefault(id(element), []).append(self._click_handler(node_id, ref, element))

    def _click_handler(self, node_id: str, ref: SourceRef, element: ET.Element) -> Callable[[], None]:
        def _on_click() -> None:
            if self._cancelled:
                return
            self.popover.toggle(node_id, ref, element)

        return _on_click

    def click(self, element: ET.Element) -> bool:
        """
        Dispatch a click the way a browser would: from the clicked element up to
        the nearest ancestor carrying handlers, which consumes the event.
        """
        if self.rendered is None or self._cancelled:
            return False
        current: Optional[ET.Element] = element
        while current is not None:
            handlers = self._handlers.get(id(current))
            if handlers:
                for handler in handlers:
                    handler()
                return True
            current = self.rendered.parent(current)
        return False
