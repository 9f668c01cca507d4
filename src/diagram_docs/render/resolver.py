"""
Locate the SVG elements that stand for a diagram node.

The renderer's output is not under our control and each diagram family exposes
node identity differently, so resolution is a cascade of strategies ordered from
most to least specific. The first strategy that matches anything wins. A
different rendering backend only needs its own strategy tuple.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from ..logging import get_logger
from ..util.errors import RenderError

LOG = get_logger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", XLINK_NS)


def local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def normalize_text(text: str) -> str:
    return " ".join(text.split())


class RenderedDiagram:
    """Parsed SVG output of one render, with parent lookups for ancestor walks."""

    def __init__(self, root: ET.Element) -> None:
        self.root = root
        self._parents: Optional[Dict[ET.Element, ET.Element]] = None

    @classmethod
    def from_svg(cls, svg: str) -> RenderedDiagram:
        try:
            return cls(ET.fromstring(svg))
        except ET.ParseError as e:
            raise RenderError(f"Renderer produced unparseable SVG: {e}") from e

    def iter(self) -> Iterator[ET.Element]:
        return self.root.iter()

    def parent(self, element: ET.Element) -> Optional[ET.Element]:
        if self._parents is None:
            self._parents = {child: parent for parent in self.root.iter() for child in parent}
        return self._parents.get(element)

    def closest(self, element: ET.Element, name: str) -> Optional[ET.Element]:
        current: Optional[ET.Element] = element
        while current is not None:
            if local_name(current.tag) == name:
                return current
            current = self.parent(current)
        return None

    def to_svg(self) -> str:
        return ET.tostring(self.root, encoding="unicode")


Strategy = Callable[[RenderedDiagram, str, Optional[str]], List[ET.Element]]


def _first(diagram: RenderedDiagram, predicate: Callable[[ET.Element], bool]) -> List[ET.Element]:
    for element in diagram.iter():
        if predicate(element):
            return [element]
    return []


def by_flowchart_id(diagram: RenderedDiagram, node_id: str, display_name: Optional[str]) -> List[ET.Element]:
    # flowchart nodes are rendered with ids like "flowchart-<nodeId>-<n>"
    needle = f"flowchart-{node_id}-"
    return _first(diagram, lambda el: needle in el.get("id", ""))


def by_exact_id(diagram: RenderedDiagram, node_id: str, display_name: Optional[str]) -> List[ET.Element]:
    return _first(diagram, lambda el: el.get("id") == node_id)


def by_data_id(diagram: RenderedDiagram, node_id: str, display_name: Optional[str]) -> List[ET.Element]:
    return _first(diagram, lambda el: el.get("data-id") == node_id)


def by_participant_label(diagram: RenderedDiagram, node_id: str, display_name: Optional[str]) -> List[ET.Element]:
    """
    Sequence participants only carry their label. A text element matches when its
    normalized content contains the display name or is contained in it, which
    covers labels split over several tspans and labels the renderer truncated.
    Participants are drawn twice (top and bottom), so every enclosing group counts.
    """
    if not display_name:
        return []
    groups: List[ET.Element] = []
    seen = set()
    for element in diagram.iter():
        if local_name(element.tag) != "text":
            continue
        content = normalize_text("".join(element.itertext()))
        if not content or (display_name not in content and content not in display_name):
            continue
        group = diagram.closest(element, "g")
        if group is not None and id(group) not in seen:
            seen.add(id(group))
            groups.append(group)
    return groups


def by_id_substring(diagram: RenderedDiagram, node_id: str, display_name: Optional[str]) -> List[ET.Element]:
    return _first(diagram, lambda el: node_id in el.get("id", ""))


DEFAULT_STRATEGIES: Sequence[Strategy] = (
    by_flowchart_id,
    by_exact_id,
    by_data_id,
    by_participant_label,
    by_id_substring,
)


class NodeResolver:
    def __init__(self, strategies: Sequence[Strategy] = DEFAULT_STRATEGIES) -> None:
        self.strategies = tuple(strategies)

    def resolve(
        self,
        diagram: RenderedDiagram,
        node_id: str,
        participant_map: Optional[Mapping[str, str]] = None,
    ) -> List[ET.Element]:
        display_name = (participant_map or {}).get(node_id)
        for strategy in self.strategies:
            matches = strategy(diagram, node_id, display_name)
            if matches:
                return matches
        LOG.debug("No rendered element for node", extra={"node_id": node_id})
        return []


def resolve_node_elements(
    diagram: RenderedDiagram,
    node_id: str,
    participant_map: Optional[Mapping[str, str]] = None,
) -> List[ET.Element]:
    return NodeResolver().resolve(diagram, node_id, participant_map)
