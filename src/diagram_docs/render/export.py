from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from ..export.artifacts import write_json
from ..logging import get_logger
from ..schema import DiagramSection, Document
from .renderer import DiagramRenderer
from .view import ERROR, RENDERED, DiagramView, PopoverState

LOG = get_logger(__name__)

MANIFEST_FILE = "diagrams.json"


@dataclass
class RenderSummary:
    rendered: int = 0
    failed: int = 0
    unresolved_nodes: int = 0
    entries: List[Dict[str, Any]] = field(default_factory=list)


def route_slug(route: str) -> str:
    """/guide/a-b -> guide-a--b; hyphens are doubled so distinct routes never share a slug."""
    return route.strip("/").replace("-", "--").replace("/", "-") or "root"


def _unique_name(base: str, used: Set[str]) -> str:
    name = base
    suffix = 2
    while name in used:
        name = f"{base}~{suffix}"
        suffix += 1
    used.add(name)
    return name


def _entry_for(view: DiagramView, page: Document, section_index: int, svg_name: Optional[str]) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "page": page.route,
        "section": section_index,
        "diagramId": view.diagram.id,
        "status": view.status,
    }
    if view.status == ERROR:
        entry["error"] = view.error
        entry["definition"] = view.diagram.definition
        return entry
    entry["file"] = svg_name
    entry["nodes"] = {
        node_id: {
            "ref": binding.ref.to_dict(),
            "elements": [el.get("id") for el in binding.elements],
        }
        for node_id, binding in view.bindings.items()
    }
    entry["unresolved"] = view.unresolved
    return entry


async def render_site_diagrams(
    pages: Mapping[str, Document],
    renderer: DiagramRenderer,
    outdir: Path,
    *,
    on_rendered: Optional[Callable[[str], None]] = None,
) -> RenderSummary:
    """
    Render every diagram of every page, one at a time, and write the annotated SVG
    (clickable nodes marked) plus a manifest. A failed diagram is recorded and the
    run continues.
    """
    outdir.mkdir(parents=True, exist_ok=True)
    summary = RenderSummary()
    used_ids: Set[str] = set()
    for route in sorted(pages):
        page = pages[route]
        for section_index, section in enumerate(page.sections):
            if not isinstance(section, DiagramSection):
                continue
            view_id = _unique_name(f"{route_slug(route)}-{section.id}-{section_index}", used_ids)
            view = DiagramView(section, renderer, PopoverState(), view_id=view_id)
            status = await view.render()
            svg_name = None
            if status == RENDERED and view.rendered is not None:
                svg_name = f"{view_id}.svg"
                (outdir / svg_name).write_text(view.rendered.to_svg(), encoding="utf-8")
                summary.rendered += 1
                summary.unresolved_nodes += len(view.unresolved)
                if view.unresolved:
                    LOG.info(
                        "Diagram nodes without a rendered element",
                        extra={"diagram": view_id, "nodes": view.unresolved},
                    )
            else:
                summary.failed += 1
            summary.entries.append(_entry_for(view, page, section_index, svg_name))
            if on_rendered is not None:
                on_rendered(view_id)
    write_json(outdir / MANIFEST_FILE, {"diagrams": summary.entries})
    return summary
