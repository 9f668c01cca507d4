from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional

from ..logging import get_logger
from ..markdown.sections import parse_markdown
from ..schema import Document, NavNode
from ..util.errors import DocumentParseError
from .navigation import build_nav_tree
from .routes import ROOT_ROUTE, file_to_route, is_index_file, parent_of, title_for_route

LOG = get_logger(__name__)


@dataclass(frozen=True)
class DiscoveredDocument:
    relative_path: str  # relative to the docs root, "/"-separated
    source_path: str  # repository-relative
    content: Optional[str]  # None when the fetch layer could not read it


@dataclass(frozen=True)
class PageGraph:
    pages: Dict[str, Document]
    nav_tree: List[NavNode]
    synthesized: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages": {route: page.to_dict() for route, page in self.pages.items()},
            "navTree": [node.to_dict() for node in self.nav_tree],
        }


def _initial_parent(route: str, has_root_index: bool) -> Optional[str]:
    parent = parent_of(route)
    if parent == ROOT_ROUTE and not has_root_index:
        return None
    return parent


def _document_from_file(doc: DiscoveredDocument, has_root_index: bool) -> Document:
    route = file_to_route(doc.relative_path)
    parsed = parse_markdown(doc.content or "", fallback_name=PurePosixPath(doc.relative_path).stem)
    return Document(
        route=route,
        title=parsed.meta.title,
        description=parsed.meta.description,
        tags=list(parsed.meta.tags),
        is_index=is_index_file(doc.relative_path),
        parent_route=_initial_parent(route, has_root_index),
        source_path=doc.source_path,
        sections=parsed.sections,
    )


def synthesize_missing_parents(pages: Dict[str, Document], has_root_index: bool) -> List[str]:
    """
    Add placeholder index pages for every parent route that is referenced but
    absent, repeating until no gaps remain. Each round moves one level closer to
    the root, so the loop is bounded by route depth.
    """
    synthesized: List[str] = []
    while True:
        missing = sorted(
            {p.parent_route for p in pages.values() if p.parent_route and p.parent_route not in pages},
            reverse=True,
        )
        if not missing:
            return synthesized
        for route in missing:
            title = title_for_route(route)
            pages[route] = Document(
                route=route,
                title=title,
                is_index=True,
                parent_route=_initial_parent(route, has_root_index),
            )
            synthesized.append(route)
            LOG.info("Synthesized index page", extra={"route": route, "title": title})


def drop_dangling_parents(pages: Dict[str, Document]) -> None:
    for route, page in list(pages.items()):
        if page.parent_route and page.parent_route not in pages:
            pages[route] = replace(page, parent_route=None)


def build_pages(files: Iterable[DiscoveredDocument]) -> PageGraph:
    """
    Turn discovered Markdown files into the route -> Document map plus nav tree.
    Files that could not be fetched or parsed are logged and skipped.
    """
    docs = sorted(files, key=lambda d: d.relative_path)
    has_root_index = any(file_to_route(d.relative_path) == ROOT_ROUTE for d in docs)

    pages: Dict[str, Document] = {}
    skipped: List[str] = []
    for doc in docs:
        if doc.content is None:
            LOG.warning("Source document missing; skipped", extra={"path": doc.source_path})
            skipped.append(doc.source_path)
            continue
        try:
            page = _document_from_file(doc, has_root_index)
        except DocumentParseError as e:
            LOG.warning("Source document unparseable; skipped", extra={"path": doc.source_path, "error": str(e)})
            skipped.append(doc.source_path)
            continue
        if page.route in pages:
            LOG.warning(
                "Route defined by more than one file; last one wins",
                extra={"route": page.route, "path": doc.source_path},
            )
        pages[page.route] = page

    synthesized = synthesize_missing_parents(pages, has_root_index)
    drop_dangling_parents(pages)

    ordered = {route: pages[route] for route in sorted(pages)}
    return PageGraph(
        pages=ordered,
        nav_tree=build_nav_tree(ordered),
        synthesized=sorted(synthesized),
        skipped=skipped,
    )
