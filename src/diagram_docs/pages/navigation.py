from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

from ..schema import Document, NavNode
from .routes import normalize_route


def build_nav_tree(pages: Mapping[str, Document]) -> List[NavNode]:
    """
    Build the navigation forest. Routes are inserted in lexicographic order, so an
    ancestor (a string prefix) is always indexed before its descendants.
    """
    roots: List[NavNode] = []
    index: Dict[str, NavNode] = {}
    for route in sorted(pages):
        page = pages[route]
        node = NavNode(route=page.route, title=page.title)
        index[page.route] = node
        parent = index.get(page.parent_route) if page.parent_route else None
        if parent is not None:
            parent.children.append(node)
        else:
            roots.append(node)
    return roots


def find_page(pages: Mapping[str, Document], route: str) -> Optional[Document]:
    return pages.get(normalize_route(route))


def breadcrumbs(page: Document, pages: Mapping[str, Document]) -> List[Tuple[str, Optional[str]]]:
    """
    (title, route) pairs from the outermost ancestor down to page. The page itself
    carries no route since it is the current location.
    """
    crumbs: List[Tuple[str, Optional[str]]] = []
    seen = set()
    current: Optional[Document] = page
    while current is not None and current.route not in seen:
        seen.add(current.route)
        crumbs.insert(0, (current.title, None if current.route == page.route else current.route))
        current = pages.get(current.parent_route) if current.parent_route else None
    return crumbs


def child_pages(route: str, pages: Mapping[str, Document]) -> List[Document]:
    route = normalize_route(route)
    return sorted((p for p in pages.values() if p.parent_route == route), key=lambda p: p.title)
