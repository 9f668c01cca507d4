from __future__ import annotations

from typing import Optional

from diagram_docs.pages.builder import DiscoveredDocument, build_pages
from diagram_docs.schema import DiagramSection, NavNode


def _doc(rel: str, content: Optional[str] = "") -> DiscoveredDocument:
    return DiscoveredDocument(relative_path=rel, source_path=f"docs/{rel}", content=content)


def _walk(nodes: list[NavNode]) -> list[str]:
    out: list[str] = []
    for node in nodes:
        out.append(node.route)
        out.extend(_walk(node.children))
    return out


def test_missing_directory_index_is_synthesized() -> None:
    graph = build_pages(
        [
            _doc("guide/setup.md", "# Setup\n"),
            _doc("guide/usage.md", "# Usage\n"),
        ]
    )

    guide = graph.pages["/guide"]
    assert guide.title == "Guide"
    assert guide.is_index
    assert guide.sections == []
    assert guide.parent_route is None
    assert graph.synthesized == ["/guide"]

    assert [n.route for n in graph.nav_tree] == ["/guide"]
    assert [c.route for c in graph.nav_tree[0].children] == ["/guide/setup", "/guide/usage"]


def test_deep_nesting_is_fully_connected() -> None:
    graph = build_pages([_doc("a/b/c/d.md", "# D\n")])

    assert graph.synthesized == ["/a", "/a/b", "/a/b/c"]
    assert graph.pages["/a/b/c/d"].parent_route == "/a/b/c"
    assert graph.pages["/a/b"].parent_route == "/a"
    assert _walk(graph.nav_tree) == ["/a", "/a/b", "/a/b/c", "/a/b/c/d"]


def test_root_index_becomes_parent_of_top_level_pages() -> None:
    graph = build_pages(
        [
            _doc("index.md", "# Welcome\n"),
            _doc("about.md", "# About\n"),
            _doc("guide/setup.md", "# Setup\n"),
        ]
    )
    assert graph.pages["/"].title == "Welcome"
    assert graph.pages["/about"].parent_route == "/"
    assert graph.pages["/guide"].parent_route == "/"
    assert [n.route for n in graph.nav_tree] == ["/"]
    assert [c.route for c in graph.nav_tree[0].children] == ["/about", "/guide"]


def test_unreadable_root_index_is_replaced_by_home() -> None:
    graph = build_pages([_doc("index.md", None), _doc("about.md", "# About\n")])
    assert graph.pages["/"].title == "Home"
    assert graph.pages["/about"].parent_route == "/"
    assert graph.skipped == ["docs/index.md"]


def test_missing_and_broken_documents_are_skipped() -> None:
    graph = build_pages(
        [
            _doc("ok.md", "# Fine\n"),
            _doc("gone.md", None),
            _doc("broken.md", "---\ntitle: [oops\n---\nbody\n"),
        ]
    )
    assert list(graph.pages) == ["/ok"]
    assert sorted(graph.skipped) == ["docs/broken.md", "docs/gone.md"]


def test_duplicate_route_last_file_wins() -> None:
    graph = build_pages([_doc("guide.md", "# Flat\n"), _doc("guide/index.md", "# Folder\n")])
    assert graph.pages["/guide"].title == "Folder"
    assert graph.pages["/guide"].is_index


def test_nav_tree_places_every_page_exactly_once() -> None:
    graph = build_pages(
        [
            _doc("index.md", "# Home\n"),
            _doc("x/y/z.md", "# Z\n"),
            _doc("x/index.md", "# X\n"),
            _doc("w.md", "# W\n"),
        ]
    )
    routes = _walk(graph.nav_tree)
    assert sorted(routes) == sorted(graph.pages)
    assert len(routes) == len(set(routes))


def test_pages_payload_shape() -> None:
    body = '# Flow\n\n```mermaid\nflowchart\nA-->B\nclick A href "#" "lib/a.rb"\n```\n'
    graph = build_pages([_doc("flow.md", body)])
    page = graph.pages["/flow"]
    assert page.source_path == "docs/flow.md"
    assert isinstance(page.sections[1], DiagramSection)

    payload = graph.to_dict()
    assert set(payload) == {"pages", "navTree"}
    section = payload["pages"]["/flow"]["sections"][1]
    assert section["type"] == "diagram"
    assert section["nodeMap"] == {"A": {"file": "lib/a.rb", "startLine": None, "endLine": None}}
    assert "participantMap" not in section
    assert payload["navTree"] == [{"route": "/flow", "title": "Flow", "children": []}]
