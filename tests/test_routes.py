from __future__ import annotations

from diagram_docs.pages.routes import file_to_route, is_index_file, normalize_route, parent_of, title_for_route


def test_file_to_route() -> None:
    assert file_to_route("index.md") == "/"
    assert file_to_route("guide/index.md") == "/guide"
    assert file_to_route("guide/setup.md") == "/guide/setup"
    assert file_to_route("guide\\deep\\page.md") == "/guide/deep/page"


def test_index_detection_uses_basename() -> None:
    assert is_index_file("index.md")
    assert is_index_file("a/b/index.md")
    assert not is_index_file("a/reindex.md")


def test_parent_of() -> None:
    assert parent_of("/") is None
    assert parent_of("/guide") == "/"
    assert parent_of("/guide/setup/") == "/guide"


def test_title_for_route() -> None:
    assert title_for_route("/guide") == "Guide"
    assert title_for_route("/docs/getting_started") == "Getting Started"
    assert title_for_route("/") == "Home"


def test_normalize_route() -> None:
    assert normalize_route("guide/") == "/guide"
    assert normalize_route("") == "/"
