from __future__ import annotations

import re
from typing import Optional

ROOT_ROUTE = "/"
MARKDOWN_SUFFIX = ".md"
_WORD_START_RE = re.compile(r"\b\w")


def normalize_route(route: str) -> str:
    """Leading slash, no trailing slash except for the root route."""
    return "/" + route.strip("/")


def file_to_route(relative_path: str) -> str:
    """
    guide/setup.md -> /guide/setup, guide/index.md -> /guide, index.md -> /
    """
    route = relative_path.replace("\\", "/")
    if route.endswith(MARKDOWN_SUFFIX):
        route = route[: -len(MARKDOWN_SUFFIX)]
    if route == "index":
        route = ""
    elif route.endswith("/index"):
        route = route[: -len("/index")]
    return normalize_route(route)


def is_index_file(relative_path: str) -> bool:
    return relative_path.replace("\\", "/").rsplit("/", 1)[-1] == "index" + MARKDOWN_SUFFIX


def parent_of(route: str) -> Optional[str]:
    """Route with its last segment removed; the root has no parent."""
    route = normalize_route(route)
    if route == ROOT_ROUTE:
        return None
    return route[: route.rfind("/")] or ROOT_ROUTE


def last_segment(route: str) -> str:
    return normalize_route(route).rsplit("/", 1)[-1]


def title_for_route(route: str) -> str:
    """/docs/getting_started -> Getting Started"""
    if normalize_route(route) == ROOT_ROUTE:
        return "Home"
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), last_segment(route).replace("_", " "))
