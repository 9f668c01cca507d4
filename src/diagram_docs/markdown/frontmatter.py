from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

import yaml

from ..util.errors import DocumentParseError

FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
H1_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)


@dataclass(frozen=True)
class DocumentMeta:
    title: str
    description: str = ""
    tags: List[str] = field(default_factory=list)


def split_frontmatter(raw: str) -> Tuple[Dict[str, Any], str]:
    """
    Separate a leading YAML frontmatter block from the Markdown body.
    Documents without frontmatter return an empty mapping and the text unchanged.
    """
    match = FRONTMATTER_RE.match(raw)
    if not match:
        return {}, raw
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        raise DocumentParseError(f"Invalid frontmatter: {e}") from e
    if not isinstance(data, dict):
        raise DocumentParseError("Frontmatter must be a mapping")
    return data, raw[match.end() :]


def title_from_name(name: str) -> str:
    """setup_guide -> Setup Guide"""
    words = re.sub(r"[_-]+", " ", name).split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _coerce_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def read_document_meta(frontmatter: Mapping[str, Any], body: str, fallback_name: str) -> DocumentMeta:
    title = frontmatter.get("title")
    if not title:
        h1 = H1_RE.search(body)
        title = h1.group(1).strip() if h1 else title_from_name(fallback_name)
    return DocumentMeta(
        title=str(title),
        description=str(frontmatter.get("description") or ""),
        tags=_coerce_tags(frontmatter.get("tags")),
    )
