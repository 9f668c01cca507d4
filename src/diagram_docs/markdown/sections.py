"""
Split a Markdown body into prose spans and Mermaid diagram blocks.

Each diagram block is run through the annotation parser and given an id taken
from the nearest heading above it, so the id stays stable while the document
text does not change.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

from ..schema import DiagramSection, ProseSection, Section
from .annotations import parse_diagram
from .frontmatter import DocumentMeta, read_document_meta, split_frontmatter

DIAGRAM_FENCE_RE = re.compile(r"```mermaid\s*\n(.*?)```", re.DOTALL)
HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$", re.MULTILINE)
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class ParsedMarkdown:
    meta: DocumentMeta
    sections: List[Section] = field(default_factory=list)


def slugify(text: str) -> str:
    return _SLUG_STRIP_RE.sub("-", text.lower()).strip("-")


def diagram_id_for(body: str, diagram_index: int, offset: int) -> str:
    last_heading = None
    for match in HEADING_RE.finditer(body):
        if match.start() >= offset:
            break
        last_heading = match.group(2)
    if last_heading:
        return slugify(last_heading)
    return f"diagram-{diagram_index}"


def split_sections(body: str) -> List[Section]:
    sections: List[Section] = []
    last_index = 0
    for diagram_index, match in enumerate(DIAGRAM_FENCE_RE.finditer(body)):
        prose_before = body[last_index : match.start()].strip()
        if prose_before:
            sections.append(ProseSection(content=prose_before))

        parsed = parse_diagram(match.group(1))
        sections.append(
            DiagramSection(
                id=diagram_id_for(body, diagram_index, match.start()),
                definition=parsed.definition.strip(),
                node_map=parsed.node_map,
                participant_map=parsed.participant_map,
            )
        )
        last_index = match.end()

    remaining = body[last_index:].strip()
    if remaining:
        sections.append(ProseSection(content=remaining))
    return sections


def parse_markdown(raw: str, fallback_name: str) -> ParsedMarkdown:
    """
    Parse a full document (frontmatter included). fallback_name is used for the
    title when neither frontmatter nor an H1 provides one.
    """
    frontmatter, body = split_frontmatter(raw)
    return ParsedMarkdown(
        meta=read_document_meta(frontmatter, body, fallback_name),
        sections=split_sections(body),
    )
