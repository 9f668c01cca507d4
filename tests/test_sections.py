from __future__ import annotations

import pytest

from diagram_docs.markdown.frontmatter import read_document_meta, split_frontmatter, title_from_name
from diagram_docs.markdown.sections import diagram_id_for, parse_markdown, slugify, split_sections
from diagram_docs.schema import DiagramSection, ProseSection, SourceRef
from diagram_docs.util.errors import DocumentParseError


def test_heading_then_diagram_yields_prose_and_diagram() -> None:
    body = '# Intro\n\n```mermaid\nflowchart\nA-->B\nclick A href "#" "lib/a.rb:10-20"\n```\n'
    sections = split_sections(body)

    assert len(sections) == 2
    assert sections[0] == ProseSection(content="# Intro")
    diagram = sections[1]
    assert isinstance(diagram, DiagramSection)
    assert diagram.id == "intro"
    assert diagram.definition == "flowchart\nA-->B"
    assert diagram.node_map == {"A": SourceRef(file="lib/a.rb", start_line=10, end_line=20)}
    assert diagram.to_dict()["nodeMap"] == {"A": {"file": "lib/a.rb", "startLine": 10, "endLine": 20}}


def test_empty_prose_spans_are_dropped() -> None:
    body = "```mermaid\ngraph TD\nA-->B\n```\n\n   \n```mermaid\ngraph TD\nC-->D\n```\n"
    sections = split_sections(body)
    assert [type(s) for s in sections] == [DiagramSection, DiagramSection]
    assert [s.id for s in sections] == ["diagram-0", "diagram-1"]


def test_trailing_prose_is_kept() -> None:
    body = "Before\n```mermaid\ngraph TD\nA-->B\n```\nAfter the diagram.\n"
    sections = split_sections(body)
    assert sections[0] == ProseSection(content="Before")
    assert sections[-1] == ProseSection(content="After the diagram.")


def test_document_without_diagrams_is_single_prose_section() -> None:
    sections = split_sections("Just text.\n\n```python\nprint(1)\n```\n")
    assert sections == [ProseSection(content="Just text.\n\n```python\nprint(1)\n```")]


def test_diagram_id_uses_nearest_preceding_heading() -> None:
    body = "# Top\n\n## Request Flow!\n\n```mermaid\ngraph TD\n```\n\n### Later\n"
    offset = body.index("```mermaid")
    assert diagram_id_for(body, 0, offset) == "request-flow"
    assert slugify("  Hello, World  ") == "hello-world"


def test_frontmatter_title_beats_h1() -> None:
    raw = "---\ntitle: From Frontmatter\ndescription: About it\ntags: [a, b]\n---\n# Heading\n\nBody\n"
    parsed = parse_markdown(raw, fallback_name="page")
    assert parsed.meta.title == "From Frontmatter"
    assert parsed.meta.description == "About it"
    assert parsed.meta.tags == ["a", "b"]
    assert parsed.sections == [ProseSection(content="# Heading\n\nBody")]


def test_title_falls_back_to_h1_then_filename() -> None:
    assert read_document_meta({}, "text\n# Real Title\n", "x").title == "Real Title"
    assert read_document_meta({}, "no heading", "getting-started_guide").title == "Getting Started Guide"
    assert title_from_name("setup") == "Setup"


def test_split_frontmatter_without_block_returns_body_unchanged() -> None:
    data, body = split_frontmatter("# Title\n---\nnot frontmatter\n---\n")
    assert data == {}
    assert body.startswith("# Title")


def test_invalid_frontmatter_raises() -> None:
    with pytest.raises(DocumentParseError):
        split_frontmatter("---\ntitle: [unclosed\n---\nbody\n")
    with pytest.raises(DocumentParseError):
        split_frontmatter("---\n- just\n- a list\n---\nbody\n")
