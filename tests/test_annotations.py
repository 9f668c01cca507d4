from __future__ import annotations

from diagram_docs.markdown.annotations import (
    extract_node_map,
    extract_participant_map,
    parse_diagram,
    parse_file_ref,
    strip_click_directives,
)
from diagram_docs.schema import SourceRef


def test_parse_file_ref_with_line_range() -> None:
    assert parse_file_ref("lib/a.rb:10-20") == SourceRef(file="lib/a.rb", start_line=10, end_line=20)


def test_parse_file_ref_without_range_is_whole_file() -> None:
    ref = parse_file_ref("app/models/user.rb")
    assert ref == SourceRef(file="app/models/user.rb")
    assert ref.is_whole_file


def test_parse_file_ref_keeps_malformed_range_verbatim() -> None:
    # Only "path:N-M" counts as a range; anything else stays part of the path.
    assert parse_file_ref("lib/a.rb:10").file == "lib/a.rb:10"
    assert parse_file_ref("lib/a.rb:x-y").file == "lib/a.rb:x-y"
    assert parse_file_ref("lib/a.rb:10-20").start_line == 10


def test_extract_node_map_last_directive_wins() -> None:
    text = "\n".join(
        [
            "flowchart TD",
            'click A href "#" "lib/first.rb"',
            'click B href "#" "lib/b.py:1-5"',
            'click A href "#" "lib/second.rb:3-4"',
        ]
    )
    node_map = extract_node_map(text)
    assert node_map == {
        "A": SourceRef(file="lib/second.rb", start_line=3, end_line=4),
        "B": SourceRef(file="lib/b.py", start_line=1, end_line=5),
    }


def test_extract_node_map_ignores_non_anchor_clicks() -> None:
    text = 'click A href "https://example.com" "tooltip"\nclick B callback'
    assert extract_node_map(text) == {}


def test_extract_participant_map_replaces_line_breaks() -> None:
    text = "\n".join(
        [
            "sequenceDiagram",
            "    participant C as Client<br/>App",
            "    participant S as Api<BR>Server",
            "    participant DB",
            "    C->>S: request",
        ]
    )
    assert extract_participant_map(text) == {"C": "Client App", "S": "Api Server"}


def test_strip_click_directives_keeps_other_lines_verbatim() -> None:
    text = '  flowchart LR\n    A-->B\n    click A href "#" "lib/a.rb"\n  %% note'
    assert strip_click_directives(text) == "  flowchart LR\n    A-->B\n  %% note"


def test_parse_diagram_without_clicks_leaves_definition_alone() -> None:
    text = "flowchart LR\nA-->B"
    parsed = parse_diagram(text)
    assert parsed.definition == text
    assert parsed.node_map == {}
    assert parsed.participant_map == {}


def test_parse_diagram_collects_everything() -> None:
    text = '\n'.join(
        [
            "sequenceDiagram",
            "participant U as User",
            "U->>U: think",
            'click U href "#" "src/user.ts:7-9"',
        ]
    )
    parsed = parse_diagram(text)
    assert parsed.definition == "sequenceDiagram\nparticipant U as User\nU->>U: think"
    assert parsed.node_map["U"] == SourceRef(file="src/user.ts", start_line=7, end_line=9)
    assert parsed.participant_map == {"U": "User"}
