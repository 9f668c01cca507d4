from __future__ import annotations

from diagram_docs.schema import SourceFile, SourceRef
from diagram_docs.source.snippets import (
    MAX_FULL_FILE_LINES,
    TRUNCATION_MARKER,
    extract_snippet,
    snippet_for_ref,
)


def _file(total: int) -> SourceFile:
    content = "\n".join(f"line {i}" for i in range(1, total + 1))
    return SourceFile(language="ruby", content=content, total_lines=total)


def test_whole_file_over_limit_is_truncated() -> None:
    snippet = extract_snippet(_file(250))
    assert snippet is not None
    assert snippet.truncated
    assert snippet.total_lines == 250
    assert snippet.code.endswith(TRUNCATION_MARKER)
    kept = snippet.code[: -len(TRUNCATION_MARKER)].split("\n")
    assert len(kept) == MAX_FULL_FILE_LINES
    assert kept[0] == "line 1" and kept[-1] == "line 100"


def test_whole_small_file_is_returned_verbatim() -> None:
    source = _file(12)
    snippet = extract_snippet(source)
    assert snippet is not None
    assert snippet.code == source.content
    assert not snippet.truncated
    assert (snippet.focus_start_line, snippet.focus_end_line) == (1, 12)


def test_range_is_padded_with_context() -> None:
    snippet = extract_snippet(_file(250), 40, 45)
    assert snippet is not None
    lines = snippet.code.split("\n")
    assert len(lines) == 10
    assert lines[0] == "line 38" and lines[-1] == "line 47"
    assert snippet.context_start_line == 38
    assert (snippet.focus_start_line, snippet.focus_end_line) == (40, 45)

    focus = [n for n, _text, is_focus in snippet.numbered_lines() if is_focus]
    assert focus == [40, 41, 42, 43, 44, 45]


def test_range_context_clips_at_file_edges() -> None:
    head = extract_snippet(_file(250), 1, 3)
    assert head is not None
    assert head.context_start_line == 1
    assert head.code.split("\n")[0] == "line 1"
    assert len(head.code.split("\n")) == 5

    tail = extract_snippet(_file(250), 249, 250)
    assert tail is not None
    assert tail.code.split("\n")[-1] == "line 250"
    assert tail.context_start_line == 247


def test_nothing_to_show_returns_none() -> None:
    assert extract_snippet(None) is None
    assert extract_snippet(SourceFile(language="text", error="File not found")) is None
    assert extract_snippet(SourceFile(language="text", content="", total_lines=1)) is None


def test_snippet_for_ref_looks_up_file() -> None:
    files = {"lib/a.rb": _file(30)}
    snippet = snippet_for_ref(SourceRef(file="lib/a.rb", start_line=10, end_line=10), files)
    assert snippet is not None
    assert snippet.code.split("\n") == ["line 8", "line 9", "line 10", "line 11", "line 12"]
    assert snippet_for_ref(SourceRef(file="lib/missing.rb"), files) is None
