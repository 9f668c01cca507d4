from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Mapping, Optional, Tuple

from ..schema import SourceFile, SourceRef

MAX_FULL_FILE_LINES = 100
CONTEXT_LINES = 2
TRUNCATION_MARKER = "\n\n// ... truncated ..."


@dataclass(frozen=True)
class Snippet:
    """
    Excerpt of a source file. context_start_line is the absolute 1-based number
    of the first line of code; the focus range is what the reference points at,
    everything else is padding.
    """

    code: str
    context_start_line: int
    focus_start_line: int
    focus_end_line: int
    total_lines: int
    truncated: bool = False

    def numbered_lines(self) -> Iterator[Tuple[int, str, bool]]:
        for offset, text in enumerate(self.code.split("\n")):
            line_number = self.context_start_line + offset
            yield line_number, text, self.focus_start_line <= line_number <= self.focus_end_line


def extract_snippet(
    source_file: Optional[SourceFile],
    start_line: Optional[int] = None,
    end_line: Optional[int] = None,
) -> Optional[Snippet]:
    """
    Whole file (capped at MAX_FULL_FILE_LINES) when no range is given, otherwise
    the range padded by CONTEXT_LINES on each side and clipped to the file.
    Returns None when there is nothing to show.
    """
    if source_file is None or not source_file.available or not source_file.content:
        return None
    content = source_file.content
    lines = content.split("\n")
    total = len(lines)

    if not start_line:
        if total > MAX_FULL_FILE_LINES:
            return Snippet(
                code="\n".join(lines[:MAX_FULL_FILE_LINES]) + TRUNCATION_MARKER,
                context_start_line=1,
                focus_start_line=1,
                focus_end_line=MAX_FULL_FILE_LINES,
                total_lines=total,
                truncated=True,
            )
        return Snippet(
            code=content,
            context_start_line=1,
            focus_start_line=1,
            focus_end_line=total,
            total_lines=total,
        )

    if end_line is None:
        end_line = start_line
    ctx_start = max(0, start_line - 1 - CONTEXT_LINES)
    ctx_end = min(total, end_line + CONTEXT_LINES)
    return Snippet(
        code="\n".join(lines[ctx_start:ctx_end]),
        context_start_line=ctx_start + 1,
        focus_start_line=start_line,
        focus_end_line=end_line,
        total_lines=total,
    )


def snippet_for_ref(ref: SourceRef, source_files: Mapping[str, SourceFile]) -> Optional[Snippet]:
    return extract_snippet(source_files.get(ref.file), ref.start_line, ref.end_line)
