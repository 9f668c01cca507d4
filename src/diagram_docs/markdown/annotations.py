from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict

from ..schema import SourceRef

# click <ID> href "#" "<fileRef>"
CLICK_RE = re.compile(r'click\s+(\S+)\s+href\s+"#"\s+"([^"]+)"')
CLICK_LINE_RE = re.compile(r'^click\s+\S+\s+href\s+"#"')
FILE_RANGE_RE = re.compile(r"^(.+?):(\d+)-(\d+)$")
PARTICIPANT_RE = re.compile(r"participant\s+(\S+)\s+as\s+(.+?)$", re.MULTILINE)
LINE_BREAK_RE = re.compile(r"<br\s*/?>\s*", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedDiagram:
    definition: str
    node_map: Dict[str, SourceRef] = field(default_factory=dict)
    participant_map: Dict[str, str] = field(default_factory=dict)


def parse_file_ref(file_ref: str) -> SourceRef:
    """
    "lib/a.rb:10-20" -> ranged reference; anything else is a whole-file reference
    carrying the string unchanged.
    """
    match = FILE_RANGE_RE.match(file_ref)
    if match:
        return SourceRef(file=match.group(1), start_line=int(match.group(2)), end_line=int(match.group(3)))
    return SourceRef(file=file_ref)


def extract_node_map(text: str) -> Dict[str, SourceRef]:
    node_map: Dict[str, SourceRef] = {}
    for match in CLICK_RE.finditer(text):
        # later directives for the same node overwrite earlier ones
        node_map[match.group(1)] = parse_file_ref(match.group(2))
    return node_map


def extract_participant_map(text: str) -> Dict[str, str]:
    participants: Dict[str, str] = {}
    for match in PARTICIPANT_RE.finditer(text):
        participants[match.group(1)] = LINE_BREAK_RE.sub(" ", match.group(2).strip())
    return participants


def strip_click_directives(text: str) -> str:
    """Drop click-to-source lines so the renderer never sees them; keep every other line verbatim."""
    return "\n".join(line for line in text.split("\n") if not CLICK_LINE_RE.match(line.strip()))


def parse_diagram(text: str) -> ParsedDiagram:
    return ParsedDiagram(
        definition=strip_click_directives(text),
        node_map=extract_node_map(text),
        participant_map=extract_participant_map(text),
    )
