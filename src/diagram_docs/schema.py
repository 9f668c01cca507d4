from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, TypedDict, Union

PROSE = "prose"
DIAGRAM = "diagram"


class SourceRefDict(TypedDict):
    file: str
    startLine: Optional[int]
    endLine: Optional[int]


class NavNodeDict(TypedDict):
    route: str
    title: str
    children: List["NavNodeDict"]


@dataclass(frozen=True)
class SourceRef:
    """Pointer to a repository file, optionally narrowed to an inclusive 1-based line range."""

    file: str
    start_line: Optional[int] = None
    end_line: Optional[int] = None

    @property
    def is_whole_file(self) -> bool:
        return self.start_line is None

    def to_dict(self) -> SourceRefDict:
        return {"file": self.file, "startLine": self.start_line, "endLine": self.end_line}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SourceRef:
        return cls(
            file=str(data["file"]),
            start_line=data.get("startLine"),
            end_line=data.get("endLine"),
        )


@dataclass(frozen=True)
class ProseSection:
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": PROSE, "content": self.content}


@dataclass(frozen=True)
class DiagramSection:
    id: str
    definition: str
    node_map: Dict[str, SourceRef] = field(default_factory=dict)
    participant_map: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type": DIAGRAM,
            "id": self.id,
            "definition": self.definition,
            "nodeMap": {node_id: ref.to_dict() for node_id, ref in self.node_map.items()},
        }
        if self.participant_map:
            out["participantMap"] = dict(self.participant_map)
        return out


Section = Union[ProseSection, DiagramSection]


def section_from_dict(data: Mapping[str, Any]) -> Section:
    kind = data.get("type")
    if kind == PROSE:
        return ProseSection(content=str(data.get("content") or ""))
    if kind == DIAGRAM:
        return DiagramSection(
            id=str(data["id"]),
            definition=str(data.get("definition") or ""),
            node_map={k: SourceRef.from_dict(v) for k, v in (data.get("nodeMap") or {}).items()},
            participant_map=dict(data.get("participantMap") or {}),
        )
    raise ValueError(f"Unknown section type: {kind!r}")


@dataclass(frozen=True)
class Document:
    route: str
    title: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    is_index: bool = False
    parent_route: Optional[str] = None
    source_path: Optional[str] = None
    sections: List[Section] = field(default_factory=list)

    @property
    def diagrams(self) -> List[DiagramSection]:
        return [s for s in self.sections if isinstance(s, DiagramSection)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route": self.route,
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "isIndex": self.is_index,
            "parentRoute": self.parent_route,
            "sourcePath": self.source_path,
            "sections": [s.to_dict() for s in self.sections],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Document:
        return cls(
            route=str(data["route"]),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            tags=[str(t) for t in data.get("tags") or []],
            is_index=bool(data.get("isIndex")),
            parent_route=data.get("parentRoute"),
            source_path=data.get("sourcePath"),
            sections=[section_from_dict(s) for s in data.get("sections") or []],
        )


@dataclass
class NavNode:
    route: str
    title: str
    children: List[NavNode] = field(default_factory=list)

    def to_dict(self) -> NavNodeDict:
        return {
            "route": self.route,
            "title": self.title,
            "children": [c.to_dict() for c in self.children],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NavNode:
        return cls(
            route=str(data["route"]),
            title=str(data.get("title") or ""),
            children=[cls.from_dict(c) for c in data.get("children") or []],
        )


@dataclass(frozen=True)
class SourceFile:
    """
    A fetched repository file as handed to the snippet extractor.
    Exactly one of content/error is set.
    """

    language: str
    content: Optional[str] = None
    total_lines: Optional[int] = None
    error: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.error is None and self.content is not None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"language": self.language, "error": self.error}
        return {"language": self.language, "content": self.content, "totalLines": self.total_lines}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SourceFile:
        return cls(
            language=str(data.get("language") or "text"),
            content=data.get("content"),
            total_lines=data.get("totalLines"),
            error=data.get("error"),
        )
