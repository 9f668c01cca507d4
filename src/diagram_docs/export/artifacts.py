from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

from ..schema import Document, NavNode, SourceFile
from ..util.errors import ConfigError, ExportError
from ..util.serialization import stable_json_dumps

PAGES_FILE = "pages.json"
SOURCE_FILES_FILE = "source-files.json"


def write_json(path: Path, obj: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(stable_json_dumps(obj, indent=2) + "\n", encoding="utf-8")
    return path


def _read_json(path: Path, missing_hint: str) -> Any:
    if not path.exists():
        raise ConfigError(f"{path} not found. {missing_hint}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ExportError(f"Failed to parse {path}: {e}") from e


def write_pages(outdir: Path, payload: Mapping[str, Any]) -> Path:
    """payload is PageGraph.to_dict(): {"pages": {...}, "navTree": [...]}"""
    return write_json(outdir / PAGES_FILE, payload)


def load_pages(outdir: Path) -> Tuple[Dict[str, Document], List[NavNode]]:
    data = _read_json(outdir / PAGES_FILE, "Run fetch-docs first.")
    pages = {route: Document.from_dict(page) for route, page in (data.get("pages") or {}).items()}
    nav_tree = [NavNode.from_dict(node) for node in data.get("navTree") or []]
    return pages, nav_tree


def write_source_files(outdir: Path, files: Mapping[str, SourceFile]) -> Path:
    return write_json(outdir / SOURCE_FILES_FILE, {path: sf.to_dict() for path, sf in files.items()})


def load_source_files(outdir: Path) -> Dict[str, SourceFile]:
    data = _read_json(outdir / SOURCE_FILES_FILE, "Run extract-snippets first.")
    return {path: SourceFile.from_dict(entry) for path, entry in data.items()}
