from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..logging import get_logger
from ..schema import Document, SourceFile
from ..util.concurrency import parallel_map_ordered
from ..util.errors import FetchError
from .access import SourceAccess, detect_language

LOG = get_logger(__name__)

NOT_FOUND_ERROR = "File not found"


def referenced_files(pages: Iterable[Document]) -> List[str]:
    """Unique source paths named by any diagram node, sorted."""
    paths = set()
    for page in pages:
        for diagram in page.diagrams:
            for ref in diagram.node_map.values():
                paths.add(ref.file)
    return sorted(paths)


def fetch_source_file(source: SourceAccess, path: str) -> SourceFile:
    """
    Never raises for per-file problems: a missing file or a fetch that still
    fails after its retry becomes an error marker.
    """
    language = detect_language(path)
    try:
        content = source.read_file(path)
    except FetchError as e:
        LOG.warning("Source fetch failed", extra={"path": path, "error": str(e)})
        return SourceFile(language=language, error=str(e))
    if content is None:
        LOG.warning("Source file missing", extra={"path": path})
        return SourceFile(language=language, error=NOT_FOUND_ERROR)
    total_lines = len(content.split("\n"))
    LOG.debug("Fetched source file", extra={"path": path, "language": language, "total_lines": total_lines})
    return SourceFile(language=language, content=content, total_lines=total_lines)


def collect_source_files(
    source: SourceAccess,
    paths: Sequence[str],
    *,
    max_workers: int,
    on_fetched: Optional[Callable[[str], None]] = None,
) -> Dict[str, SourceFile]:
    def _fetch(path: str) -> Tuple[str, SourceFile]:
        result = fetch_source_file(source, path)
        if on_fetched is not None:
            on_fetched(path)
        return path, result

    return dict(parallel_map_ordered(_fetch, paths, max_workers=max_workers))
