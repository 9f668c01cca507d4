from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from ..logging import get_logger
from ..source.access import SourceAccess
from ..util.concurrency import parallel_map_ordered
from ..util.errors import FetchError
from .builder import DiscoveredDocument

LOG = get_logger(__name__)


def discover_documents(source: SourceAccess, docs_path: str) -> List[str]:
    files = source.list_markdown(docs_path)
    LOG.info("Discovered markdown files", extra={"count": len(files), "docs_path": docs_path, "source": source.description})
    return files


def fetch_documents(
    source: SourceAccess,
    docs_path: str,
    relative_files: Sequence[str],
    *,
    max_workers: int,
    on_fetched: Optional[Callable[[str], None]] = None,
) -> List[DiscoveredDocument]:
    """
    Read every discovered document. A document that cannot be read comes back
    with content=None so the page builder can skip it without aborting.
    """
    prefix = docs_path.strip("/")

    def _fetch(rel: str) -> DiscoveredDocument:
        source_path = f"{prefix}/{rel}" if prefix else rel
        try:
            content = source.read_file(source_path)
        except FetchError as e:
            LOG.warning("Document fetch failed", extra={"path": source_path, "error": str(e)})
            content = None
        if on_fetched is not None:
            on_fetched(source_path)
        return DiscoveredDocument(relative_path=rel, source_path=source_path, content=content)

    return parallel_map_ordered(_fetch, relative_files, max_workers=max_workers)
