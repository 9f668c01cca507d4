"""
Read access to the documented repository, either through a local clone or the
GitHub REST API. A local root, when configured, always wins over the network.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Protocol

import requests
from requests.adapters import HTTPAdapter

from ..config import BuildConfig
from ..logging import get_logger
from ..util.errors import ConfigError, FetchError

LOG = get_logger(__name__)

RAW_BASE_URL = "https://raw.githubusercontent.com"
API_BASE_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30
IGNORED_DIRS = frozenset({"node_modules", ".git", ".claude", "dist", "vendor"})

HTTP_LOGGERS = ("urllib3", "requests")

LANGUAGE_BY_SUFFIX = {
    ".rb": "ruby",
    ".js": "javascript",
    ".jsx": "jsx",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".py": "python",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".json": "json",
    ".html": "html",
    ".slim": "slim",
    ".erb": "erb",
    ".css": "css",
    ".scss": "scss",
    ".go": "go",
    ".java": "java",
    ".rs": "rust",
    ".sh": "bash",
    ".sql": "sql",
    ".md": "markdown",
}


def detect_language(file_path: str) -> str:
    return LANGUAGE_BY_SUFFIX.get(PurePosixPath(file_path).suffix.lower(), "text")


def _is_ignored(name: str) -> bool:
    return name.startswith(".") or name in IGNORED_DIRS


def _quiet_http_logging() -> None:
    # connection-pool chatter only surfaces when the build runs at DEBUG
    level = logging.getLogger().getEffectiveLevel()
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING) if level > logging.DEBUG else level)


class SourceAccess(Protocol):
    description: str

    def read_file(self, path: str) -> Optional[str]:
        """Return file text, or None when the file does not exist."""
        ...

    def list_markdown(self, docs_path: str) -> List[str]:
        """Markdown files under docs_path, relative to it, "/"-separated and sorted."""
        ...


class LocalSource:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.description = f"local clone at {self.root}"

    def read_file(self, path: str) -> Optional[str]:
        abs_path = self.root / path
        if not abs_path.is_file():
            return None
        return abs_path.read_text(encoding="utf-8", errors="replace")

    def list_markdown(self, docs_path: str) -> List[str]:
        docs_dir = self.root / docs_path
        if not docs_dir.is_dir():
            raise ConfigError(f"Docs directory not found: {docs_dir}")
        results: List[str] = []

        def _walk(directory: Path, prefix: str) -> None:
            for entry in sorted(directory.iterdir(), key=lambda p: p.name):
                if _is_ignored(entry.name):
                    continue
                rel = f"{prefix}/{entry.name}" if prefix else entry.name
                if entry.is_dir():
                    _walk(entry, rel)
                elif entry.name.endswith(".md"):
                    results.append(rel)

        _walk(docs_dir, "")
        return sorted(results)


class GitHubSource:
    """
    Raw file reads and contents-API directory walks against one repository ref.
    Each request is retried once after retry_delay seconds; 404 means "absent".
    """

    def __init__(
        self,
        *,
        owner: str,
        repo: str,
        ref: str,
        token: str,
        retry_delay: float = 1.0,
        pool_size: int = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.ref = ref
        self.retry_delay = retry_delay
        self.description = f"github.com/{owner}/{repo}@{ref}"
        self._headers = {"Authorization": f"token {token}"}
        _quiet_http_logging()
        self._session = session or requests.Session()
        if session is None:
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            self._session.mount("https://", adapter)
            self._session.mount("http://", adapter)

    def fetch_with_retry(self, url: str, headers: Dict[str, str], retries: int = 2) -> Optional[str]:
        for attempt in range(retries):
            try:
                res = self._session.get(url, headers=headers, timeout=DEFAULT_TIMEOUT)
                if res.status_code == 404:
                    return None
                if not res.ok:
                    raise FetchError(f"HTTP {res.status_code} for {url}")
                return res.text
            except (requests.RequestException, FetchError) as e:
                if attempt >= retries - 1:
                    if isinstance(e, FetchError):
                        raise
                    raise FetchError(f"Request failed for {url}: {e}") from e
                LOG.warning("Retrying fetch", extra={"url": url, "error": str(e), "attempt": attempt + 1})
                time.sleep(self.retry_delay)
        return None

    def read_file(self, path: str) -> Optional[str]:
        url = f"{RAW_BASE_URL}/{self.owner}/{self.repo}/{self.ref}/{path}"
        return self.fetch_with_retry(url, self._headers)

    def list_contents(self, dir_path: str) -> List[Dict[str, Any]]:
        url = f"{API_BASE_URL}/repos/{self.owner}/{self.repo}/contents/{dir_path}"
        headers = dict(self._headers, Accept="application/vnd.github.v3+json")
        res_text = self.fetch_with_retry(f"{url}?ref={self.ref}", headers)
        if not res_text:
            return []
        entries = json.loads(res_text)
        if not isinstance(entries, list):
            raise FetchError(f"Expected a directory listing for {dir_path}")
        return entries

    def list_markdown(self, docs_path: str) -> List[str]:
        docs_path = docs_path.strip("/")
        results: List[str] = []

        def _walk(dir_path: str) -> None:
            for entry in self.list_contents(dir_path):
                name = str(entry.get("name") or "")
                if _is_ignored(name):
                    continue
                if entry.get("type") == "dir":
                    _walk(str(entry["path"]))
                elif name.endswith(".md"):
                    path = str(entry["path"])
                    results.append(path[len(docs_path) + 1 :] if docs_path else path)

        _walk(docs_path)
        return sorted(results)


def open_source(cfg: BuildConfig, *, session: Optional[requests.Session] = None) -> SourceAccess:
    """
    Pick the source backend for a build. This is the only place a missing
    configuration is fatal.
    """
    if cfg.local_repo_root:
        return LocalSource(cfg.local_repo_root)
    if not cfg.github_token:
        raise ConfigError("Set LOCAL_REPO_ROOT or GITHUB_TOKEN to fetch source files.")
    if not cfg.github_owner or not cfg.github_repo:
        raise ConfigError("GITHUB_OWNER and GITHUB_REPO are required for remote fetches.")
    return GitHubSource(
        owner=cfg.github_owner,
        repo=cfg.github_repo,
        ref=cfg.github_ref,
        token=cfg.github_token,
        retry_delay=cfg.retry_delay,
        pool_size=cfg.workers_fetch,
        session=session,
    )
