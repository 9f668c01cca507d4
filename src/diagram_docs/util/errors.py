from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    FETCH_ERROR = 3
    RENDER_ERROR = 4
    RUNTIME_ERROR = 5


class DocsError(Exception):
    """Base error for the documentation pipeline."""


class ConfigError(DocsError):
    """Raised for configuration or argument issues."""


class FetchError(DocsError):
    """Raised when a source fetch fails in a non-retriable way."""


class DocumentParseError(DocsError):
    """Raised when a Markdown document cannot be parsed (e.g. broken frontmatter)."""


class RenderError(DocsError):
    """Raised when the diagram renderer rejects a definition."""


class ExportError(DocsError):
    """Raised when writing or reading build artifacts fails."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, FetchError):
        return int(ExitCode.FETCH_ERROR)
    if isinstance(exc, RenderError):
        return int(ExitCode.RENDER_ERROR)
    if isinstance(exc, (ExportError, DocumentParseError, DocsError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1
