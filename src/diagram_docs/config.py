from __future__ import annotations

import argparse
import json
import os
import re
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

# --------
# Defaults
# --------
DEFAULT_OUTDIR = "data"
DEFAULT_DOCS_PATH = "docs"
DEFAULT_GITHUB_REF = "main"
DEFAULT_WORKERS_FETCH = 10
DEFAULT_RETRY_DELAY = 1.0
COMMANDS = ("fetch-docs", "extract-snippets", "build", "render", "snippet")
ALLOWED_CONFIG_KEYS = {
    "outdir",
    "local_repo_root",
    "github_token",
    "github_owner",
    "github_repo",
    "github_ref",
    "docs_path",
    "workers_fetch",
    "retry_delay",
    "progress",
    "json_logs",
    "log_level",
    "mmdc",
}
BOOL_CONFIG_KEYS = {"progress", "json_logs"}
INT_CONFIG_KEYS = {"workers_fetch"}
FLOAT_CONFIG_KEYS = {"retry_delay"}
PATH_CONFIG_KEYS = {"outdir", "local_repo_root"}
STR_CONFIG_KEYS = {"github_token", "github_owner", "github_repo", "github_ref", "docs_path", "log_level", "mmdc"}
LINE_RANGE_RE = re.compile(r"^(\d+)(?:-(\d+))?$")


@dataclass(frozen=True)
class BuildConfig:
    # Output
    outdir: Path = Path(DEFAULT_OUTDIR)
    json_logs: bool = False
    log_level: str = "INFO"
    progress: bool = True

    # Source repository; a local clone wins over GitHub when both are set
    local_repo_root: Optional[Path] = None
    github_token: Optional[str] = None
    github_owner: Optional[str] = None
    github_repo: Optional[str] = None
    github_ref: str = DEFAULT_GITHUB_REF
    docs_path: str = DEFAULT_DOCS_PATH

    # Performance
    workers_fetch: int = DEFAULT_WORKERS_FETCH
    retry_delay: float = DEFAULT_RETRY_DELAY

    # render
    mmdc: Optional[str] = None

    # snippet
    snippet_file: Optional[str] = None
    snippet_start: Optional[int] = None
    snippet_end: Optional[int] = None


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip().lower()
    if not raw:
        return None
    return raw in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _env_float(name: str) -> Optional[float]:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _coerce_float(key: str, value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be a number")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS:
            continue
        if value is None:
            normalized[key] = None
        elif key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            normalized[key] = _coerce_int(key, value)
        elif key in FLOAT_CONFIG_KEYS:
            normalized[key] = _coerce_float(key, value)
        elif key in PATH_CONFIG_KEYS:
            if isinstance(value, (str, Path)):
                normalized[key] = value
            else:
                raise ValueError(f"Config field '{key}' must be a string path")
        elif key in STR_CONFIG_KEYS:
            if isinstance(value, str):
                normalized[key] = value
            else:
                raise ValueError(f"Config field '{key}' must be a string")
    return _compact_dict(normalized)


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def parse_line_range(raw: str) -> Tuple[int, int]:
    """"40-45" -> (40, 45); "12" -> (12, 12)"""
    match = LINE_RANGE_RE.match(raw.strip())
    if not match:
        raise ValueError(f"Line range must look like START-END, got {raw!r}")
    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else start
    if start < 1 or end < start:
        raise ValueError(f"Invalid line range {raw!r}")
    return start, end


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="diagram-docs", description="Diagram-linked documentation builder")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # common flags builder
    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
        p.add_argument("--outdir", type=Path, default=None, help=f"Artifact directory (default {DEFAULT_OUTDIR})")
        p.add_argument(
            "--json-logs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Enable JSON logs",
        )
        p.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")
        p.add_argument(
            "--progress",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Show progress bars (default on)",
        )

    def add_source(p: argparse.ArgumentParser) -> None:
        p.add_argument("--local-root", dest="local_repo_root", type=Path, default=None, help="Local clone to read from")
        p.add_argument("--owner", dest="github_owner", default=None, help="GitHub repository owner")
        p.add_argument("--repo", dest="github_repo", default=None, help="GitHub repository name")
        p.add_argument("--ref", dest="github_ref", default=None, help=f"Git ref (default {DEFAULT_GITHUB_REF})")
        p.add_argument("--docs-path", default=None, help=f"Docs root inside the repo (default {DEFAULT_DOCS_PATH})")
        p.add_argument(
            "--workers-fetch", type=int, default=None, help=f"Max parallel fetches (default {DEFAULT_WORKERS_FETCH})"
        )
        p.add_argument(
            "--retry-delay", type=float, default=None, help=f"Seconds before the single retry (default {DEFAULT_RETRY_DELAY})"
        )

    p_docs = subparsers.add_parser("fetch-docs", help="Discover and parse documents into pages.json")
    add_common(p_docs)
    add_source(p_docs)

    p_snip = subparsers.add_parser("extract-snippets", help="Fetch referenced source files into source-files.json")
    add_common(p_snip)
    add_source(p_snip)

    p_build = subparsers.add_parser("build", help="fetch-docs followed by extract-snippets")
    add_common(p_build)
    add_source(p_build)

    p_render = subparsers.add_parser("render", help="Render diagrams to SVG with clickable nodes")
    add_common(p_render)
    p_render.add_argument("--mmdc", default=None, help="Path to the Mermaid CLI (default: mmdc on PATH)")

    p_show = subparsers.add_parser("snippet", help="Print the snippet for a source reference")
    add_common(p_show)
    p_show.add_argument("--file", dest="snippet_file", required=True, help="Repository-relative file path")
    p_show.add_argument("--lines", default=None, help="Line range START-END")

    return parser


def load_build_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[list[str]] = None,
) -> Tuple[str, BuildConfig]:
    """
    Build BuildConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    Returns:
      (command, BuildConfig) where command is one of COMMANDS
    """
    ns = args if args is not None else build_parser().parse_args(argv)
    command = ns.command

    base: Dict[str, Any] = {
        "outdir": DEFAULT_OUTDIR,
        "local_repo_root": None,
        "github_token": None,
        "github_owner": None,
        "github_repo": None,
        "github_ref": DEFAULT_GITHUB_REF,
        "docs_path": DEFAULT_DOCS_PATH,
        "workers_fetch": DEFAULT_WORKERS_FETCH,
        "retry_delay": DEFAULT_RETRY_DELAY,
        "progress": True,
        "json_logs": False,
        "log_level": "INFO",
        "mmdc": None,
    }

    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "outdir": _env_str("DIAGRAM_DOCS_OUTDIR"),
            "local_repo_root": _env_str("LOCAL_REPO_ROOT"),
            "github_token": _env_str("GITHUB_TOKEN"),
            "github_owner": _env_str("GITHUB_OWNER"),
            "github_repo": _env_str("GITHUB_REPO"),
            "github_ref": _env_str("GITHUB_REF"),
            "docs_path": _env_str("DOCS_PATH"),
            "workers_fetch": _env_int("DIAGRAM_DOCS_WORKERS_FETCH"),
            "retry_delay": _env_float("DIAGRAM_DOCS_RETRY_DELAY"),
            "progress": _env_bool("DIAGRAM_DOCS_PROGRESS"),
            "json_logs": _env_bool("DIAGRAM_DOCS_JSON_LOGS"),
            "log_level": _env_str("DIAGRAM_DOCS_LOG_LEVEL"),
            "mmdc": _env_str("DIAGRAM_DOCS_MMDC"),
        }
    )

    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "outdir": getattr(ns, "outdir", None),
            "local_repo_root": getattr(ns, "local_repo_root", None),
            "github_owner": getattr(ns, "github_owner", None),
            "github_repo": getattr(ns, "github_repo", None),
            "github_ref": getattr(ns, "github_ref", None),
            "docs_path": getattr(ns, "docs_path", None),
            "workers_fetch": getattr(ns, "workers_fetch", None),
            "retry_delay": getattr(ns, "retry_delay", None),
            "progress": getattr(ns, "progress", None),
            "json_logs": getattr(ns, "json_logs", None),
            "log_level": getattr(ns, "log_level", None),
            "mmdc": getattr(ns, "mmdc", None),
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    workers_fetch = int(merged["workers_fetch"])
    if workers_fetch < 1:
        raise ValueError("workers_fetch must be at least 1")
    retry_delay = float(merged["retry_delay"])
    if retry_delay < 0:
        raise ValueError("retry_delay must not be negative")

    snippet_start: Optional[int] = None
    snippet_end: Optional[int] = None
    if getattr(ns, "lines", None):
        snippet_start, snippet_end = parse_line_range(ns.lines)

    local_root = merged.get("local_repo_root")
    cfg = BuildConfig(
        outdir=Path(merged["outdir"]),
        json_logs=bool(merged["json_logs"]),
        log_level=str(merged.get("log_level") or "INFO").upper(),
        progress=bool(merged["progress"]),
        local_repo_root=Path(local_root) if local_root else None,
        github_token=merged.get("github_token"),
        github_owner=merged.get("github_owner"),
        github_repo=merged.get("github_repo"),
        github_ref=str(merged.get("github_ref") or DEFAULT_GITHUB_REF),
        docs_path=str(merged.get("docs_path") or DEFAULT_DOCS_PATH).strip("/"),
        workers_fetch=workers_fetch,
        retry_delay=retry_delay,
        mmdc=merged.get("mmdc"),
        snippet_file=getattr(ns, "snippet_file", None),
        snippet_start=snippet_start,
        snippet_end=snippet_end,
    )
    return command, cfg


def dump_config(cfg: BuildConfig) -> Dict[str, Any]:
    from .util.serialization import sanitize_for_json

    return sanitize_for_json(
        {
            "outdir": cfg.outdir,
            "local_repo_root": cfg.local_repo_root,
            "github_token": cfg.github_token,
            "github_owner": cfg.github_owner,
            "github_repo": cfg.github_repo,
            "github_ref": cfg.github_ref,
            "docs_path": cfg.docs_path,
            "workers_fetch": cfg.workers_fetch,
            "retry_delay": cfg.retry_delay,
            "progress": cfg.progress,
            "json_logs": cfg.json_logs,
            "log_level": cfg.log_level,
        }
    )
