from __future__ import annotations

import asyncio
import logging
import sys
from time import perf_counter
from typing import Any, Dict, Optional

from rich.console import Console
from rich.syntax import Syntax

from .config import BuildConfig, dump_config, load_build_config
from .export.artifacts import load_pages, load_source_files, write_pages, write_source_files
from .logging import LogConfig, add_run_log_file, get_logger, setup_logging
from .pages.builder import PageGraph, build_pages
from .pages.discovery import discover_documents, fetch_documents
from .render.export import MANIFEST_FILE, render_site_diagrams
from .render.renderer import MermaidCliRenderer
from .source.access import open_source
from .source.collect import collect_source_files, referenced_files
from .source.snippets import extract_snippet
from .util.errors import ConfigError, RenderError, as_exit_code
from .util.rich_progress import BuildProgress, render_build_summary_table

LOG = get_logger(__name__)

BUILD_LOG = "logs/build.log"
DIAGRAMS_DIR = "diagrams"


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    logger: Any,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    timer_key: Optional[str] = None,
    **extra: Any,
) -> None:
    key = timer_key or step
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(key)
        elif phase in {"complete", "error", "warning", "skipped"}:
            duration_ms = timers.finish(key)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


def run_fetch_docs(cfg: BuildConfig, *, progress: BuildProgress, timers: _StepTimers) -> PageGraph:
    source = open_source(cfg)
    _log_event(
        LOG,
        logging.INFO,
        "Document fetch started",
        step="fetch_docs",
        phase="start",
        timers=timers,
        source=source.description,
        docs_path=cfg.docs_path,
    )
    files = discover_documents(source, cfg.docs_path)
    progress.start_stage("Documents", total=len(files))
    discovered = fetch_documents(
        source,
        cfg.docs_path,
        files,
        max_workers=cfg.workers_fetch,
        on_fetched=lambda path: progress.advance("Documents", path),
    )
    graph = build_pages(discovered)
    path = write_pages(cfg.outdir, graph.to_dict())
    _log_event(
        LOG,
        logging.INFO,
        "Document fetch complete",
        step="fetch_docs",
        phase="complete",
        timers=timers,
        pages=len(graph.pages),
        synthesized=len(graph.synthesized),
        skipped=len(graph.skipped),
        path=str(path),
    )
    return graph


def run_extract_snippets(cfg: BuildConfig, *, progress: BuildProgress, timers: _StepTimers) -> Dict[str, int]:
    pages, _nav_tree = load_pages(cfg.outdir)
    paths = referenced_files(pages.values())
    _log_event(
        LOG,
        logging.INFO,
        "Snippet extraction started",
        step="extract_snippets",
        phase="start",
        timers=timers,
        files=len(paths),
    )
    if not paths:
        write_source_files(cfg.outdir, {})
        _log_event(
            LOG,
            logging.INFO,
            "No source files referenced by any diagram",
            step="extract_snippets",
            phase="skipped",
            timers=timers,
        )
        return {"source_files": 0, "missing_files": 0}
    source = open_source(cfg)
    progress.start_stage("Sources", total=len(paths))
    files = collect_source_files(
        source,
        paths,
        max_workers=cfg.workers_fetch,
        on_fetched=lambda path: progress.advance("Sources", path),
    )
    path = write_source_files(cfg.outdir, files)
    missing = sum(1 for sf in files.values() if not sf.available)
    _log_event(
        LOG,
        logging.WARNING if missing else logging.INFO,
        "Snippet extraction complete",
        step="extract_snippets",
        phase="warning" if missing else "complete",
        timers=timers,
        files=len(files),
        missing=missing,
        path=str(path),
    )
    return {"source_files": len(files), "missing_files": missing}


def cmd_fetch_docs(cfg: BuildConfig) -> int:
    timers = _StepTimers()
    with BuildProgress(enabled=cfg.progress) as progress:
        graph = run_fetch_docs(cfg, progress=progress, timers=timers)
    render_build_summary_table(
        enabled=cfg.progress,
        title="Fetch Summary",
        status="OK",
        metrics={"pages": len(graph.pages), "synthesized_pages": len(graph.synthesized), "skipped_documents": len(graph.skipped)},
        outdir=str(cfg.outdir),
    )
    return 0


def cmd_extract_snippets(cfg: BuildConfig) -> int:
    timers = _StepTimers()
    with BuildProgress(enabled=cfg.progress) as progress:
        metrics = run_extract_snippets(cfg, progress=progress, timers=timers)
    render_build_summary_table(
        enabled=cfg.progress,
        title="Snippet Summary",
        status="OK",
        metrics=metrics,
        outdir=str(cfg.outdir),
    )
    return 0


def cmd_build(cfg: BuildConfig) -> int:
    cfg.outdir.mkdir(parents=True, exist_ok=True)
    add_run_log_file(cfg.outdir / BUILD_LOG)
    timers = _StepTimers()
    _log_event(LOG, logging.INFO, "Build started", step="build", phase="start", timers=timers, config=dump_config(cfg))
    with BuildProgress(enabled=cfg.progress) as progress:
        graph = run_fetch_docs(cfg, progress=progress, timers=timers)
        metrics = run_extract_snippets(cfg, progress=progress, timers=timers)
    status = "OK" if not metrics["missing_files"] and not graph.skipped else "PARTIAL"
    _log_event(LOG, logging.INFO, "Build complete", step="build", phase="complete", timers=timers, status=status)
    render_build_summary_table(
        enabled=cfg.progress,
        title="Build Summary",
        status=status,
        metrics={
            "pages": len(graph.pages),
            "synthesized_pages": len(graph.synthesized),
            "skipped_documents": len(graph.skipped),
            **metrics,
        },
        outdir=str(cfg.outdir),
    )
    return 0


def cmd_render(cfg: BuildConfig) -> int:
    pages, _nav_tree = load_pages(cfg.outdir)
    renderer = MermaidCliRenderer(mmdc=cfg.mmdc)
    if not renderer.mmdc:
        raise RenderError(
            f"Diagram rendering requested but '{cfg.mmdc or 'mmdc'}' was not found or is not executable. "
            "Install Mermaid CLI and retry: npm install -g @mermaid-js/mermaid-cli"
        )
    timers = _StepTimers()
    total = sum(len(page.diagrams) for page in pages.values())
    out_dir = cfg.outdir / DIAGRAMS_DIR
    _log_event(LOG, logging.INFO, "Diagram render started", step="render", phase="start", timers=timers, diagrams=total)
    with BuildProgress(enabled=cfg.progress) as progress:
        progress.start_stage("Diagrams", total=total)
        summary = asyncio.run(
            render_site_diagrams(
                pages,
                renderer,
                out_dir,
                on_rendered=lambda view_id: progress.advance("Diagrams", view_id),
            )
        )
    _log_event(
        LOG,
        logging.WARNING if summary.failed else logging.INFO,
        "Diagram render complete",
        step="render",
        phase="warning" if summary.failed else "complete",
        timers=timers,
        rendered=summary.rendered,
        failed=summary.failed,
        unresolved_nodes=summary.unresolved_nodes,
        manifest=str(out_dir / MANIFEST_FILE),
    )
    render_build_summary_table(
        enabled=cfg.progress,
        title="Render Summary",
        status="OK" if not summary.failed else "PARTIAL",
        metrics={"rendered": summary.rendered, "failed": summary.failed, "unresolved_nodes": summary.unresolved_nodes},
        outdir=str(out_dir),
    )
    return 0


def cmd_snippet(cfg: BuildConfig, *, console: Optional[Console] = None) -> int:
    if not cfg.snippet_file:
        raise ConfigError("--file is required for snippet")
    console = console or Console()
    files = load_source_files(cfg.outdir)
    source_file = files.get(cfg.snippet_file)
    if source_file is None or not source_file.available:
        console.print("File not found in repository")
        return 0
    snippet = extract_snippet(source_file, cfg.snippet_start, cfg.snippet_end)
    if snippet is None:
        console.print("No code snippet available")
        return 0
    console.print(f"{cfg.snippet_file} ({source_file.language})", style="bold")
    console.print(
        Syntax(
            snippet.code,
            source_file.language,
            line_numbers=True,
            start_line=snippet.context_start_line,
            highlight_lines=set(range(snippet.focus_start_line, snippet.focus_end_line + 1)),
        )
    )
    return 0


def main() -> None:
    try:
        command, cfg = load_build_config()
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))

        if command == "fetch-docs":
            code = cmd_fetch_docs(cfg)
        elif command == "extract-snippets":
            code = cmd_extract_snippets(cfg)
        elif command == "build":
            code = cmd_build(cfg)
        elif command == "render":
            code = cmd_render(cfg)
        elif command == "snippet":
            code = cmd_snippet(cfg)
        else:
            raise ConfigError(f"Unknown command: {command}")

        sys.exit(code)
    except SystemExit:
        raise
    except BrokenPipeError:
        # Piping `snippet` output into `head` closes stdout early.
        sys.exit(0)
    except Exception as e:
        setup_logging(LogConfig())
        LOG.error("Execution failed", extra={"error": str(e)})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
