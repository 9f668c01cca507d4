from __future__ import annotations

import io
import json
import sys
from pathlib import Path

import pytest
from rich.console import Console

from diagram_docs import cli
from diagram_docs.config import load_build_config
from diagram_docs.util.errors import ExitCode


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    _write(
        root / "docs" / "guide" / "setup.md",
        "# Setup\n\n```mermaid\nflowchart LR\nA-->B\n"
        'click A href "#" "lib/a.rb:40-45"\n'
        'click B href "#" "lib/missing.rb"\n```\n',
    )
    _write(root / "docs" / "guide" / "usage.md", "# Usage\n\nPlain prose.\n")
    _write(root / "lib" / "a.rb", "\n".join(f"line {i}" for i in range(1, 251)))
    return root


def _argv(command: str, repo: Path, outdir: Path, *extra: str) -> list[str]:
    return [command, "--local-root", str(repo), "--outdir", str(outdir), "--no-progress", *extra]


def test_build_writes_pages_and_source_files(repo: Path, tmp_path: Path) -> None:
    outdir = tmp_path / "out"
    _, cfg = load_build_config(argv=_argv("build", repo, outdir))

    assert cli.cmd_build(cfg) == 0

    pages = json.loads((outdir / "pages.json").read_text(encoding="utf-8"))
    assert sorted(pages["pages"]) == ["/guide", "/guide/setup", "/guide/usage"]
    assert pages["navTree"][0]["route"] == "/guide"
    assert [c["route"] for c in pages["navTree"][0]["children"]] == ["/guide/setup", "/guide/usage"]

    sources = json.loads((outdir / "source-files.json").read_text(encoding="utf-8"))
    assert sources["lib/a.rb"]["totalLines"] == 250
    assert sources["lib/a.rb"]["language"] == "ruby"
    assert sources["lib/missing.rb"] == {"language": "ruby", "error": "File not found"}
    assert (outdir / "logs" / "build.log").exists()


def test_snippet_prints_focus_range(repo: Path, tmp_path: Path) -> None:
    outdir = tmp_path / "out"
    _, cfg = load_build_config(argv=_argv("build", repo, outdir))
    cli.cmd_build(cfg)

    _, cfg = load_build_config(argv=["snippet", "--outdir", str(outdir), "--file", "lib/a.rb", "--lines", "40-45"])
    buf = io.StringIO()
    assert cli.cmd_snippet(cfg, console=Console(file=buf, width=100)) == 0

    out = buf.getvalue()
    assert "line 38" in out and "line 47" in out
    assert "line 37" not in out and "line 48" not in out


def test_snippet_for_missing_file(repo: Path, tmp_path: Path) -> None:
    outdir = tmp_path / "out"
    _, cfg = load_build_config(argv=_argv("build", repo, outdir))
    cli.cmd_build(cfg)

    _, cfg = load_build_config(argv=["snippet", "--outdir", str(outdir), "--file", "lib/missing.rb"])
    buf = io.StringIO()
    cli.cmd_snippet(cfg, console=Console(file=buf, width=100))
    assert "File not found in repository" in buf.getvalue()


def test_render_uses_renderer_and_writes_manifest(repo: Path, tmp_path: Path, monkeypatch) -> None:
    class _FakeCli:
        def __init__(self, mmdc=None) -> None:
            self.mmdc = "mmdc"

        async def render(self, render_id: str, definition: str) -> str:
            return f'<svg xmlns="http://www.w3.org/2000/svg" id="{render_id}"><g id="flowchart-A-0"/></svg>'

    outdir = tmp_path / "out"
    _, cfg = load_build_config(argv=_argv("fetch-docs", repo, outdir))
    cli.cmd_fetch_docs(cfg)

    monkeypatch.setattr(cli, "MermaidCliRenderer", _FakeCli)
    _, cfg = load_build_config(argv=["render", "--outdir", str(outdir), "--no-progress"])
    assert cli.cmd_render(cfg) == 0

    manifest = json.loads((outdir / "diagrams" / "diagrams.json").read_text(encoding="utf-8"))
    assert [d["status"] for d in manifest["diagrams"]] == ["rendered"]
    assert manifest["diagrams"][0]["unresolved"] == ["B"]


def test_main_maps_missing_pages_to_config_exit_code(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["diagram-docs", "extract-snippets", "--outdir", str(tmp_path), "--no-progress"])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == int(ExitCode.CONFIG_ERROR)


def test_main_without_source_is_config_error(tmp_path: Path, monkeypatch) -> None:
    for key in ("LOCAL_REPO_ROOT", "GITHUB_TOKEN"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(sys, "argv", ["diagram-docs", "fetch-docs", "--outdir", str(tmp_path), "--no-progress"])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == int(ExitCode.CONFIG_ERROR)


def test_render_with_bogus_mmdc_exits_with_render_code(repo: Path, tmp_path: Path, monkeypatch) -> None:
    outdir = tmp_path / "out"
    _, cfg = load_build_config(argv=_argv("fetch-docs", repo, outdir))
    cli.cmd_fetch_docs(cfg)

    monkeypatch.setattr(
        sys,
        "argv",
        ["diagram-docs", "render", "--outdir", str(outdir), "--mmdc", str(tmp_path / "no-such-mmdc"), "--no-progress"],
    )
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == int(ExitCode.RENDER_ERROR)
