from __future__ import annotations

import asyncio
import subprocess
import tempfile
from pathlib import Path
from shutil import which
from typing import Optional, Protocol, Sequence

from ..util.errors import RenderError


class DiagramRenderer(Protocol):
    """
    Black-box rendering engine: definition text in, SVG markup out. Implementations
    raise RenderError when the definition is rejected.
    """

    async def render(self, render_id: str, definition: str) -> str:
        ...


class MermaidCliRenderer:
    """Renders through the Mermaid CLI (`mmdc`), one subprocess per diagram, off the event loop."""

    def __init__(self, mmdc: Optional[str] = None, extra_args: Sequence[str] = ()) -> None:
        # a configured path that is missing or not executable resolves to None
        self.mmdc = which(mmdc or "mmdc")
        self.extra_args = tuple(extra_args)

    def _render_sync(self, render_id: str, definition: str) -> str:
        if not self.mmdc:
            raise RenderError(
                "Diagram rendering requested but 'mmdc' was not found on PATH. "
                "Install Mermaid CLI and retry: npm install -g @mermaid-js/mermaid-cli"
            )
        with tempfile.TemporaryDirectory(prefix="diagram-docs-mmdc-") as td:
            tmp_dir = Path(td)
            src = tmp_dir / f"{render_id}.mmd"
            out_svg = tmp_dir / f"{render_id}.svg"
            src.write_text(definition, encoding="utf-8")
            try:
                proc = subprocess.run(
                    [self.mmdc, "-i", str(src), "-o", str(out_svg), "--svgId", render_id, *self.extra_args],
                    text=True,
                    capture_output=True,
                )
            except OSError as e:
                raise RenderError(f"Failed to run {self.mmdc}: {e}") from e
            if proc.returncode != 0 or not out_svg.exists():
                stderr = (proc.stderr or "").strip()
                stdout = (proc.stdout or "").strip()
                detail = stderr or stdout or f"mmdc exited with code {proc.returncode}"
                raise RenderError(detail)
            return out_svg.read_text(encoding="utf-8")

    async def render(self, render_id: str, definition: str) -> str:
        return await asyncio.to_thread(self._render_sync, render_id, definition)
