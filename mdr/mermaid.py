"""Mermaid diagram rendering through the mermaid CLI (mmdc)."""

import hashlib
import logging
import shutil
import subprocess
import tempfile
from collections import OrderedDict
from pathlib import Path
from typing import Optional

from .constants import ViewerConstants
from .model import Resolution
from .resolvers import DiagramRenderer

logger = logging.getLogger(__name__)

_REPLACEMENTS = (
    # HTML line breaks in node labels
    ("<br/>", " "),
    ("<br>", " "),
    ("<br />", " "),
    # Bidirectional and decorated arrows the renderer rejects
    ("<-->", "---"),
    ("x--x", "---"),
    ("o--o", "---"),
)


def preprocess_source(source: str) -> str:
    """Rewrite constructs that commonly fail to render; every line ends with a newline."""
    out = []
    for line in source.splitlines():
        for old, new in _REPLACEMENTS:
            line = line.replace(old, new)
        out.append(line + "\n")
    return "".join(out)


def _error_details(stderr: str) -> str:
    lines = [line.strip() for line in stderr.splitlines() if line.strip()]
    if not lines:
        return "no error output"
    return lines[-1][:200]


class MermaidCliRenderer(DiagramRenderer):
    """Runs mmdc on a temporary file and returns the SVG text."""

    def __init__(self, executable: Optional[str] = None,
                 timeout: float = ViewerConstants.DIAGRAM_TIMEOUT,
                 cache_entries: int = ViewerConstants.DIAGRAM_CACHE_MAX_ENTRIES):
        self.executable = executable or shutil.which("mmdc")
        self.timeout = timeout
        self.cache_entries = cache_entries
        self._cache: OrderedDict[str, str] = OrderedDict()

    def render(self, source: str) -> Resolution:
        key = hashlib.sha1(source.encode("utf-8", errors="replace")).hexdigest()
        cached = self._cache.get(key)
        if cached is not None:
            return Resolution.success(cached)
        if self.executable is None:
            return Resolution.failure("mmdc not found on PATH")

        # Preprocessed source first, the source as written second
        svg, error = self._run(preprocess_source(source))
        if svg is None:
            logger.debug(f"Preprocessed diagram failed ({error}), retrying with original source")
            svg, error = self._run(source)
        if svg is None:
            return Resolution.failure(error)

        self._cache[key] = svg
        while len(self._cache) > self.cache_entries:
            self._cache.popitem(last=False)
        return Resolution.success(svg)

    def _run(self, source: str) -> tuple[Optional[str], Optional[str]]:
        with tempfile.TemporaryDirectory(prefix="mdr-") as tmp:
            input_path = Path(tmp) / "diagram.mmd"
            output_path = Path(tmp) / "diagram.svg"
            input_path.write_text(source, encoding="utf-8")
            command = [
                self.executable,
                "-i", str(input_path),
                "-o", str(output_path),
                "-b", "transparent",
                "-q",
            ]
            try:
                result = subprocess.run(
                    command,
                    capture_output=True,
                    text=True,
                    check=False,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired:
                return None, "mermaid render timed out"
            except OSError as e:
                return None, f"mermaid render failed: {e}"

            if result.returncode != 0:
                return None, f"mermaid render failed: {_error_details(result.stderr or '')}"
            try:
                svg = output_path.read_text(encoding="utf-8")
            except OSError as e:
                return None, f"mermaid produced no output: {e}"
        if "<svg" not in svg.casefold():
            return None, "mermaid did not return SVG output"
        return svg, None
