"""Runtime bootstrap script (``wasm_exec.js``) generation, caching and persistence.

The generated script is the toolchain's canonical ``wasm_exec.js`` payload
preceded by a single header line recording the mode it was generated for and
followed by loader glue for the compiled binary::

    // wasmforge: mode=S
    <payload of the mode's toolchain family>
    <glue instantiating main.wasm>

The header lets a later process recover the selected mode from the artifact
alone; see :func:`parse_mode_header`.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping
import json

from core.console import Console

from .builder import Builder
from .errors import NotInitializedError, PayloadNotFoundError
from .modes import ModeDefinition
from .toolchain import ToolchainProbe

_GLUE_TEMPLATE = """
// Load {file_name} ({command}, {role} mode)
(() => {{
    const go = new Go();
    const source = {file_literal};
    const start = (result) => go.run(result.instance);
    if (WebAssembly.instantiateStreaming) {{
        WebAssembly.instantiateStreaming(fetch(source), go.importObject)
            .then(start)
            .catch((err) => console.error("failed to load " + source + ":", err));
    }} else {{
        fetch(source)
            .then((response) => response.arrayBuffer())
            .then((bytes) => WebAssembly.instantiate(bytes, go.importObject))
            .then(start)
            .catch((err) => console.error("failed to load " + source + ":", err));
    }}
}})();
"""


def format_header(marker: str, token: str) -> str:
    return f"{marker}: mode={token}"


def parse_mode_header(content: str, marker: str) -> str | None:
    """Return the mode token recorded on the first line of ``content``, if any."""
    first_line = content.split("\n", 1)[0].strip()
    prefix = f"{marker}: mode="
    if not first_line.startswith(prefix):
        return None
    token = first_line[len(prefix):].strip()
    return token or None


def normalize_script(text: str) -> str:
    """Use ``\\n`` line endings, drop trailing whitespace, end with one newline."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    normalized = "\n".join(line.rstrip() for line in lines).rstrip("\n")
    return f"{normalized}\n"


def render_glue(mode: ModeDefinition, file_name: str) -> str:
    return _GLUE_TEMPLATE.format(
        file_name=file_name,
        file_literal=json.dumps(file_name),
        command=mode.command,
        role=mode.role,
    )


class PayloadLoader:
    """Reads the canonical bootstrap payload of a toolchain family."""

    def __init__(
        self,
        *,
        overrides: Mapping[str, Path] | None = None,
        probe: ToolchainProbe | None = None,
    ) -> None:
        self._overrides: Dict[str, Path] = dict(overrides or {})
        self._probe = probe or ToolchainProbe()

    def path(self, family: str) -> Path:
        override = self._overrides.get(family)
        if override is not None:
            if not override.is_file():
                raise PayloadNotFoundError(family, str(override))
            return override
        return self._probe.payload_path(family)

    def load(self, family: str) -> str:
        return self.path(family).read_text(encoding="utf-8")


class RuntimeInitGenerator:
    """Builds the runtime bootstrap script with one cache slot per mode token."""

    def __init__(
        self,
        *,
        marker: str,
        payloads: PayloadLoader,
        artifact_path: Path,
        console: Console | None = None,
    ) -> None:
        self.marker = marker
        self.artifact_path = artifact_path
        self._payloads = payloads
        self._console = console or Console()
        self._cache: Dict[str, str] = {}

    def generate(self, mode: ModeDefinition, builder: Builder | None) -> str:
        token = mode.token
        cached = self._cache.get(token)
        if cached:
            return cached

        payload = self._payloads.load(mode.family)
        header = format_header(self.marker, token)
        if builder is None:
            raise NotInitializedError("No active builder; cannot reference the compiled output")
        glue = render_glue(mode, builder.output_file_name())

        text = normalize_script("\n".join((header, payload, glue)))
        self._cache[token] = text
        self._console.debug(f"Generated runtime bootstrap for mode {token} ({len(text)} bytes)")
        return text

    def clear_cache(self) -> None:
        self._cache.clear()

    def write(self, text: str) -> bool:
        """Write ``text`` to the artifact path. Returns ``False`` when it was already current."""
        path = self.artifact_path
        if path.is_file() and path.read_bytes() == text.encode("utf-8"):
            return False
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8", newline="\n")
        self._console.info(f"Wrote runtime bootstrap {path}")
        return True


__all__ = [
    "PayloadLoader",
    "RuntimeInitGenerator",
    "format_header",
    "normalize_script",
    "parse_mode_header",
    "render_glue",
]
