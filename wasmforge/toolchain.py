"""Toolchain probing: installation checks, versions and runtime payload lookup."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping
import shutil

from core.command_runner import CommandError, CommandRunner, SubprocessCommandRunner

from .errors import PayloadNotFoundError, UnavailableToolchainError
from .modes import GO_FAMILY, TINYGO_FAMILY

_ROOT_VARIABLES = {
    GO_FAMILY: "GOROOT",
    TINYGO_FAMILY: "TINYGOROOT",
}

_PAYLOAD_CANDIDATES = {
    GO_FAMILY: (("lib", "wasm", "wasm_exec.js"), ("misc", "wasm", "wasm_exec.js")),
    TINYGO_FAMILY: (("targets", "wasm_exec.js"),),
}

_PROBE_TIMEOUT = 15.0


class ToolchainProbe:
    """Queries the installed ``go`` and ``tinygo`` toolchains."""

    def __init__(
        self,
        *,
        runner: CommandRunner | None = None,
        commands: Mapping[str, str] | None = None,
    ) -> None:
        self._runner = runner or SubprocessCommandRunner()
        self._commands: Dict[str, str] = {GO_FAMILY: "go", TINYGO_FAMILY: "tinygo"}
        if commands:
            self._commands.update(commands)
        self._roots: Dict[str, Path] = {}

    def command(self, family: str) -> str:
        return self._commands[family]

    def _executable(self, family: str) -> str:
        command = self._commands[family]
        executable = shutil.which(command)
        if executable is None:
            raise UnavailableToolchainError(command, "executable not found in PATH")
        return executable

    def version(self, family: str) -> str:
        """Return the toolchain's version line; raise when it is missing or broken."""
        executable = self._executable(family)
        try:
            result = self._runner.run([executable, "version"], timeout=_PROBE_TIMEOUT)
        except (CommandError, OSError) as exc:
            raise UnavailableToolchainError(self._commands[family], str(exc)) from exc
        version = result.stdout.strip() or result.stderr.strip()
        if not version and not self._runner.dry_run:
            raise UnavailableToolchainError(self._commands[family], "version check produced no output")
        return version

    def is_installed(self, family: str) -> bool:
        try:
            self.version(family)
        except UnavailableToolchainError:
            return False
        return True

    def root(self, family: str) -> Path:
        cached = self._roots.get(family)
        if cached is not None:
            return cached

        executable = self._executable(family)
        variable = _ROOT_VARIABLES[family]
        root: Path | None = None
        try:
            result = self._runner.run([executable, "env", variable], timeout=_PROBE_TIMEOUT)
            text = result.stdout.strip()
            if text:
                root = Path(text)
        except (CommandError, OSError):
            root = None

        if root is None:
            # <root>/bin/<executable>
            root = Path(executable).resolve().parent.parent

        self._roots[family] = root
        return root

    def payload_candidates(self, family: str) -> List[Path]:
        try:
            root = self.root(family)
        except UnavailableToolchainError:
            return []
        return [root.joinpath(*parts) for parts in _PAYLOAD_CANDIDATES[family]]

    def payload_path(self, family: str) -> Path:
        candidates = self.payload_candidates(family)
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        if not candidates:
            raise PayloadNotFoundError(family, f"'{self._commands[family]}' is not installed")
        searched = ", ".join(str(candidate) for candidate in candidates)
        raise PayloadNotFoundError(family, f"searched {searched}")


__all__ = ["ToolchainProbe"]
