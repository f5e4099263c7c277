"""Compiler invocation: one builder per compilation mode."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Protocol, Sequence, runtime_checkable

from core.command_runner import CommandError, CommandRunner, SubprocessCommandRunner
from core.console import Console

from .config import OrchestratorConfig
from .errors import CompilationError, EntryFileMissingError
from .modes import ModeDefinition

WASM_EXTENSION = ".wasm"


@runtime_checkable
class Builder(Protocol):
    """Interface the orchestrator expects from a compiler handle."""

    def compile(self) -> Path:
        ...

    def cancel(self) -> None:
        ...

    def output_file_name(self) -> str:
        ...

    def final_output_path(self) -> Path:
        ...

    def unobserved_files(self) -> List[str]:
        ...


@dataclass(slots=True)
class BuilderSettings:
    app_root: Path
    entry_path: Path
    output_dir: Path
    output_name: str = "main"
    extension: str = WASM_EXTENSION
    timeout: float | None = 60.0
    extra_arguments: Sequence[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: OrchestratorConfig) -> "BuilderSettings":
        return cls(
            app_root=config.app_root,
            entry_path=config.entry_path,
            output_dir=config.output_path,
            output_name=config.output_name,
            timeout=config.compile_timeout,
            extra_arguments=list(config.compiling_arguments),
        )


class WasmBuilder:
    """Runs ``<command> build`` for a single mode through a command runner."""

    def __init__(
        self,
        mode: ModeDefinition,
        settings: BuilderSettings,
        *,
        runner: CommandRunner | None = None,
        console: Console | None = None,
    ) -> None:
        self.mode = mode
        self._settings = settings
        self._runner = runner or SubprocessCommandRunner()
        self._console = console or Console()

    def output_file_name(self) -> str:
        return f"{self._settings.output_name}{self._settings.extension}"

    def final_output_path(self) -> Path:
        return self._settings.output_dir / self.output_file_name()

    def unobserved_files(self) -> List[str]:
        path = self.final_output_path()
        try:
            return [path.relative_to(self._settings.app_root).as_posix()]
        except ValueError:
            return [path.as_posix()]

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self._settings.app_root).as_posix()
        except ValueError:
            return str(path)

    def command(self) -> List[str]:
        return [
            self.mode.command,
            "build",
            "-o",
            self._relative(self.final_output_path()),
            *self.mode.arguments,
            *self._settings.extra_arguments,
            self._relative(self._settings.entry_path),
        ]

    def compile(self) -> Path:
        entry = self._settings.entry_path
        if not entry.is_file():
            raise EntryFileMissingError(entry)

        output = self.final_output_path()
        if not self._runner.dry_run:
            output.parent.mkdir(parents=True, exist_ok=True)
        command = self.command()
        self._console.debug(f"Compiling {self._relative(entry)} with {self.mode.command} ({self.mode.role} mode)")
        try:
            self._runner.run(
                command,
                cwd=self._settings.app_root,
                env=dict(self.mode.environment) or None,
                note=f"{self.mode.role} build",
                timeout=self._settings.timeout,
            )
        except CommandError as exc:
            raise CompilationError(
                f"{self.mode.command} build failed for {self._relative(entry)}", result=exc.result
            ) from exc
        except OSError as exc:
            raise CompilationError(f"Could not run '{self.mode.command}': {exc}") from exc

        if not self._runner.dry_run and not output.is_file():
            raise CompilationError(f"Compiler reported success but {self._relative(output)} was not created")
        return output

    def cancel(self) -> None:
        if self._runner.cancel():
            self._console.debug(f"Cancelled in-flight {self.mode.role} build")


BuilderFactory = Callable[[ModeDefinition, OrchestratorConfig], Builder]


def default_builder_factory(
    *,
    console: Console | None = None,
    runner_factory: Callable[[], CommandRunner] = SubprocessCommandRunner,
) -> BuilderFactory:
    def factory(mode: ModeDefinition, config: OrchestratorConfig) -> Builder:
        return WasmBuilder(
            mode,
            BuilderSettings.from_config(config),
            runner=runner_factory(),
            console=console,
        )

    return factory


def create_builders(config: OrchestratorConfig, factory: BuilderFactory) -> Dict[str, Builder]:
    """Return a builder per mode token."""
    return {mode.token: factory(mode, config) for mode in config.modes.definitions()}


__all__ = [
    "Builder",
    "BuilderFactory",
    "BuilderSettings",
    "WasmBuilder",
    "create_builders",
    "default_builder_factory",
]
