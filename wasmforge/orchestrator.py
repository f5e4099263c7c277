"""Compilation mode orchestration: mode switching, detection and file events."""
from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping

from core.console import Console

from .builder import Builder, BuilderFactory, create_builders, default_builder_factory
from .classifier import FileClassifier
from .config import OrchestratorConfig
from .detector import SOURCE_SCAN, DetectionResult, ProjectDetector
from .errors import (
    CompilationError,
    EntryFileMissingError,
    ModeValidationError,
    NotInitializedError,
    Progress,
    ProgressCallback,
    UnavailableToolchainError,
)
from .modes import GO_FAMILY, TINYGO_FAMILY, ModeDefinition, ModeRegistry
from .runtime_init import PayloadLoader, RuntimeInitGenerator
from .scaffold import write_default_entry_file
from .toolchain import ToolchainProbe

COMPILE_EVENTS = frozenset({"write", "create"})


def _discard(_progress: Progress) -> None:
    return None


class Orchestrator:
    """Owns the selected compilation mode and everything derived from it.

    The mode token is the single source of truth: the active builder is always
    ``builders[current_mode]``. Callers are expected to serialize access; there
    is no internal locking.
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        *,
        console: Console | None = None,
        builder_factory: BuilderFactory | None = None,
        probe: ToolchainProbe | None = None,
        payloads: PayloadLoader | None = None,
        dry_run: bool = False,
    ) -> None:
        self.config = config
        self.dry_run = dry_run
        self._console = console or Console()
        self._modes: ModeRegistry = config.modes
        self._probe = probe or ToolchainProbe(
            commands={
                GO_FAMILY: self._modes.default_for_family(GO_FAMILY).command,
                TINYGO_FAMILY: self._modes.default_for_family(TINYGO_FAMILY).command,
            }
        )
        self._classifier = FileClassifier(config.entry_file, config.always_compile_suffix)
        factory = builder_factory or default_builder_factory(console=self._console)
        self._builders = create_builders(config, factory)
        self._generator = RuntimeInitGenerator(
            marker=config.header_marker,
            payloads=payloads or PayloadLoader(overrides=config.payloads, probe=self._probe),
            artifact_path=config.artifact_path,
            console=self._console,
        )

        default_token = self._modes.default_mode().token
        self._current_mode = default_token
        self._active_builder: Builder | None = self._builders[default_token]
        self._is_target_project = False
        self._secondary_installed = False
        self._detected_family: str | None = None
        self._mode_chosen = False

        self._verify_secondary_toolchain()
        self.last_detection = self._detect()

    # -- state -----------------------------------------------------------------

    @property
    def is_target_project(self) -> bool:
        return self._is_target_project

    @property
    def secondary_toolchain_installed(self) -> bool:
        return self._secondary_installed

    @property
    def detected_family(self) -> str | None:
        return self._detected_family

    @property
    def modes(self) -> ModeRegistry:
        return self._modes

    @property
    def builders(self) -> Mapping[str, Builder]:
        return MappingProxyType(self._builders)

    @property
    def active_builder(self) -> Builder | None:
        return self._active_builder

    def current_mode(self) -> str:
        return self._current_mode

    def current_definition(self) -> ModeDefinition:
        return self._modes.get(self._current_mode)

    def _activate(self, token: str) -> None:
        builder = self._builders[token]
        if self._active_builder is not None:
            self._active_builder.cancel()
        self._active_builder = builder
        self._current_mode = token

    # -- toolchains ------------------------------------------------------------

    def _verify_secondary_toolchain(self) -> None:
        family_command = self._probe.command(TINYGO_FAMILY)
        try:
            version = self._probe.version(TINYGO_FAMILY)
        except UnavailableToolchainError as exc:
            self._secondary_installed = False
            self._console.warning(f"{family_command} not available: {exc}")
            return
        self._secondary_installed = True
        self._console.info(f"{family_command} installation verified: {version}")

    def _install_secondary_toolchain(self) -> None:
        command = self._probe.command(TINYGO_FAMILY)
        try:
            version = self._probe.version(TINYGO_FAMILY)
        except UnavailableToolchainError as exc:
            raise UnavailableToolchainError(
                command, f"automatic installation is not supported, install {command} and retry ({exc.reason})"
            ) from exc
        self._secondary_installed = True
        self._generator.clear_cache()
        self._console.info(f"{command} installation verified: {version}")

    # -- detection -------------------------------------------------------------

    def _detect(self) -> DetectionResult:
        result = ProjectDetector(self.config, console=self._console).detect()
        if not result.is_target_project:
            return result

        self._is_target_project = True
        self._detected_family = result.family
        stale = result.mode is not None and result.mode != self._current_mode
        if stale and not self._mode_chosen:
            self._activate(result.mode)
            stale = False
        if result.source == SOURCE_SCAN or stale:
            self.write_runtime_init_script()
        return result

    def redetect(self) -> DetectionResult:
        """Re-verify toolchains and rerun detection; never clears ``is_target_project``."""
        self._verify_secondary_toolchain()
        self._generator.clear_cache()
        self.last_detection = self._detect()
        return self.last_detection

    # -- mode switching --------------------------------------------------------

    def change_mode(self, token: str, progress: ProgressCallback | None = None) -> Progress:
        report = progress or _discard

        def emit(outcome: Progress) -> Progress:
            report(outcome)
            return outcome

        normalized = self._modes.normalize(token)
        try:
            self._modes.validate_token(normalized)
        except ModeValidationError as exc:
            return emit(Progress.error(exc))

        mode = self._modes.get(normalized)
        if mode.requires_secondary_toolchain and not self._secondary_installed:
            try:
                self._install_secondary_toolchain()
            except UnavailableToolchainError as exc:
                return emit(Progress.error(exc))

        self._activate(normalized)
        self._mode_chosen = True

        if not self.config.entry_path.is_file():
            self._console.debug(f"{self.config.entry_file} not found; mode {normalized} selected without compiling")
            return emit(Progress.success(mode.success_message))

        try:
            self.recompile()
        except (CompilationError, EntryFileMissingError) as exc:
            return emit(Progress.warning(f"Auto compilation failed: {exc}", exc))

        self.write_runtime_init_script()
        return emit(Progress.success(mode.success_message))

    # -- compilation -----------------------------------------------------------

    def classify(self, name: str, path: str = "") -> bool:
        return self._classifier.classify(name, path)

    def recompile(self) -> Path:
        if self._active_builder is None:
            raise NotInitializedError("No active builder")
        self._console.info(f"Compiling {self.config.entry_file} in mode {self._current_mode}")
        return self._active_builder.compile()

    def handle_file_event(self, name: str, extension: str, path: str, event: str) -> None:
        """Recompile when a relevant file is written or created.

        Raises :class:`ValueError` for an empty path and propagates
        :class:`EntryFileMissingError` and :class:`CompilationError`.
        """
        if not path:
            raise ValueError("File event path is empty")

        self._console.debug(f"{event} {extension} {path}")
        if not self.classify(name, path):
            return
        if event not in COMPILE_EVENTS:
            return
        if not self._is_target_project:
            self.redetect()

        self.recompile()
        self.write_runtime_init_script()

    def output_relative_path(self) -> str:
        if self._active_builder is None:
            raise NotInitializedError("No active builder")
        return self.config.relative_to_root(self._active_builder.final_output_path())

    def output_size(self) -> int | None:
        if self._active_builder is None:
            return None
        path = self._active_builder.final_output_path()
        return path.stat().st_size if path.is_file() else None

    def unobserved_files(self) -> List[str]:
        files: List[str] = []
        if self._active_builder is not None:
            files.extend(self._active_builder.unobserved_files())
        files.append(self.config.relative_to_root(self.config.artifact_path))
        return files

    # -- runtime bootstrap -----------------------------------------------------

    def generate_runtime_init_script(self) -> str:
        """Return the bootstrap script for the current mode, or ``""`` outside a project."""
        if not self._is_target_project:
            return ""
        mode = self._modes.get(self._current_mode)
        return self._generator.generate(mode, self._active_builder)

    def write_runtime_init_script(self) -> bool:
        """Generate and write the artifact; I/O failures are logged and reported as ``False``."""
        if not self._is_target_project:
            return False
        try:
            text = self.generate_runtime_init_script()
            if self.dry_run:
                self._console.dry(f"Would write {self.config.relative_to_root(self.config.artifact_path)}")
                return False
            self._generator.write(text)
        except OSError as exc:
            self._console.warning(f"Could not write {self.config.js_file_name}: {exc}")
            return False
        return True

    def clear_cache(self) -> None:
        self._generator.clear_cache()

    # -- scaffolding -----------------------------------------------------------

    def scaffold_entry_file(self) -> Path | None:
        """Write the default entry file when missing and rerun detection."""
        created = write_default_entry_file(self.config, console=self._console)
        if created is not None:
            self.redetect()
        return created

    def close(self) -> None:
        for builder in self._builders.values():
            builder.cancel()


__all__ = ["COMPILE_EVENTS", "Orchestrator"]
