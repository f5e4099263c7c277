"""Orchestrator configuration loading and validation."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping
import os

from core.config_loader import find_config_file, load_config_file, merge_mappings, normalize_string_list

from .modes import FAMILIES, GO_FAMILY, TINYGO_FAMILY, ModeRegistry

CONFIG_STEM = "wasmforge"
CONFIG_ENV_VAR = "WASMFORGE_CONFIG"

DEFAULT_GO_SIGNATURES: tuple[str, ...] = (
    "runtime.scheduleTimeoutEvent",
    "runtime.clearTimeoutEvent",
    "runtime.resetMemoryDataView",
    "runtime.wasmWrite",
    "runtime.nanotime1",
)
DEFAULT_TINYGO_SIGNATURES: tuple[str, ...] = (
    "runtime.sleepTicks",
    "runtime.ticks",
    "wasi_snapshot_preview1",
    "fd_write",
)


@dataclass(frozen=True, slots=True)
class SignatureSet:
    go: tuple[str, ...] = DEFAULT_GO_SIGNATURES
    tinygo: tuple[str, ...] = DEFAULT_TINYGO_SIGNATURES

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "SignatureSet":
        if not data:
            return cls()
        unknown = {str(key) for key in data.keys() if str(key) not in FAMILIES}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ValueError(f"signatures contains unknown families: {joined}")
        go = tuple(normalize_string_list(data.get(GO_FAMILY), field_name="signatures.go")) or DEFAULT_GO_SIGNATURES
        tinygo = (
            tuple(normalize_string_list(data.get(TINYGO_FAMILY), field_name="signatures.tinygo"))
            or DEFAULT_TINYGO_SIGNATURES
        )
        overlap = set(go) & set(tinygo)
        if overlap:
            joined = ", ".join(sorted(overlap))
            raise ValueError(f"Signature lists must be disjoint; shared entries: {joined}")
        return cls(go=go, tinygo=tinygo)

    def for_family(self, family: str) -> tuple[str, ...]:
        return self.go if family == GO_FAMILY else self.tinygo


@dataclass(slots=True)
class OrchestratorConfig:
    app_root: Path = field(default_factory=lambda: Path("."))
    source_dir: str = "web"
    output_dir: str = "web/public"
    output_name: str = "main"
    entry_file: str = "main.go"
    always_compile_suffix: str = ".wasm.go"
    js_output_dir: str = "web/theme/js"
    js_file_name: str = "wasm_exec.js"
    header_marker: str = "// wasmforge"
    compile_timeout: float = 60.0
    compiling_arguments: List[str] = field(default_factory=list)
    payloads: Dict[str, Path] = field(default_factory=dict)
    signatures: SignatureSet = field(default_factory=SignatureSet)
    modes: ModeRegistry = field(default_factory=ModeRegistry.with_builtins)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, app_root: Path | None = None) -> "OrchestratorConfig":
        allowed_sections = {"project", "payloads", "signatures", "modes"}
        unknown = {str(key) for key in data.keys() if str(key) not in allowed_sections}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ValueError(f"Configuration contains unknown sections: {joined}")

        config = cls(app_root=app_root or Path("."))
        project = data.get("project") or {}
        if not isinstance(project, Mapping):
            raise TypeError("project section must be a mapping")
        config._apply_project(project)

        payloads = data.get("payloads") or {}
        if not isinstance(payloads, Mapping):
            raise TypeError("payloads section must be a mapping")
        for raw_family, raw_path in payloads.items():
            family = str(raw_family).strip().lower()
            if family not in FAMILIES:
                raise ValueError(f"payloads contains unknown family '{raw_family}'")
            path = Path(str(raw_path)).expanduser()
            config.payloads[family] = path if path.is_absolute() else config.app_root / path

        signatures = data.get("signatures")
        if signatures is not None and not isinstance(signatures, Mapping):
            raise TypeError("signatures section must be a mapping")
        config.signatures = SignatureSet.from_mapping(signatures)

        modes = data.get("modes")
        if modes is not None and not isinstance(modes, Mapping):
            raise TypeError("modes section must be a mapping")
        config.modes = ModeRegistry.from_mapping(modes)
        return config

    def _apply_project(self, project: Mapping[str, Any]) -> None:
        string_keys = (
            "source_dir",
            "output_dir",
            "output_name",
            "entry_file",
            "always_compile_suffix",
            "js_output_dir",
            "js_file_name",
            "header_marker",
        )
        allowed_keys = {*string_keys, "compile_timeout", "compiling_arguments"}
        unknown = {str(key) for key in project.keys() if str(key) not in allowed_keys}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ValueError(f"project section contains unknown keys: {joined}")

        for key in string_keys:
            if key not in project:
                continue
            value = project[key]
            if not isinstance(value, str):
                raise TypeError(f"project.{key} must be a string")
            if not value.strip() and key not in {"source_dir", "output_dir", "js_output_dir"}:
                raise ValueError(f"project.{key} must not be empty")
            setattr(self, key, value.strip())

        if "compile_timeout" in project:
            timeout = project["compile_timeout"]
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
                raise TypeError("project.compile_timeout must be a number of seconds")
            if timeout <= 0:
                raise ValueError("project.compile_timeout must be positive")
            self.compile_timeout = float(timeout)

        if "compiling_arguments" in project:
            self.compiling_arguments = normalize_string_list(
                project["compiling_arguments"], field_name="project.compiling_arguments"
            )

    @property
    def source_path(self) -> Path:
        return self.app_root / self.source_dir

    @property
    def entry_path(self) -> Path:
        return self.source_path / self.entry_file

    @property
    def output_path(self) -> Path:
        return self.app_root / self.output_dir

    @property
    def artifact_path(self) -> Path:
        return self.app_root / self.js_output_dir / self.js_file_name

    def relative_to_root(self, path: Path) -> str:
        """Return ``path`` relative to the app root using forward slashes."""
        try:
            relative = path.relative_to(self.app_root)
        except ValueError:
            relative = Path(os.path.relpath(path, self.app_root))
        return relative.as_posix()


def discover_config(root: Path) -> Path | None:
    return find_config_file(root, CONFIG_STEM)


def load_config(
    root: Path,
    paths: Iterable[Path] | None = None,
) -> OrchestratorConfig:
    """Build the configuration for ``root``.

    Files are merged in order: the discovered ``wasmforge.*`` file, entries of
    ``WASMFORGE_CONFIG`` and finally ``paths``.
    """

    candidates: List[Path] = []
    discovered = discover_config(root)
    if discovered is not None:
        candidates.append(discovered)

    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        for entry in env_value.split(os.pathsep):
            text = entry.strip()
            if text:
                path = Path(text).expanduser()
                candidates.append(path if path.is_absolute() else root / path)

    for path in paths or ():
        candidates.append(path if path.is_absolute() else root / path)

    merged: Dict[str, Any] = {}
    seen: set[Path] = set()
    for path in candidates:
        resolved = path.resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        merged = merge_mappings(merged, load_config_file(path))

    return OrchestratorConfig.from_mapping(merged, app_root=root)


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_GO_SIGNATURES",
    "DEFAULT_TINYGO_SIGNATURES",
    "OrchestratorConfig",
    "SignatureSet",
    "discover_config",
    "load_config",
]
