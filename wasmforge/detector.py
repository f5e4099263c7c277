"""One-shot detection of the project type and the toolchain it was last built with."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable
import os

from core.console import Console

from .classifier import FileClassifier
from .config import OrchestratorConfig, SignatureSet
from .errors import ModeValidationError
from .modes import GO_FAMILY, TINYGO_FAMILY
from .runtime_init import parse_mode_header

ARTIFACT_SOURCE = "artifact"
SOURCE_SCAN = "source"
NOT_DETECTED = "none"


@dataclass(frozen=True, slots=True)
class DetectionResult:
    is_target_project: bool
    family: str | None = None
    mode: str | None = None
    source: str = NOT_DETECTED
    header_mode: str | None = None
    matched_file: Path | None = None


def count_signatures(content: str, signatures: Iterable[str]) -> int:
    return sum(content.count(signature) for signature in signatures if signature)


def score_signatures(content: str, signatures: SignatureSet) -> str | None:
    """Return the family whose signatures occur strictly more often, or ``None`` on a tie."""
    go_hits = count_signatures(content, signatures.go)
    tinygo_hits = count_signatures(content, signatures.tinygo)
    if go_hits > tinygo_hits:
        return GO_FAMILY
    if tinygo_hits > go_hits:
        return TINYGO_FAMILY
    return None


def find_source_match(source_dir: Path, classifier: FileClassifier) -> Path | None:
    """Walk ``source_dir`` in sorted order and return the first relevant file."""
    if not source_dir.is_dir():
        return None
    for dirpath, dirnames, filenames in os.walk(source_dir):
        dirnames[:] = sorted(name for name in dirnames if not name.startswith("."))
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if classifier.classify(name, str(path)):
                return path
    return None


class ProjectDetector:
    """Decides whether the tree is a managed project and which mode to start in.

    An existing runtime bootstrap artifact wins over the source scan: it records
    the toolchain (through its payload signatures) and usually the exact mode
    (through its header line).
    """

    def __init__(self, config: OrchestratorConfig, *, console: Console | None = None) -> None:
        self._config = config
        self._console = console or Console()
        self._classifier = FileClassifier(config.entry_file, config.always_compile_suffix)

    def detect(self) -> DetectionResult:
        from_artifact = self.inspect_artifact()
        if from_artifact is not None:
            return from_artifact

        match = find_source_match(self._config.source_path, self._classifier)
        if match is not None:
            mode = self._config.modes.default_mode().token
            self._console.info(
                f"Detected WebAssembly project from {self._config.relative_to_root(match)}; using mode {mode}"
            )
            return DetectionResult(
                is_target_project=True,
                family=GO_FAMILY,
                mode=mode,
                source=SOURCE_SCAN,
                matched_file=match,
            )

        self._console.info(
            f"No WebAssembly project detected: no {self._config.js_file_name} and no "
            f"{self._config.entry_file} or *{self._config.always_compile_suffix} under "
            f"{self._config.relative_to_root(self._config.source_path)}"
        )
        return DetectionResult(is_target_project=False)

    def inspect_artifact(self) -> DetectionResult | None:
        path = self._config.artifact_path
        if not path.is_file():
            return None
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self._console.warning(f"Could not read {path}: {exc}")
            return None

        family = score_signatures(content, self._config.signatures)
        if family is None:
            self._console.debug(f"{path.name} has no conclusive toolchain signatures")
            return None

        modes = self._config.modes
        mode = modes.default_for_family(family).token
        header_mode = parse_mode_header(content, self._config.header_marker)
        if header_mode is not None:
            try:
                modes.validate_token(header_mode)
            except ModeValidationError as exc:
                self._console.warning(f"Ignoring header in {path.name}: {exc}")
                header_mode = None
            else:
                mode = header_mode

        self._console.info(f"Detected {family} toolchain from {path.name}; using mode {mode}")
        return DetectionResult(
            is_target_project=True,
            family=family,
            mode=mode,
            source=ARTIFACT_SOURCE,
            header_mode=header_mode,
        )


__all__ = [
    "ARTIFACT_SOURCE",
    "DetectionResult",
    "NOT_DETECTED",
    "ProjectDetector",
    "SOURCE_SCAN",
    "count_signatures",
    "find_source_match",
    "score_signatures",
]
