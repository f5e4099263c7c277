"""WebAssembly compilation mode orchestrator for Go projects."""

from .config import OrchestratorConfig, load_config
from .errors import (
    CompilationError,
    EntryFileMissingError,
    ModeValidationError,
    NotInitializedError,
    PayloadNotFoundError,
    Progress,
    Severity,
    UnavailableToolchainError,
    WasmForgeError,
)
from .modes import ModeDefinition, ModeRegistry
from .orchestrator import Orchestrator
from .cli import main

__all__ = [
    "CompilationError",
    "EntryFileMissingError",
    "ModeDefinition",
    "ModeRegistry",
    "ModeValidationError",
    "NotInitializedError",
    "Orchestrator",
    "OrchestratorConfig",
    "PayloadNotFoundError",
    "Progress",
    "Severity",
    "UnavailableToolchainError",
    "WasmForgeError",
    "load_config",
    "main",
]
