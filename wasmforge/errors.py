"""Error taxonomy and structured progress reports."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from core.command_runner import CommandResult


class WasmForgeError(Exception):
    """Base class for orchestrator errors."""


class ModeValidationError(WasmForgeError, ValueError):
    """Raised when a mode token is not one of the configured modes."""

    def __init__(self, token: str, valid_modes: Sequence[str]):
        self.token = token
        self.valid_modes = tuple(valid_modes)
        joined = ", ".join(self.valid_modes)
        super().__init__(f"Invalid mode '{token}'. Valid modes: {joined}")


class UnavailableToolchainError(WasmForgeError):
    """Raised when a mode needs a toolchain that is missing or failed verification."""

    def __init__(self, toolchain: str, reason: str | None = None):
        self.toolchain = toolchain
        self.reason = reason
        message = f"Toolchain '{toolchain}' is not available"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NotInitializedError(WasmForgeError):
    """Raised when an operation needs an active builder and none is set."""


class EntryFileMissingError(WasmForgeError, FileNotFoundError):
    """Raised when the entry source file does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Entry file not found: {path}")


class CompilationError(WasmForgeError):
    """Raised when the compiler exits unsuccessfully or produces no output."""

    def __init__(self, message: str, *, result: CommandResult | None = None):
        self.result = result
        self.output = result.output if result is not None else ""
        if self.output and self.output not in message:
            message = f"{message}\n{self.output}"
        super().__init__(message)


class PayloadNotFoundError(WasmForgeError, FileNotFoundError):
    """Raised when the runtime bootstrap payload for a toolchain cannot be located."""

    def __init__(self, family: str, detail: str):
        self.family = family
        super().__init__(f"Runtime payload for '{family}' not found: {detail}")


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Progress:
    """One outcome reported through a progress callback."""

    severity: Severity
    message: str
    cause: BaseException | None = None

    @classmethod
    def success(cls, message: str) -> "Progress":
        return cls(Severity.SUCCESS, message)

    @classmethod
    def warning(cls, message: str, cause: BaseException | None = None) -> "Progress":
        return cls(Severity.WARNING, message, cause)

    @classmethod
    def error(cls, cause: BaseException) -> "Progress":
        return cls(Severity.ERROR, str(cause), cause)

    @property
    def failed(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        return self.message


ProgressCallback = Callable[[Progress], None]


__all__ = [
    "CompilationError",
    "EntryFileMissingError",
    "ModeValidationError",
    "NotInitializedError",
    "PayloadNotFoundError",
    "Progress",
    "ProgressCallback",
    "Severity",
    "UnavailableToolchainError",
    "WasmForgeError",
]
