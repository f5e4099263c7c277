"""Utilities for executing compiler commands with timeouts, cancellation and dry-run support."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence
import os
import shlex
import subprocess


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    cancelled: bool = False

    @property
    def output(self) -> str:
        parts = [text.strip() for text in (self.stdout, self.stderr) if text and text.strip()]
        return "\n".join(parts)


class CommandError(RuntimeError):
    """Raised when a command fails, times out or is cancelled."""

    def __init__(self, result: CommandResult):
        command = " ".join(map(shlex.quote, result.command))
        if result.timed_out:
            message = f"Command timed out: {command}"
        elif result.cancelled:
            message = f"Command was cancelled: {command}"
        else:
            message = f"Command failed with exit code {result.returncode}: {command}"
        if result.output:
            message = f"{message}\n{result.output}"
        super().__init__(message)
        self.result = result


class CommandRunner:
    """Abstract command runner interface."""

    dry_run = False

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        note: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        raise NotImplementedError

    def cancel(self) -> bool:
        """Signal the in-flight command to stop. Returns ``True`` when a process was signalled."""
        return False

    def format_command(self, command: Sequence[str]) -> str:
        return " ".join(shlex.quote(part) for part in command)


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`.

    One runner tracks at most one child process. :meth:`cancel` only sends the
    termination signal; the blocked :meth:`run` call collects the exit status.
    """

    def __init__(self) -> None:
        self._process: subprocess.Popen[str] | None = None
        self._cancelled = False

    @staticmethod
    def _merge_environment(env: Mapping[str, str] | None) -> Dict[str, str] | None:
        if env is None:
            return None
        merged = os.environ.copy()
        merged.update(env)
        return merged

    def _finalize(self, result: CommandResult, *, check: bool) -> CommandResult:
        if check and (result.returncode != 0 or result.timed_out or result.cancelled):
            raise CommandError(result)
        return result

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        note: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        self._cancelled = False
        process = subprocess.Popen(
            list(command),
            cwd=str(cwd) if cwd else None,
            env=self._merge_environment(env),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        self._process = process
        timed_out = False
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            stdout, stderr = process.communicate()
            timed_out = True
        finally:
            self._process = None

        return self._finalize(
            CommandResult(
                command=command,
                returncode=process.returncode,
                stdout=stdout or "",
                stderr=stderr or "",
                timed_out=timed_out,
                cancelled=self._cancelled,
            ),
            check=check,
        )

    def cancel(self) -> bool:
        process = self._process
        if process is None or process.poll() is not None:
            return False
        self._cancelled = True
        process.terminate()
        return True


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    env: Dict[str, str]
    note: str | None
    timeout: float | None


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them."""

    dry_run = True

    def __init__(self) -> None:
        self.commands: List[RecordedCommand] = []
        self.cancel_requests = 0

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        note: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        self.commands.append(
            RecordedCommand(
                command=list(command),
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env else {},
                note=note,
                timeout=timeout,
            )
        )
        return CommandResult(command=command, returncode=0, stdout="", stderr="")

    def cancel(self) -> bool:
        self.cancel_requests += 1
        return False

    def iter_formatted(self, *, workspace: Path | None = None) -> Iterable[str]:
        default_cwd = str(workspace) if workspace else None
        for record in self.commands:
            parts: List[str] = ["[dry-run]"]
            if record.note:
                parts.append(record.note)
            cwd = record.cwd or default_cwd
            if cwd:
                parts.append(f"(cwd={cwd})")
            if record.env:
                parts.append(" ".join(f"{key}={value}" for key, value in sorted(record.env.items())))
            parts.append(self.format_command(record.command))
            yield " ".join(parts)


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
]
