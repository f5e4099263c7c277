from __future__ import annotations

from pathlib import Path
from typing import Dict, Sequence
from unittest import mock
import tempfile
import unittest

from core.command_runner import CommandError, CommandResult, RecordingCommandRunner
from wasmforge.errors import PayloadNotFoundError, UnavailableToolchainError
from wasmforge.toolchain import ToolchainProbe


class ScriptedRunner(RecordingCommandRunner):
    """Answers commands from a table keyed by everything after the executable."""

    dry_run = False

    def __init__(self, answers: Dict[str, str]) -> None:
        super().__init__()
        self.answers = answers

    def run(self, command: Sequence[str], **kwargs) -> CommandResult:
        super().run(command, **kwargs)
        key = " ".join(list(command)[1:])
        if key not in self.answers:
            raise CommandError(CommandResult(command, 1, "", f"unknown command {key}"))
        return CommandResult(command, 0, self.answers[key], "")


class ToolchainProbeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.goroot = Path(self.temp_dir.name) / "go"
        self.tinygoroot = Path(self.temp_dir.name) / "tinygo"

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def which(self, command: str) -> str | None:
        return {"go": str(self.goroot / "bin" / "go"), "tinygo": str(self.tinygoroot / "bin" / "tinygo")}.get(command)

    def test_missing_executable_is_unavailable(self) -> None:
        probe = ToolchainProbe(runner=ScriptedRunner({}))

        with mock.patch("wasmforge.toolchain.shutil.which", return_value=None):
            with self.assertRaises(UnavailableToolchainError) as ctx:
                probe.version("tinygo")
            self.assertFalse(probe.is_installed("tinygo"))
        self.assertEqual(ctx.exception.toolchain, "tinygo")

    def test_version_line(self) -> None:
        probe = ToolchainProbe(runner=ScriptedRunner({"version": "tinygo version 0.31.2 linux/amd64\n"}))

        with mock.patch("wasmforge.toolchain.shutil.which", side_effect=self.which):
            self.assertEqual(probe.version("tinygo"), "tinygo version 0.31.2 linux/amd64")

    def test_failing_version_check_is_unavailable(self) -> None:
        probe = ToolchainProbe(runner=ScriptedRunner({}))

        with mock.patch("wasmforge.toolchain.shutil.which", side_effect=self.which):
            with self.assertRaises(UnavailableToolchainError):
                probe.version("go")

    def test_go_payload_prefers_lib_directory(self) -> None:
        for parts in (("lib", "wasm"), ("misc", "wasm")):
            directory = self.goroot.joinpath(*parts)
            directory.mkdir(parents=True)
            (directory / "wasm_exec.js").write_text("// go\n")
        probe = ToolchainProbe(runner=ScriptedRunner({"env GOROOT": f"{self.goroot}\n"}))

        with mock.patch("wasmforge.toolchain.shutil.which", side_effect=self.which):
            path = probe.payload_path("go")

        self.assertEqual(path, self.goroot / "lib" / "wasm" / "wasm_exec.js")

    def test_go_payload_falls_back_to_misc_directory(self) -> None:
        directory = self.goroot / "misc" / "wasm"
        directory.mkdir(parents=True)
        (directory / "wasm_exec.js").write_text("// go\n")
        probe = ToolchainProbe(runner=ScriptedRunner({"env GOROOT": str(self.goroot)}))

        with mock.patch("wasmforge.toolchain.shutil.which", side_effect=self.which):
            self.assertEqual(probe.payload_path("go"), directory / "wasm_exec.js")

    def test_tinygo_root_falls_back_to_executable_location(self) -> None:
        targets = self.tinygoroot / "targets"
        targets.mkdir(parents=True)
        (targets / "wasm_exec.js").write_text("// tinygo\n")
        runner = ScriptedRunner({})
        probe = ToolchainProbe(runner=runner)

        with mock.patch("wasmforge.toolchain.shutil.which", side_effect=self.which):
            path = probe.payload_path("tinygo")
            probe.root("tinygo")

        self.assertEqual(path.resolve(), (targets / "wasm_exec.js").resolve())
        self.assertEqual(len(runner.commands), 1)

    def test_payload_missing(self) -> None:
        probe = ToolchainProbe(runner=ScriptedRunner({}))

        with mock.patch("wasmforge.toolchain.shutil.which", return_value=None):
            with self.assertRaises(PayloadNotFoundError):
                probe.payload_path("tinygo")

    def test_custom_commands(self) -> None:
        probe = ToolchainProbe(commands={"tinygo": "tinygo-0.31"})

        self.assertEqual(probe.command("tinygo"), "tinygo-0.31")
        self.assertEqual(probe.command("go"), "go")


if __name__ == "__main__":
    unittest.main()
