from __future__ import annotations

from pathlib import Path
from unittest import mock
import io
import json
import tempfile
import unittest

from core.command_runner import RecordingCommandRunner
from core.console import Console
from fakes import quiet_console
from wasmforge.ide_settings import apply_wasm_settings, write_ide_settings


class ApplyWasmSettingsTests(unittest.TestCase):
    def test_adds_language_server_environment(self) -> None:
        settings = apply_wasm_settings({})

        self.assertEqual(settings["gopls"]["env"], {"GOOS": "js", "GOARCH": "wasm"})
        self.assertEqual(settings["go.alternateTools"], {"go": "go"})

    def test_preserves_existing_keys(self) -> None:
        original = {
            "editor.tabSize": 4,
            "gopls": {"env": {"CGO_ENABLED": "0"}, "ui.semanticTokens": True},
            "go.alternateTools": {"go": "/opt/go/bin/go"},
        }

        settings = apply_wasm_settings(original)

        self.assertEqual(settings["editor.tabSize"], 4)
        self.assertTrue(settings["gopls"]["ui.semanticTokens"])
        self.assertEqual(settings["gopls"]["env"], {"CGO_ENABLED": "0", "GOOS": "js", "GOARCH": "wasm"})
        self.assertEqual(settings["go.alternateTools"], {"go": "/opt/go/bin/go"})
        self.assertEqual(original["gopls"]["env"], {"CGO_ENABLED": "0"})


class WriteIdeSettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_writes_settings_file(self) -> None:
        with mock.patch("wasmforge.ide_settings.platform.system", return_value="Linux"):
            path = write_ide_settings(self.root, console=quiet_console())

        self.assertEqual(path, self.root / ".vscode" / "settings.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(data["gopls"]["env"]["GOARCH"], "wasm")

    def test_merges_into_existing_file(self) -> None:
        settings_dir = self.root / ".vscode"
        settings_dir.mkdir()
        (settings_dir / "settings.json").write_text('{"files.autoSave": "afterDelay"}')

        with mock.patch("wasmforge.ide_settings.platform.system", return_value="Linux"):
            path = write_ide_settings(self.root, console=quiet_console())

        data = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(data["files.autoSave"], "afterDelay")
        self.assertIn("gopls", data)

    def test_replaces_undecodable_settings_file(self) -> None:
        settings_dir = self.root / ".vscode"
        settings_dir.mkdir()
        (settings_dir / "settings.json").write_bytes(b"\xff\xfe{\"broken\": \x80}")
        errors = io.StringIO()
        console = Console("warning", stream=io.StringIO(), error_stream=errors)

        with mock.patch("wasmforge.ide_settings.platform.system", return_value="Linux"):
            path = write_ide_settings(self.root, console=console)

        data = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(data["gopls"]["env"]["GOOS"], "js")
        self.assertIn("Replacing unreadable", errors.getvalue())

    def test_hides_directory_on_windows(self) -> None:
        runner = RecordingCommandRunner()

        with mock.patch("wasmforge.ide_settings.platform.system", return_value="Windows"):
            write_ide_settings(self.root, console=quiet_console(), runner=runner)

        self.assertEqual(runner.commands[0].command, ["cmd", "/c", "attrib", "+h", str(self.root / ".vscode")])


if __name__ == "__main__":
    unittest.main()
