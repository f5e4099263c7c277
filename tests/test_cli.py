from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock
import io
import os
import tempfile
import textwrap
import unittest

from fakes import write_payloads
from wasmforge import cli


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        base = Path(self.temp_dir.name)
        self.root = base / "app"
        self.root.mkdir()
        payloads = write_payloads(base / "payloads")
        (self.root / "wasmforge.toml").write_text(
            textwrap.dedent(
                f"""
                [payloads]
                go = "{Path(payloads['go']).as_posix()}"
                tinygo = "{Path(payloads['tinygo']).as_posix()}"
                """
            )
        )
        # No toolchain on PATH: TinyGo modes are unavailable and nothing is executed.
        patcher = mock.patch("wasmforge.toolchain.shutil.which", return_value=None)
        patcher.start()
        self.addCleanup(patcher.stop)
        env_patcher = mock.patch.dict("os.environ", {}, clear=False)
        env_patcher.start()
        self.addCleanup(env_patcher.stop)
        os.environ.pop("WASMFORGE_CONFIG", None)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def write_entry(self) -> None:
        entry = self.root / "web" / "main.go"
        entry.parent.mkdir(parents=True, exist_ok=True)
        entry.write_text("package main\n\nfunc main() {}\n")

    def run_cli(self, *args: str) -> tuple[int, str]:
        buffer = io.StringIO()
        with redirect_stdout(buffer), redirect_stderr(io.StringIO()):
            code = cli.main(["--root", str(self.root), *args])
        return code, buffer.getvalue()

    def test_status_on_empty_tree(self) -> None:
        code, output = self.run_cli("status")

        self.assertEqual(code, 0)
        self.assertRegex(output, r"Project\s+no")
        self.assertRegex(output, r"Mode\s+L \(fast\)")
        self.assertIn("web/public/main.wasm", output)

    def test_mode_without_tinygo_fails(self) -> None:
        code, output = self.run_cli("mode", "S")

        self.assertEqual(code, 1)
        self.assertIn("Error: Toolchain 'tinygo' is not available", output)

    def test_invalid_mode(self) -> None:
        code, output = self.run_cli("mode", "XL")

        self.assertEqual(code, 1)
        self.assertIn("Invalid mode 'XL'. Valid modes: L, M, S", output)

    def test_fast_mode_without_entry_file(self) -> None:
        code, output = self.run_cli("mode", "l")

        self.assertEqual(code, 0)
        self.assertIn("Switched to fast mode", output)
        self.assertIn("Note: mode L was not saved to wasm_exec.js; no WebAssembly project detected yet", output)

    def test_build_dry_run_prints_compiler_command(self) -> None:
        self.write_entry()

        code, output = self.run_cli("build", "--dry-run")

        self.assertEqual(code, 0)
        self.assertIn("[dry-run] fast build", output)
        self.assertIn("GOARCH=wasm GOOS=js go build -o web/public/main.wasm -tags dev web/main.go", output)
        self.assertIn("[DRY] Would write web/theme/js/wasm_exec.js", output)
        self.assertFalse((self.root / "web" / "theme" / "js" / "wasm_exec.js").exists())
        self.assertFalse((self.root / "web" / "public").exists())

    def test_build_without_entry_file(self) -> None:
        code, output = self.run_cli("build", "--dry-run")

        self.assertEqual(code, 1)
        self.assertIn("Entry file not found", output)

    def test_js_prints_script_with_header(self) -> None:
        self.write_entry()

        code, output = self.run_cli("js")

        self.assertEqual(code, 0)
        self.assertEqual(output.splitlines()[0], "// wasmforge: mode=L")

    def test_js_outside_project(self) -> None:
        code, output = self.run_cli("js", "--write")

        self.assertEqual(code, 1)
        self.assertIn("No WebAssembly project detected", output)

    def test_scaffold_then_detects_project(self) -> None:
        code, output = self.run_cli("scaffold")

        self.assertEqual(code, 0)
        self.assertIn("Created web/main.go", output)
        self.assertTrue((self.root / "web" / "theme" / "js" / "wasm_exec.js").is_file())

        code, output = self.run_cli("scaffold")
        self.assertIn("main.go already exists", output)

    def test_tools_lists_metadata(self) -> None:
        code, output = self.run_cli("tools")

        self.assertEqual(code, 0)
        self.assertIn("wasm_set_mode:", output)
        self.assertIn("mode (string, required) [L, M, S]", output)
        self.assertIn("wasm_get_size:", output)

    def test_ide_writes_settings(self) -> None:
        with mock.patch("wasmforge.ide_settings.platform.system", return_value="Linux"):
            code, _ = self.run_cli("ide")

        self.assertEqual(code, 0)
        self.assertTrue((self.root / ".vscode" / "settings.json").is_file())

    def test_invalid_configuration(self) -> None:
        (self.root / "wasmforge.toml").write_text("[server]\nport = 1\n")

        code, output = self.run_cli("status")

        self.assertEqual(code, 2)
        self.assertIn("Error: Configuration contains unknown sections: server", output)


if __name__ == "__main__":
    unittest.main()
