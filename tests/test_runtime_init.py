from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from fakes import FakeProbe, GO_PAYLOAD, quiet_console, write_payloads
from wasmforge.config import OrchestratorConfig
from wasmforge.errors import NotInitializedError, PayloadNotFoundError
from wasmforge.modes import ModeRegistry
from wasmforge.runtime_init import (
    PayloadLoader,
    RuntimeInitGenerator,
    format_header,
    normalize_script,
    parse_mode_header,
    render_glue,
)


class _StubBuilder:
    def output_file_name(self) -> str:
        return "main.wasm"


class HeaderTests(unittest.TestCase):
    def test_format_and_parse(self) -> None:
        header = format_header("// wasmforge", "S")

        self.assertEqual(header, "// wasmforge: mode=S")
        self.assertEqual(parse_mode_header(header + "\nbody", "// wasmforge"), "S")

    def test_header_must_be_on_first_line(self) -> None:
        self.assertIsNone(parse_mode_header("'use strict';\n// wasmforge: mode=S\n", "// wasmforge"))

    def test_empty_token_is_absent(self) -> None:
        self.assertIsNone(parse_mode_header("// wasmforge: mode=\n", "// wasmforge"))

    def test_crlf_first_line(self) -> None:
        self.assertEqual(parse_mode_header("// wasmforge: mode=M\r\nbody", "// wasmforge"), "M")


class NormalizeScriptTests(unittest.TestCase):
    def test_line_endings_and_trailing_whitespace(self) -> None:
        self.assertEqual(normalize_script("a  \r\nb\t\rc\n\n\n"), "a\nb\nc\n")

    def test_always_ends_with_single_newline(self) -> None:
        self.assertEqual(normalize_script("x"), "x\n")


class RenderGlueTests(unittest.TestCase):
    def test_glue_references_output_file(self) -> None:
        mode = ModeRegistry.with_builtins().get("S")

        glue = render_glue(mode, "app.wasm")

        self.assertIn('const source = "app.wasm";', glue)
        self.assertIn("new Go()", glue)
        self.assertIn("tinygo, size mode", glue)


class PayloadLoaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.payloads = {family: Path(path) for family, path in write_payloads(Path(self.temp_dir.name)).items()}

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_override_is_used(self) -> None:
        loader = PayloadLoader(overrides=self.payloads, probe=FakeProbe())

        self.assertEqual(loader.load("go"), GO_PAYLOAD)

    def test_missing_override_raises(self) -> None:
        self.payloads["tinygo"].unlink()
        loader = PayloadLoader(overrides=self.payloads, probe=FakeProbe())

        with self.assertRaises(PayloadNotFoundError):
            loader.load("tinygo")

    def test_without_override_asks_probe(self) -> None:
        loader = PayloadLoader(probe=FakeProbe())

        with self.assertRaises(PayloadNotFoundError):
            loader.path("go")


class RuntimeInitGeneratorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        base = Path(self.temp_dir.name)
        self.payloads = {family: Path(path) for family, path in write_payloads(base / "payloads").items()}
        self.config = OrchestratorConfig(app_root=base / "app")
        self.modes = ModeRegistry.with_builtins()
        self.generator = RuntimeInitGenerator(
            marker="// wasmforge",
            payloads=PayloadLoader(overrides=self.payloads, probe=FakeProbe()),
            artifact_path=self.config.artifact_path,
            console=quiet_console(),
        )

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_generate_layout(self) -> None:
        text = self.generator.generate(self.modes.get("L"), _StubBuilder())

        lines = text.split("\n")
        self.assertEqual(lines[0], "// wasmforge: mode=L")
        self.assertIn("runtime.scheduleTimeoutEvent", text)
        self.assertLess(text.index("globalThis.Go"), text.index("new Go()"))

    def test_cache_slots_are_per_mode(self) -> None:
        fast = self.generator.generate(self.modes.get("L"), _StubBuilder())
        debug = self.generator.generate(self.modes.get("M"), _StubBuilder())
        size = self.generator.generate(self.modes.get("S"), _StubBuilder())

        self.assertNotEqual(fast, debug)
        self.assertNotEqual(debug, size)
        self.assertEqual(size.split("\n")[0], "// wasmforge: mode=S")

    def test_cached_value_ignores_payload_changes_until_cleared(self) -> None:
        first = self.generator.generate(self.modes.get("L"), _StubBuilder())
        self.payloads["go"].write_text("// replaced\n", encoding="utf-8")

        self.assertEqual(self.generator.generate(self.modes.get("L"), _StubBuilder()), first)
        self.generator.clear_cache()
        self.assertIn("// replaced", self.generator.generate(self.modes.get("L"), _StubBuilder()))

    def test_missing_builder_raises_not_initialized(self) -> None:
        with self.assertRaises(NotInitializedError):
            self.generator.generate(self.modes.get("L"), None)
        text = self.generator.generate(self.modes.get("L"), _StubBuilder())
        self.assertEqual(text.split("\n")[0], "// wasmforge: mode=L")

    def test_write_creates_directories_and_skips_identical_content(self) -> None:
        text = self.generator.generate(self.modes.get("M"), _StubBuilder())

        self.assertTrue(self.generator.write(text))
        self.assertFalse(self.generator.write(text))
        self.assertEqual(self.config.artifact_path.read_text(encoding="utf-8"), text)

    def test_write_replaces_undecodable_artifact(self) -> None:
        self.config.artifact_path.parent.mkdir(parents=True, exist_ok=True)
        self.config.artifact_path.write_bytes(b"\xff\xfe garbage \x80")
        text = self.generator.generate(self.modes.get("L"), _StubBuilder())

        self.assertTrue(self.generator.write(text))
        self.assertEqual(self.config.artifact_path.read_bytes(), text.encode("utf-8"))


if __name__ == "__main__":
    unittest.main()
