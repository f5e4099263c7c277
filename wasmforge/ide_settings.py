"""Editor configuration so the Go language server resolves ``syscall/js``."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict
import json
import platform

from core.command_runner import CommandError, CommandRunner, SubprocessCommandRunner
from core.console import Console

SETTINGS_DIR = ".vscode"
SETTINGS_FILE = "settings.json"


def _load_settings(path: Path, console: Console) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        console.warning(f"Replacing unreadable {path}: {exc}")
        return {}
    if not isinstance(data, dict):
        console.warning(f"Replacing {path}: root is not an object")
        return {}
    return data


def apply_wasm_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``settings`` with the language server pinned to ``GOOS=js GOARCH=wasm``."""
    updated = dict(settings)
    gopls = updated.get("gopls")
    gopls = dict(gopls) if isinstance(gopls, dict) else {}
    env = gopls.get("env")
    env = dict(env) if isinstance(env, dict) else {}
    env.update({"GOOS": "js", "GOARCH": "wasm"})
    gopls["env"] = env
    updated["gopls"] = gopls
    alternate = updated.get("go.alternateTools")
    alternate = dict(alternate) if isinstance(alternate, dict) else {}
    alternate.setdefault("go", "go")
    updated["go.alternateTools"] = alternate
    return updated


def write_ide_settings(
    root: Path,
    *,
    console: Console | None = None,
    runner: CommandRunner | None = None,
) -> Path | None:
    """Merge WebAssembly settings into ``.vscode/settings.json`` under ``root``.

    Failures are reported as warnings; the editor configuration is optional.
    """
    console = console or Console()
    settings_dir = root / SETTINGS_DIR
    try:
        settings_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        console.warning(f"Could not create {settings_dir}: {exc}")
        return None

    if platform.system() == "Windows":
        _hide_directory(settings_dir, console=console, runner=runner or SubprocessCommandRunner())

    path = settings_dir / SETTINGS_FILE
    settings = apply_wasm_settings(_load_settings(path, console))
    try:
        path.write_text(json.dumps(settings, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        console.warning(f"Could not write {path}: {exc}")
        return None
    console.info(f"Updated {path}")
    return path


def _hide_directory(path: Path, *, console: Console, runner: CommandRunner) -> None:
    try:
        runner.run(["cmd", "/c", "attrib", "+h", str(path)], timeout=10)
    except (CommandError, OSError) as exc:
        console.warning(f"Could not hide {path}: {exc}")


__all__ = ["apply_wasm_settings", "write_ide_settings"]
