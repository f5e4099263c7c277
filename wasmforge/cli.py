"""Command line interface for the compilation mode orchestrator."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable, List
import sys

from core.command_runner import RecordingCommandRunner
from core.console import Console

from .builder import default_builder_factory
from .config import load_config
from .errors import CompilationError, EntryFileMissingError, Progress, Severity, WasmForgeError
from .ide_settings import write_ide_settings
from .orchestrator import Orchestrator
from .tools import format_size, tool_definitions


def _print_progress(progress: Progress) -> None:
    if progress.severity is Severity.ERROR:
        print(f"Error: {progress.message}")
    elif progress.severity is Severity.WARNING:
        print(f"Warning: {progress.message}")
    else:
        print(progress.message)


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(description="Compile Go sources to WebAssembly with switchable toolchain modes")
    parser.add_argument("--root", default=".", help="Application root directory (default: current directory)")
    parser.add_argument(
        "--config",
        dest="config_files",
        action="append",
        default=[],
        help="Additional configuration file (TOML, JSON or YAML); may be repeated",
    )
    parser.add_argument(
        "--log-level",
        default="warning",
        choices=sorted(Console.LEVELS, key=Console.LEVELS.__getitem__),
        help="Console verbosity (default: warning)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show the detected project state and current mode")

    mode_parser = subparsers.add_parser("mode", help="Switch the compilation mode and rebuild")
    mode_parser.add_argument("token", help="Mode token, e.g. L, M or S")

    build_parser = subparsers.add_parser("build", help="Compile the entry file with the current mode")
    build_parser.add_argument("--dry-run", action="store_true", help="Print the compiler command without running it")

    js_parser = subparsers.add_parser("js", help="Print the runtime bootstrap script for the current mode")
    js_parser.add_argument("--write", action="store_true", help="Write the script to its output path instead")

    subparsers.add_parser("scaffold", help="Create the entry file from the bundled template if it is missing")
    subparsers.add_parser("ide", help="Configure .vscode/settings.json for WebAssembly development")
    subparsers.add_parser("tools", help="List the tools exposed to agent integrations")

    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    root = Path(args.root)
    dry_run = getattr(args, "dry_run", False)
    console = Console(args.log_level, dry_run)

    try:
        config = load_config(root, [Path(entry) for entry in args.config_files])
    except (OSError, TypeError, ValueError) as exc:
        print(f"Error: {exc}")
        return 2

    if args.command == "ide":
        return 0 if write_ide_settings(root, console=console) else 1

    recorder: RecordingCommandRunner | None = None
    builder_factory = None
    if dry_run:
        recorder = RecordingCommandRunner()
        builder_factory = default_builder_factory(console=console, runner_factory=lambda: recorder)

    orchestrator = Orchestrator(config, console=console, builder_factory=builder_factory, dry_run=dry_run)
    try:
        if args.command == "status":
            return _handle_status(orchestrator)
        if args.command == "mode":
            return _handle_mode(orchestrator, args.token)
        if args.command == "build":
            return _handle_build(orchestrator, recorder)
        if args.command == "js":
            return _handle_js(orchestrator, write=args.write)
        if args.command == "scaffold":
            return _handle_scaffold(orchestrator)
        if args.command == "tools":
            return _handle_tools(orchestrator)
    finally:
        orchestrator.close()
    raise ValueError(f"Unknown command: {args.command}")


def _handle_status(orchestrator: Orchestrator) -> int:
    definition = orchestrator.current_definition()
    size = orchestrator.output_size()
    rows: List[tuple[str, str]] = [
        ("Project", "yes" if orchestrator.is_target_project else "no"),
        ("Detected from", orchestrator.last_detection.source),
        ("Mode", f"{definition.token} ({definition.role})"),
        ("Toolchain", definition.command),
        ("TinyGo installed", "yes" if orchestrator.secondary_toolchain_installed else "no"),
        ("Output", orchestrator.output_relative_path()),
        ("Output size", format_size(size) if size is not None else "-"),
        ("Unobserved", ", ".join(orchestrator.unobserved_files())),
    ]
    width = max(len(label) for label, _ in rows)
    for label, value in rows:
        print(f"{label.ljust(width)}  {value}")
    return 0


def _handle_mode(orchestrator: Orchestrator, token: str) -> int:
    outcome = orchestrator.change_mode(token, _print_progress)
    if outcome.failed:
        return 1
    if not orchestrator.write_runtime_init_script():
        reason = "" if orchestrator.is_target_project else "; no WebAssembly project detected yet"
        print(f"Note: mode {orchestrator.current_mode()} was not saved to {orchestrator.config.js_file_name}{reason}")
    return 0


def _handle_build(orchestrator: Orchestrator, recorder: RecordingCommandRunner | None) -> int:
    try:
        output = orchestrator.recompile()
    except (CompilationError, EntryFileMissingError) as exc:
        print(f"Error: {exc}")
        return 1

    if recorder is not None:
        for line in recorder.iter_formatted(workspace=orchestrator.config.app_root):
            print(line)
        return 0

    orchestrator.write_runtime_init_script()
    print(f"Built {orchestrator.config.relative_to_root(output)} in mode {orchestrator.current_mode()}")
    return 0


def _handle_js(orchestrator: Orchestrator, *, write: bool) -> int:
    if not orchestrator.is_target_project:
        print("No WebAssembly project detected")
        return 1
    if write:
        return 0 if orchestrator.write_runtime_init_script() else 1
    try:
        script = orchestrator.generate_runtime_init_script()
    except (OSError, WasmForgeError) as exc:
        print(f"Error: {exc}")
        return 1
    sys.stdout.write(script)
    return 0


def _handle_scaffold(orchestrator: Orchestrator) -> int:
    created = orchestrator.scaffold_entry_file()
    if created is None:
        print(f"{orchestrator.config.entry_file} already exists")
    else:
        print(f"Created {orchestrator.config.relative_to_root(created)}")
    return 0


def _handle_tools(orchestrator: Orchestrator) -> int:
    for tool in tool_definitions(orchestrator):
        print(f"{tool.name}: {tool.description}")
        for parameter in tool.parameters:
            required = "required" if parameter.required else "optional"
            choices = f" [{', '.join(parameter.enum_values)}]" if parameter.enum_values else ""
            print(f"  {parameter.name} ({parameter.type}, {required}){choices}: {parameter.description}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
