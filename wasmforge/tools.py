"""Tool descriptions for agent integrations driving the orchestrator."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping

from .errors import CompilationError, EntryFileMissingError, Progress, ProgressCallback
from .orchestrator import Orchestrator

ToolExecutor = Callable[[Mapping[str, Any], ProgressCallback], None]


@dataclass(slots=True)
class ParameterMetadata:
    name: str
    description: str
    type: str = "string"
    required: bool = False
    enum_values: List[str] = field(default_factory=list)
    default: Any = None


@dataclass(slots=True)
class ToolMetadata:
    name: str
    description: str
    execute: ToolExecutor
    parameters: List[ParameterMetadata] = field(default_factory=list)


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def tool_definitions(orchestrator: Orchestrator) -> List[ToolMetadata]:
    modes = orchestrator.modes
    tokens = list(modes.tokens())
    summary = " ".join(f"{definition.token}={definition.description}." for definition in modes.definitions())

    def set_mode(args: Mapping[str, Any], progress: ProgressCallback) -> None:
        if "mode" not in args:
            raise ValueError(f"missing required parameter 'mode'. Use one of: {', '.join(tokens)}")
        mode = args["mode"]
        if not isinstance(mode, str):
            raise ValueError(f"parameter 'mode' must be a string ({', '.join(tokens)})")
        orchestrator.change_mode(mode, progress)

    def recompile(args: Mapping[str, Any], progress: ProgressCallback) -> None:
        try:
            orchestrator.recompile()
        except (CompilationError, EntryFileMissingError) as exc:
            progress(Progress.error(exc))
            return
        orchestrator.write_runtime_init_script()
        progress(Progress.success(f"Recompiled in mode {orchestrator.current_mode()}"))

    def get_size(args: Mapping[str, Any], progress: ProgressCallback) -> None:
        size = orchestrator.output_size()
        output = orchestrator.output_relative_path()
        if size is None:
            progress(Progress.warning(f"{output} has not been built yet"))
            return
        progress(
            Progress.success(f"{output}: {format_size(size)} ({size} bytes) in mode {orchestrator.current_mode()}")
        )

    return [
        ToolMetadata(
            name="wasm_set_mode",
            description=f"Change the WebAssembly compilation mode. {summary}",
            execute=set_mode,
            parameters=[
                ParameterMetadata(
                    name="mode",
                    description=f"Compilation mode: {', '.join(tokens)}",
                    required=True,
                    enum_values=tokens,
                )
            ],
        ),
        ToolMetadata(
            name="wasm_recompile",
            description="Recompile the entry file immediately with the current mode.",
            execute=recompile,
        ),
        ToolMetadata(
            name="wasm_get_size",
            description="Report the size of the current WebAssembly binary to compare size tradeoffs between modes.",
            execute=get_size,
        ),
    ]


__all__ = ["ParameterMetadata", "ToolMetadata", "format_size", "tool_definitions"]
