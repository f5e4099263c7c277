"""First-run entry file generation from the bundled template."""
from __future__ import annotations

from importlib import resources
from pathlib import Path

from core.console import Console

from .config import OrchestratorConfig

TEMPLATE_NAME = "basic_client.go.tmpl"


def load_template(name: str = TEMPLATE_NAME) -> str:
    return resources.files(__package__).joinpath("templates", name).read_text(encoding="utf-8")


def write_default_entry_file(config: OrchestratorConfig, *, console: Console | None = None) -> Path | None:
    """Create the entry file from the template. Never overwrites an existing file.

    Returns the created path, or ``None`` when a file was already present.
    """
    console = console or Console()
    target = config.entry_path
    if target.exists():
        console.debug(f"{config.relative_to_root(target)} already exists, skipping generation")
        return None

    content = load_template()
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("x", encoding="utf-8", newline="\n") as handle:
        handle.write(content)
    console.info(f"Generated {config.relative_to_root(target)}")
    return target


__all__ = ["TEMPLATE_NAME", "load_template", "write_default_entry_file"]
