"""Reading wasmforge configuration files in TOML, JSON or YAML."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence

import json
import tomllib

import yaml


ConfigLoader = Callable[[Any], Any]

FILE_LOADERS: Dict[str, tuple[str, ConfigLoader]] = {
    ".toml": ("rb", tomllib.load),
    ".json": ("r", json.load),
    ".yaml": ("r", yaml.safe_load),
    ".yml": ("r", yaml.safe_load),
}
"""File suffix to ``(open mode, decoder)``."""


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Decode ``path`` by suffix. An empty document yields an empty mapping."""

    suffix = path.suffix.lower()
    if suffix not in FILE_LOADERS:
        supported = ", ".join(sorted(FILE_LOADERS))
        raise ValueError(f"Unsupported configuration file extension '{suffix}' for {path}. Supported: {supported}")

    mode, decode = FILE_LOADERS[suffix]
    encoding = None if "b" in mode else "utf-8"
    with path.open(mode, encoding=encoding) as handle:
        data = decode(handle)

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")
    return data


def find_config_file(directory: Path, stem: str, *, suffixes: Iterable[str] | None = None) -> Path | None:
    """Return the configuration file named ``stem`` inside ``directory``, if any.

    Only one format per configuration entry is allowed; finding the same stem
    with two suffixes is an error.
    """

    candidates = [
        directory / f"{stem}{suffix.lower()}"
        for suffix in (suffixes or FILE_LOADERS.keys())
    ]
    found = [candidate for candidate in candidates if candidate.is_file()]
    if len(found) > 1:
        names = "' and '".join(path.name for path in found)
        raise ValueError(
            f"Multiple configuration files found for '{stem}': '{names}'. "
            "Only one format per configuration entry is allowed."
        )
    return found[0] if found else None


def merge_mappings(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``overlay`` over ``base``; nested tables merge, everything else is replaced."""

    merged: Dict[str, Any] = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            value = merge_mappings(current, value)
        merged[key] = value
    return merged


def normalize_string_list(value: Any, *, field_name: str | None = None) -> List[str]:
    """Accept a string or a list of strings; return the non-empty stripped entries."""

    label = f"{field_name} " if field_name else ""
    if value is None:
        return []
    if isinstance(value, (str, bytes)):
        entries: Sequence[Any] = [value]
    elif isinstance(value, Sequence):
        entries = value
    else:
        raise TypeError(f"{label}must be a string or sequence of strings")

    result: List[str] = []
    for entry in entries:
        if isinstance(entry, bytes):
            entry = entry.decode("utf-8")
        if not isinstance(entry, str):
            raise TypeError(f"{label}entries must be strings")
        if entry.strip():
            result.append(entry.strip())
    return result


__all__ = [
    "ConfigLoader",
    "FILE_LOADERS",
    "find_config_file",
    "load_config_file",
    "merge_mappings",
    "normalize_string_list",
]
