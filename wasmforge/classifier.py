"""Decides whether a changed file should trigger recompilation."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FileClassifier:
    """Name-only relevance rule.

    The verdict depends on the file name alone: the entry file and files with
    the always-compile suffix are relevant wherever they live.
    """

    entry_file: str
    always_compile_suffix: str = ".wasm.go"

    def classify(self, name: str, path: str = "") -> bool:
        if name == self.entry_file:
            return True
        if self.always_compile_suffix and name.endswith(self.always_compile_suffix):
            return True
        return False

    __call__ = classify


__all__ = ["FileClassifier"]
