"""Definition store: the versioned ruleset documents on disk.

A store is either a directory of ``*.json`` files (one ruleset each,
enumerated in filename order) or a single JSON file.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rulesetbot.errors import DefinitionError


@dataclass
class DefinitionDocument:
    """One decoded definition file."""

    path: Path
    data: Any


class DefinitionStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def paths(self) -> list[Path]:
        """Return the definition files in enumeration order."""
        if self.path.is_file():
            return [self.path]
        if not self.path.is_dir():
            raise DefinitionError(str(self.path), ["definition store does not exist"])
        return sorted(
            p for p in self.path.iterdir()
            if p.is_file() and p.suffix == ".json" and not p.name.startswith(".")
        )

    def documents(self) -> list[DefinitionDocument]:
        """Read and JSON-decode every definition; any failure fails the whole read."""
        return [self.read(path) for path in self.paths()]

    @staticmethod
    def read(path: Path) -> DefinitionDocument:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise DefinitionError(str(path), [f"cannot read file: {exc}"]) from exc
        except json.JSONDecodeError as exc:
            raise DefinitionError(str(path), [f"invalid JSON: {exc}"]) from exc
        return DefinitionDocument(path=path, data=data)
