"""Filesystem helpers shared by tests."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Union

TreeValue = Union[str, bytes, "Tree", None]
Tree = Mapping[str, TreeValue]


def build_tree(base: Path, tree: Tree) -> None:
    """Create a directory tree under ``base`` from a nested mapping.

    Strings and bytes become file contents, ``None`` an empty directory and
    nested mappings subdirectories.
    """

    for name, value in tree.items():
        path = base / name
        if isinstance(value, bytes):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(value)
        elif isinstance(value, str):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(value, encoding="utf-8")
        elif isinstance(value, Mapping):
            path.mkdir(parents=True, exist_ok=True)
            build_tree(path, value)  # type: ignore[arg-type]
        elif value is None:
            path.mkdir(parents=True, exist_ok=True)
        else:
            raise TypeError(
                f"Unsupported tree value for {path}: {type(value)!r}"
            )


@dataclass
class WorkspaceBuilder:
    """Tree helper bound to pytest's per-test tmp directory."""

    root: Path

    def create(self, tree: Tree) -> Path:
        build_tree(self.root, tree)
        return self.root

    def names(self) -> set[str]:
        """Every path below ``root`` as a POSIX-style relative string."""

        return {
            path.relative_to(self.root).as_posix()
            for path in self.root.rglob("*")
        }

    def files(self, pattern: str = "**/*") -> Iterator[Path]:
        return (p for p in self.root.glob(pattern) if p.is_file())
