"""Discovery of convertible files below a root directory."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Iterator

from .errors import DiscoveryError
from .sanitizer import sanitize_tree


@dataclass(frozen=True)
class FileEntry:
    """A discovered file expressed relative to the discovery root."""

    absolute_path: Path
    relative_path: PurePath
    depth: int

    def __post_init__(self) -> None:
        parts = self.relative_path.parts
        if not parts or self.relative_path.is_absolute() or ".." in parts:
            raise DiscoveryError(
                f"Entry escapes the discovery root: {self.relative_path}"
            )

    @classmethod
    def from_path(cls, root: Path, path: Path) -> "FileEntry":
        try:
            relative = path.relative_to(root)
        except ValueError as exc:
            raise DiscoveryError(
                f"{path} is not located below {root}"
            ) from exc
        return cls(
            absolute_path=path,
            relative_path=relative,
            depth=len(path.parts) - len(root.parts),
        )


@dataclass
class ConvertableSet:
    """Files collected by one discovery walk."""

    root: Path
    files: list[FileEntry] = field(default_factory=list)

    def add_file(self, path: Path) -> FileEntry:
        entry = FileEntry.from_path(self.root, path)
        self.files.append(entry)
        return entry

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self) -> Iterator[FileEntry]:
        return iter(self.files)


def normalize_extension(extension: str) -> str:
    """Strip whitespace and one leading dot: ``".docx"`` -> ``"docx"``."""

    candidate = extension.strip()
    if candidate.startswith("."):
        candidate = candidate[1:]
    if not candidate:
        raise DiscoveryError(f"Invalid extension: {extension!r}")
    return candidate


def find_by_extension(
    root: Path,
    extension: str,
    *,
    logger: logging.Logger,
    sanitize: bool = True,
) -> ConvertableSet:
    """Sanitize ``root`` and collect every regular ``*.<extension>`` file.

    Matching is case-sensitive. Entries that cannot be stat'd or whose names
    are not valid UTF-8 are skipped with a warning.
    """

    ext = normalize_extension(extension)
    base = _validate_root(root)

    logger.debug(
        "Searching for files",
        extra={"root": str(base), "extension": ext},
    )

    if sanitize:
        sanitize_tree(base, logger=logger)

    matches: list[Path] = []
    for dirpath, _, filenames in os.walk(base, onerror=_raise_walk_error):
        for name in filenames:
            if not _matches_extension(name, ext):
                continue
            candidate = Path(dirpath) / name
            if _is_convertible(candidate, logger=logger):
                matches.append(candidate)

    convertables = ConvertableSet(root=base)
    for path in sorted(matches):
        convertables.add_file(path)

    logger.info(
        "Discovered files to convert",
        extra={
            "root": str(base),
            "extension": ext,
            "file_count": len(convertables),
        },
    )
    return convertables


def _validate_root(root: Path) -> Path:
    base = Path(root).expanduser().resolve()
    if not base.exists():
        raise DiscoveryError(f"Input directory not found: {base}")
    if not base.is_dir():
        raise DiscoveryError(f"Input path is not a directory: {base}")
    return base


def _raise_walk_error(exc: OSError) -> None:
    raise DiscoveryError(
        f"Failed to read directory {exc.filename}: {exc.strerror or exc}"
    ) from exc


def _matches_extension(name: str, extension: str) -> bool:
    suffix = f".{extension}"
    return name.endswith(suffix) and len(name) > len(suffix)


def _is_convertible(path: Path, *, logger: logging.Logger) -> bool:
    try:
        str(path).encode("utf-8")
    except UnicodeEncodeError:
        logger.warning(
            "Skipping file with a non UTF-8 name",
            extra={"path": repr(path)},
        )
        return False

    try:
        mode = path.stat().st_mode
    except OSError as exc:
        logger.warning(
            "Skipping file that cannot be stat'd",
            extra={"path": str(path), "reason": str(exc)},
        )
        return False
    return stat.S_ISREG(mode)


__all__ = [
    "ConvertableSet",
    "FileEntry",
    "find_by_extension",
    "normalize_extension",
]
