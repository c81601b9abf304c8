"""In-place repair of entry names that downstream tools mis-parse."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import DiscoveryError, SanitizeError

DANGER_CHARS: tuple[str, ...] = ("$", "~")
REPLACEMENT = "_"


@dataclass
class SanitizeReport:
    """Renames performed by one :func:`sanitize_tree` pass, in order."""

    root: Path
    renamed: list[tuple[Path, Path]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.renamed)


def is_mangled(name: str) -> bool:
    return any(char in name for char in DANGER_CHARS)


def fix_mangled_name(name: str) -> str:
    """Replace every danger character in ``name`` with ``_``."""

    for char in DANGER_CHARS:
        name = name.replace(char, REPLACEMENT)
    return name


def sanitize_tree(root: Path, *, logger: logging.Logger) -> SanitizeReport:
    """Rename every entry below ``root`` whose name holds a danger character.

    Entries are visited bottom-up so a directory is renamed only after its
    children, which keeps every pending path valid. ``root`` itself is never
    renamed. A rename onto an existing entry raises :class:`SanitizeError`.
    """

    report = SanitizeReport(root=root)

    def _on_error(exc: OSError) -> None:
        raise DiscoveryError(
            f"Failed to walk {exc.filename or root}: {exc.strerror or exc}"
        ) from exc

    for dirpath, dirnames, filenames in os.walk(
        root, topdown=False, onerror=_on_error
    ):
        parent = Path(dirpath)
        for name in (*filenames, *dirnames):
            if not is_mangled(name):
                continue
            source = parent / name
            target = parent / fix_mangled_name(name)
            _rename(source, target, logger=logger)
            report.renamed.append((source, target))

    if report.renamed:
        logger.info(
            "Sanitized mangled entries",
            extra={"root": str(root), "renamed_count": report.count},
        )
    return report


def _rename(source: Path, target: Path, *, logger: logging.Logger) -> None:
    if os.path.lexists(target):
        logger.error(
            "Sanitized name collides with an existing entry",
            extra={"source": str(source), "target": str(target)},
        )
        raise SanitizeError(source, target, "target already exists")

    logger.warning(
        "Renaming entry containing unsafe characters",
        extra={"source": str(source), "target": str(target)},
    )
    try:
        source.rename(target)
    except OSError as exc:
        raise SanitizeError(source, target, str(exc)) from exc


__all__ = [
    "DANGER_CHARS",
    "SanitizeReport",
    "fix_mangled_name",
    "is_mangled",
    "sanitize_tree",
]
