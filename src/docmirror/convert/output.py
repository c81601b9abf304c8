"""Output path resolution for discovered files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterable, Optional

from .converter import ConversionOutcome, ConversionStatus
from .discovery import FileEntry, normalize_extension


@dataclass(frozen=True)
class ConversionTask:
    """One input document and the path its conversion is written to."""

    input: Path
    output: Path
    relative_path: PurePath


@dataclass(frozen=True)
class Resolution:
    entry: FileEntry
    output: Path
    skipped: bool = False

    def to_task(self) -> ConversionTask:
        return ConversionTask(
            input=self.entry.absolute_path,
            output=self.output,
            relative_path=self.entry.relative_path,
        )


@dataclass(frozen=True)
class TaskPlan:
    """Tasks to dispatch plus the entries that never reach the converter."""

    tasks: tuple[ConversionTask, ...]
    skipped: tuple[Resolution, ...]
    failures: tuple[ConversionOutcome, ...] = ()


def resolve_output(
    entry: FileEntry,
    target_extension: str,
    output_root: Optional[Path] = None,
) -> Resolution:
    """Return where ``entry`` converts to, or a skip if that path exists.

    Without ``output_root`` the output sits next to the input. With it, the
    entry's path relative to the discovery root is reproduced below
    ``output_root`` and missing parent directories are created.
    """

    suffix = "." + normalize_extension(target_extension)
    if output_root is None:
        output = entry.absolute_path.with_suffix(suffix)
    else:
        output = Path(output_root) / entry.relative_path.with_suffix(suffix)
        # Parents may be created concurrently by sibling entries.
        output.parent.mkdir(parents=True, exist_ok=True)

    return Resolution(entry=entry, output=output, skipped=output.exists())


def build_tasks(
    entries: Iterable[FileEntry],
    target_extension: str,
    output_root: Optional[Path] = None,
    *,
    logger: logging.Logger,
) -> TaskPlan:
    """Resolve every entry and split the results into tasks and skips."""

    tasks: list[ConversionTask] = []
    skipped: list[Resolution] = []
    failures: list[ConversionOutcome] = []

    for entry in entries:
        try:
            resolution = resolve_output(entry, target_extension, output_root)
        except OSError as exc:
            logger.error(
                "Failed to prepare output directory",
                extra={"source": str(entry.absolute_path), "reason": str(exc)},
            )
            failures.append(
                ConversionOutcome(
                    source=entry.absolute_path,
                    status=ConversionStatus.TASK_FAILURE,
                    reason=f"Could not prepare output directory: {exc}",
                    error=exc,
                )
            )
            continue

        if resolution.skipped:
            logger.warning(
                "Output already exists, skipping",
                extra={
                    "source": str(entry.absolute_path),
                    "output_path": str(resolution.output),
                },
            )
            skipped.append(resolution)
            continue
        tasks.append(resolution.to_task())

    return TaskPlan(
        tasks=tuple(tasks),
        skipped=tuple(skipped),
        failures=tuple(failures),
    )


__all__ = [
    "ConversionTask",
    "Resolution",
    "TaskPlan",
    "build_tasks",
    "resolve_output",
]
