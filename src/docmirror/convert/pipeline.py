"""Discovery, resolution, dispatch and aggregation wired into one run."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .aggregator import AggregateReport, aggregate, log_report
from .converter import ConversionOutcome, Converter
from .discovery import find_by_extension
from .dispatcher import dispatch
from .errors import OutputDirectoryError
from .output import TaskPlan, build_tasks


@dataclass(frozen=True)
class RunSummary:
    """Everything a caller needs to report on a finished run."""

    root: Path
    output_dir: Optional[Path]
    discovered: int
    plan: TaskPlan
    outcomes: tuple[ConversionOutcome, ...]
    report: AggregateReport

    @property
    def failures(self) -> tuple[ConversionOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.succeeded)

    @property
    def exit_code(self) -> int:
        return self.report.exit_code


async def convert_tree(
    root: Path,
    *,
    input_extension: str,
    output_extension: str,
    converter: Converter,
    logger: logging.Logger,
    output_dir: Optional[Path] = None,
    sanitize: bool = True,
    timeout: Optional[float] = None,
) -> RunSummary:
    """Convert every ``*.<input_extension>`` file below ``root``.

    Raises :class:`~docmirror.convert.errors.DiscoveryError` when the tree
    cannot be sanitized or walked and
    :class:`~docmirror.convert.errors.ConverterNotInstalledError` when the
    converter is unavailable. Per-file failures only show up in the report.
    """

    logger.info(
        "Starting conversion run",
        extra={
            "root": str(root),
            "input_extension": input_extension,
            "output_extension": output_extension,
            "output_dir": str(output_dir) if output_dir else None,
        },
    )

    convertables = find_by_extension(
        root, input_extension, logger=logger, sanitize=sanitize
    )

    if output_dir is not None:
        output_dir = Path(output_dir).expanduser().absolute()
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputDirectoryError(
                f"Cannot use output directory {output_dir}: {exc}"
            ) from exc

    plan = build_tasks(
        convertables, output_extension, output_dir, logger=logger
    )
    logger.info(
        "Prepared conversion tasks",
        extra={
            "task_count": len(plan.tasks),
            "skipped_count": len(plan.skipped),
            "unresolved_count": len(plan.failures),
        },
    )

    dispatched = await dispatch(
        plan.tasks, converter, logger=logger, timeout=timeout
    )
    outcomes = (*plan.failures, *dispatched)
    report = aggregate(outcomes, skipped=len(plan.skipped))
    log_report(report, logger)

    return RunSummary(
        root=convertables.root,
        output_dir=output_dir,
        discovered=len(convertables),
        plan=plan,
        outcomes=outcomes,
        report=report,
    )


def run_pipeline(root: Path, **kwargs) -> RunSummary:
    """Blocking wrapper around :func:`convert_tree`."""

    return asyncio.run(convert_tree(root, **kwargs))


__all__ = ["RunSummary", "convert_tree", "run_pipeline"]
