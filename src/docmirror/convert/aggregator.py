"""Aggregation of conversion outcomes into a run report."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .converter import ConversionOutcome, ConversionStatus


@dataclass(frozen=True)
class AggregateReport:
    """Counts for one run. Skipped files are not part of ``total``."""

    total: int
    succeeded: int
    task_failures: int
    infrastructure_failures: int
    skipped: int = 0

    @property
    def failed(self) -> int:
        return self.task_failures + self.infrastructure_failures

    @property
    def success_rate(self) -> float:
        # An empty run has nothing that failed.
        if self.total == 0:
            return 100.0
        return self.succeeded * 100 / self.total

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


def aggregate(
    outcomes: Iterable[ConversionOutcome], *, skipped: int = 0
) -> AggregateReport:
    """Count ``outcomes`` by status. Never raises for failed outcomes."""

    counts = {status: 0 for status in ConversionStatus}
    for outcome in outcomes:
        counts[outcome.status] += 1

    return AggregateReport(
        total=sum(counts.values()),
        succeeded=counts[ConversionStatus.SUCCESS],
        task_failures=counts[ConversionStatus.TASK_FAILURE],
        infrastructure_failures=counts[
            ConversionStatus.INFRASTRUCTURE_FAILURE
        ],
        skipped=skipped,
    )


def log_report(report: AggregateReport, logger: logging.Logger) -> None:
    logger.info(
        "Completed conversion run",
        extra={
            "total": report.total,
            "succeeded": report.succeeded,
            "failed": report.failed,
            "task_failures": report.task_failures,
            "infrastructure_failures": report.infrastructure_failures,
            "skipped": report.skipped,
            "success_rate": round(report.success_rate, 2),
        },
    )


__all__ = ["AggregateReport", "aggregate", "log_report"]
