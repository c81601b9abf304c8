"""Concurrent dispatch of conversion tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from .converter import ConversionOutcome, ConversionStatus, Converter
from .errors import ConversionError, ConverterNotInstalledError
from .output import ConversionTask


async def dispatch(
    tasks: Sequence[ConversionTask],
    converter: Converter,
    *,
    logger: logging.Logger,
    timeout: Optional[float] = None,
) -> list[ConversionOutcome]:
    """Run every task concurrently and return one outcome per task.

    The converter must pass its availability probe before any task starts;
    otherwise :class:`ConverterNotInstalledError` is raised and nothing is
    converted. Each task runs in its own asyncio task and all of them are
    awaited, so one failing task never cancels or hides another. Outcomes
    are returned in the order of ``tasks``.
    """

    if not await converter.check_installed():
        logger.error(
            "Converter is not available",
            extra={"program": converter.name()},
        )
        raise ConverterNotInstalledError(converter.name())

    logger.info(
        "Running conversion tasks",
        extra={"task_count": len(tasks), "program": converter.name()},
    )

    running = [
        asyncio.ensure_future(
            _run_task(task, converter, logger=logger, timeout=timeout)
        )
        for task in tasks
    ]
    results = await asyncio.gather(*running, return_exceptions=True)

    outcomes: list[ConversionOutcome] = []
    for task, result in zip(tasks, results):
        if isinstance(result, ConversionOutcome):
            outcomes.append(result)
            continue
        reason = _describe_abort(result)
        logger.error(
            "Conversion task aborted",
            extra={"source": str(task.input), "reason": reason},
        )
        outcomes.append(
            ConversionOutcome(
                source=task.input,
                status=ConversionStatus.INFRASTRUCTURE_FAILURE,
                output_path=task.output,
                reason=reason,
                error=result,
            )
        )
    return outcomes


async def _run_task(
    task: ConversionTask,
    converter: Converter,
    *,
    logger: logging.Logger,
    timeout: Optional[float],
) -> ConversionOutcome:
    try:
        if timeout is None:
            await converter.convert(task.input, task.output)
        else:
            await asyncio.wait_for(
                converter.convert(task.input, task.output), timeout
            )
    except ConversionError as exc:
        logger.error(
            "Failed to convert document",
            extra={"source": str(task.input), "reason": str(exc)},
        )
        return ConversionOutcome(
            source=task.input,
            status=ConversionStatus.TASK_FAILURE,
            output_path=task.output,
            reason=str(exc),
            error=exc,
        )

    logger.info(
        "Converted document",
        extra={"source": str(task.input), "output_path": str(task.output)},
    )
    return ConversionOutcome(
        source=task.input,
        status=ConversionStatus.SUCCESS,
        output_path=task.output,
    )


def _describe_abort(error: BaseException) -> str:
    if isinstance(error, asyncio.CancelledError):
        return "Task was cancelled before completing."
    if isinstance(error, asyncio.TimeoutError):
        return "Task exceeded its timeout."
    return f"{type(error).__name__}: {error}"


__all__ = ["dispatch"]
