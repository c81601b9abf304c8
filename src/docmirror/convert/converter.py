"""Converter capability and the pandoc-backed implementation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .errors import ConversionError


class ConversionStatus(Enum):
    """Terminal state of one dispatched conversion."""

    SUCCESS = "success"
    TASK_FAILURE = "task_failure"
    INFRASTRUCTURE_FAILURE = "infrastructure_failure"


@dataclass(frozen=True)
class ConversionOutcome:
    """Result of one dispatched conversion."""

    source: Path
    status: ConversionStatus
    output_path: Optional[Path] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.status is ConversionStatus.SUCCESS


@runtime_checkable
class Converter(Protocol):
    """External document conversion capability.

    Implementations are shared by every concurrent task and must tolerate
    concurrent ``convert`` calls.
    """

    async def convert(self, input: Path, output: Path) -> None:
        """Convert ``input`` into ``output``; raise ConversionError on failure."""

    async def check_installed(self) -> bool:
        """Return whether the converter can run. Never raises."""

    def name(self) -> str:
        """Human readable identifier, usually the executable path."""


class PandocConverter:
    """Run the pandoc executable at ``program`` once per document.

    Embedded media is extracted into a folder named after the input file,
    next to the input.
    """

    def __init__(
        self, program: Path, *, logger: logging.Logger | None = None
    ) -> None:
        self._program = Path(program)
        self._logger = logger or logging.getLogger(__name__)

    @property
    def program(self) -> Path:
        return self._program

    def name(self) -> str:
        return str(self._program)

    def command_for(self, input: Path, output: Path) -> list[str]:
        media_dir = input.parent / input.stem
        return [
            str(self._program),
            "--extract-media",
            str(media_dir),
            "-s",
            str(input),
            "-o",
            str(output),
        ]

    async def convert(self, input: Path, output: Path) -> None:
        command = self.command_for(input, output)
        self._logger.debug(
            "Running converter",
            extra={"source": str(input), "output_path": str(output)},
        )
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ConversionError(
                f"Failed to run {self.name()} for {input}: {exc}"
            ) from exc

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            await self._abandon(process, output)
            raise
        if process.returncode != 0:
            diagnostics = stderr.decode("utf-8", errors="replace").strip()
            raise ConversionError(
                "Failed to convert {0} to {1} (exit status {2}): {3}".format(
                    input, output, process.returncode, diagnostics
                )
            )

    async def _abandon(
        self, process: asyncio.subprocess.Process, output: Path
    ) -> None:
        """Kill and reap a cancelled run and drop any partial output."""

        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()
        self._logger.warning(
            "Converter run cancelled",
            extra={"program": self.name(), "output_path": str(output)},
        )
        output.unlink(missing_ok=True)

    async def check_installed(self) -> bool:
        try:
            process = await asyncio.create_subprocess_exec(
                str(self._program),
                "--version",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            self._logger.warning(
                "Converter is not installed",
                extra={"program": self.name(), "reason": str(exc)},
            )
            return False
        returncode = await process.wait()
        return returncode == 0


__all__ = [
    "ConversionOutcome",
    "ConversionStatus",
    "Converter",
    "PandocConverter",
]
