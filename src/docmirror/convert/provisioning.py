"""Locating or unpacking the converter executable.

The resolved path is computed once by :class:`BinaryLocator` and handed to
the converter as a plain value.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Optional, Sequence

from .errors import BinaryNotFoundError, ProvisioningError

DEFAULT_CANDIDATES: tuple[str, ...] = ("pandoc", "pandoc-bin", "pandoc-cli")
UNPACK_DIRNAME = "docmirror"


def scan_path_for_binary(
    candidates: Sequence[str] = DEFAULT_CANDIDATES,
    *,
    path_env: Optional[str] = None,
) -> Optional[Path]:
    """Return the first ``candidates`` name found as a file on ``PATH``."""

    raw = os.environ.get("PATH", "") if path_env is None else path_env
    for directory in raw.split(os.pathsep):
        if not directory:
            continue
        for name in candidates:
            candidate = Path(directory) / name
            if candidate.is_file():
                return candidate
    return None


def unpack_embedded_binary(payload: bytes, target: Path) -> Path:
    """Write ``payload`` to ``target`` once and mark it executable.

    An existing file at ``target`` is left untouched.
    """

    if target.exists():
        return target
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        target.write_bytes(payload)
        target.chmod(0o755)
    except OSError as exc:
        raise ProvisioningError(
            f"Could not unpack converter binary to {target}: {exc}"
        ) from exc
    return target


class BinaryLocator:
    """Resolve the converter executable exactly once.

    Lookup order: an explicit ``program`` path, a scan of ``PATH`` for the
    candidate names, :func:`shutil.which`, then the ``embedded_payload`` file
    copied into ``unpack_dir``.
    """

    def __init__(
        self,
        *,
        program: Optional[Path] = None,
        candidates: Sequence[str] = DEFAULT_CANDIDATES,
        embedded_payload: Optional[Path] = None,
        unpack_dir: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._program = program
        self._candidates = tuple(candidates)
        self._embedded_payload = embedded_payload
        self._unpack_dir = unpack_dir or (
            Path(tempfile.gettempdir()) / UNPACK_DIRNAME
        )
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._resolved: Optional[Path] = None

    def resolve(self) -> Path:
        with self._lock:
            if self._resolved is None:
                self._resolved = self._locate()
                self._logger.debug(
                    "Resolved converter binary",
                    extra={"program": str(self._resolved)},
                )
            return self._resolved

    def _locate(self) -> Path:
        if self._program is not None:
            explicit = Path(self._program).expanduser()
            if explicit.is_file():
                return explicit
            found = shutil.which(str(explicit))
            if found:
                return Path(found)
            raise BinaryNotFoundError(
                f"Configured converter program not found: {explicit}"
            )

        scanned = scan_path_for_binary(self._candidates)
        if scanned is not None:
            return scanned

        for name in self._candidates:
            found = shutil.which(name)
            if found:
                return Path(found)

        if self._embedded_payload is not None:
            return self._unpack()

        raise BinaryNotFoundError(
            "Could not find any of {0} on PATH".format(
                ", ".join(self._candidates)
            )
        )

    def _unpack(self) -> Path:
        source = Path(self._embedded_payload).expanduser()
        try:
            payload = source.read_bytes()
        except OSError as exc:
            raise BinaryNotFoundError(
                f"Embedded converter payload unreadable: {source}"
            ) from exc
        target = self._unpack_dir / source.name
        self._logger.info(
            "Unpacking embedded converter",
            extra={"payload": str(source), "target": str(target)},
        )
        return unpack_embedded_binary(payload, target)


__all__ = [
    "BinaryLocator",
    "DEFAULT_CANDIDATES",
    "scan_path_for_binary",
    "unpack_embedded_binary",
]
