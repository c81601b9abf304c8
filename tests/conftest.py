from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from docmirror.core import workspace as workspace_mod  # noqa: E402
from fixtures import RecordingConverter, WorkspaceBuilder  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch) -> Iterator[Path]:
    """Keep config and log files out of the real home directory."""

    home = tmp_path / "docmirror-home"
    monkeypatch.setenv(workspace_mod.WORKSPACE_ENV, str(home))
    for key in ("DOCMIRROR_CONFIG", "DOCMIRROR_OUTPUT_DIR", "DOCMIRROR_PROGRAM"):
        monkeypatch.delenv(key, raising=False)
    yield home


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Tree builder rooted at a fresh ``docs`` directory."""

    root = tmp_path / "docs"
    root.mkdir()
    return WorkspaceBuilder(root)


@pytest.fixture(name="logger")
def _logger_fixture() -> logging.Logger:
    logger = logging.getLogger("docmirror.tests")
    logger.handlers.clear()
    logger.propagate = False
    logger.addHandler(logging.NullHandler())
    return logger


@pytest.fixture
def converter() -> RecordingConverter:
    return RecordingConverter()
