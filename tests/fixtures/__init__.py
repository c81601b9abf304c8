"""Shared fixtures and doubles for the docmirror test suite."""

from .converters import RecordingConverter  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "RecordingConverter",
    "WorkspaceBuilder",
    "build_tree",
]
