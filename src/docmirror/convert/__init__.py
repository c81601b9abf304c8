"""Public APIs for the batch document conversion pipeline."""

from __future__ import annotations

from .aggregator import AggregateReport, aggregate, log_report
from .config import (
    ConfigOverrides,
    ConvertConfig,
    LoadResult,
    load_config,
)
from .converter import (
    ConversionOutcome,
    ConversionStatus,
    Converter,
    PandocConverter,
)
from .discovery import (
    ConvertableSet,
    FileEntry,
    find_by_extension,
    normalize_extension,
)
from .dispatcher import dispatch
from .errors import (
    BinaryNotFoundError,
    ConfigurationError,
    ConversionError,
    ConvertConfigError,
    ConverterNotInstalledError,
    DiscoveryError,
    DocmirrorError,
    OutputDirectoryError,
    ProvisioningError,
    SanitizeError,
)
from .output import ConversionTask, TaskPlan, build_tasks, resolve_output
from .pipeline import RunSummary, convert_tree, run_pipeline
from .provisioning import (
    BinaryLocator,
    scan_path_for_binary,
    unpack_embedded_binary,
)
from .sanitizer import fix_mangled_name, sanitize_tree

__all__ = [
    "AggregateReport",
    "aggregate",
    "log_report",
    "ConfigOverrides",
    "ConvertConfig",
    "LoadResult",
    "load_config",
    "ConversionOutcome",
    "ConversionStatus",
    "Converter",
    "PandocConverter",
    "ConvertableSet",
    "FileEntry",
    "find_by_extension",
    "normalize_extension",
    "dispatch",
    "BinaryNotFoundError",
    "ConfigurationError",
    "ConversionError",
    "ConvertConfigError",
    "ConverterNotInstalledError",
    "DiscoveryError",
    "DocmirrorError",
    "OutputDirectoryError",
    "ProvisioningError",
    "SanitizeError",
    "ConversionTask",
    "TaskPlan",
    "build_tasks",
    "resolve_output",
    "RunSummary",
    "convert_tree",
    "run_pipeline",
    "BinaryLocator",
    "scan_path_for_binary",
    "unpack_embedded_binary",
    "fix_mangled_name",
    "sanitize_tree",
]
