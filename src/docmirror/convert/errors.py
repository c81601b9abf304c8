"""Exception hierarchy for the conversion pipeline."""

from __future__ import annotations

from pathlib import Path


class DocmirrorError(RuntimeError):
    """Base class for errors raised by the conversion pipeline."""


class ConfigurationError(DocmirrorError):
    """Raised when a run cannot start because of its setup."""


class ConvertConfigError(ConfigurationError):
    """Raised when configuration parsing or validation fails."""


class ConverterNotInstalledError(ConfigurationError):
    """Raised when the converter does not answer its availability probe."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Conversion program not installed: {name}")
        self.name = name


class OutputDirectoryError(ConfigurationError):
    """Raised when the output root cannot be created or is not a directory."""


class DiscoveryError(DocmirrorError):
    """Raised when the input tree cannot be walked."""


class SanitizeError(DiscoveryError):
    """Raised when a mangled entry cannot be renamed."""

    def __init__(self, source: Path, target: Path, reason: str) -> None:
        super().__init__(f"Failed to rename {source} -> {target}: {reason}")
        self.source = source
        self.target = target


class ConversionError(DocmirrorError):
    """Raised by a converter when a single document fails to convert."""


class ProvisioningError(DocmirrorError):
    """Raised when the converter executable cannot be provided."""


class BinaryNotFoundError(ProvisioningError):
    """Raised when no converter executable could be located."""


__all__ = [
    "DocmirrorError",
    "ConfigurationError",
    "ConvertConfigError",
    "ConverterNotInstalledError",
    "OutputDirectoryError",
    "DiscoveryError",
    "SanitizeError",
    "ConversionError",
    "ProvisioningError",
    "BinaryNotFoundError",
]
