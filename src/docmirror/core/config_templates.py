"""Packaged configuration templates for docmirror commands."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path

from .config import TomlConfigError, write_toml_template

__all__ = [
    "ConfigTemplate",
    "ConfigTemplateError",
    "get_template",
]


class ConfigTemplateError(RuntimeError):
    """Raised when a template is unknown or cannot be written."""


@dataclass(frozen=True)
class ConfigTemplate:
    """A TOML template shipped as package data."""

    name: str
    filename: str
    package: str

    def read_text(self) -> str:
        try:
            resource = resources.files(self.package).joinpath(self.filename)
            return resource.read_text(encoding="utf-8")
        except FileNotFoundError as exc:  # pragma: no cover - package state
            raise ConfigTemplateError(
                f"Template '{self.name}' resource not found."
            ) from exc

    def write(self, path: Path, *, overwrite: bool = False) -> Path:
        """Copy the template to ``path``."""

        try:
            return write_toml_template(
                path,
                template=self.read_text(),
                overwrite=overwrite,
            )
        except TomlConfigError as exc:
            raise ConfigTemplateError(str(exc)) from exc


_TEMPLATES: dict[str, ConfigTemplate] = {
    "convert": ConfigTemplate(
        name="convert",
        filename="template.toml",
        package="docmirror.convert",
    ),
}


def get_template(name: str) -> ConfigTemplate:
    """Return the template registered as ``name``."""

    try:
        return _TEMPLATES[name]
    except KeyError as exc:
        raise ConfigTemplateError(f"Unknown config template '{name}'.") from exc
