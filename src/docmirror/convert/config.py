"""Configuration loader for conversion runs."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from docmirror.core import config as core_config
from docmirror.core import workspace as workspace_mod

from .errors import ConvertConfigError

CONFIG_FILENAME = "convert.toml"
CONFIG_ENV = "DOCMIRROR_CONFIG"
ENV_PREFIX = "DOCMIRROR_"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class ConvertConfig:
    """Fully resolved settings for one conversion run."""

    input_extension: str
    output_extension: str
    output_dir: Optional[Path]
    program: Optional[Path]
    embedded_payload: Optional[Path]
    timeout: Optional[float]
    sanitize: bool
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """Values taken from the command line; ``None`` means not given."""

    input_extension: Optional[str] = None
    output_extension: Optional[str] = None
    output_dir: Optional[Path] = None
    program: Optional[Path] = None
    timeout: Optional[float] = None
    sanitize: Optional[bool] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: ConvertConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load settings with precedence CLI > environment > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise ConvertConfigError(str(exc)) from exc

    requested = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested.exists():
        loaded_path = requested
        try:
            core_config.merge_defaults(
                table, core_config.load_toml(requested)
            )
        except core_config.TomlConfigError as exc:
            raise ConvertConfigError(str(exc)) from exc
    elif config_path is not None or env_map.get(CONFIG_ENV, "").strip():
        raise ConvertConfigError(f"Config file not found: {requested}")

    converter = table["converter"]
    execution = table["execution"]

    config = ConvertConfig(
        input_extension=_require_extension(
            "execution.input_extension",
            _pick_first(
                overrides.input_extension,
                _env_string(env_map, "INPUT_EXTENSION"),
                execution["input_extension"],
            ),
        ),
        output_extension=_require_extension(
            "execution.output_extension",
            _pick_first(
                overrides.output_extension,
                _env_string(env_map, "OUTPUT_EXTENSION"),
                execution["output_extension"],
            ),
        ),
        output_dir=_optional_path(
            "paths.output_dir",
            _pick_first(
                overrides.output_dir,
                _env_string(env_map, "OUTPUT_DIR"),
                table["paths"]["output_dir"],
            ),
        ),
        program=_optional_path(
            "converter.program",
            _pick_first(
                overrides.program,
                _env_string(env_map, "PROGRAM"),
                converter["program"],
            ),
        ),
        embedded_payload=_optional_path(
            "converter.embedded_payload",
            _pick_first(
                _env_string(env_map, "EMBEDDED_PAYLOAD"),
                converter["embedded_payload"],
            ),
        ),
        timeout=_optional_timeout(
            _pick_first(
                overrides.timeout,
                _env_string(env_map, "TIMEOUT"),
                converter["timeout"],
            )
        ),
        sanitize=_coerce_bool(
            "execution.sanitize",
            _pick_first(
                overrides.sanitize,
                _env_string(env_map, "SANITIZE"),
                execution["sanitize"],
            ),
        ),
        log_level=_resolve_log_level(
            _pick_first(
                overrides.log_level,
                _env_string(env_map, "LOG_LEVEL"),
                table["logging"]["level"],
            )
        ),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, Any]]:
    return {
        "converter": {
            "program": "",
            "embedded_payload": "",
            "timeout": 0,
        },
        "execution": {
            "input_extension": "docx",
            "output_extension": "md",
            "sanitize": True,
        },
        "paths": {"output_dir": ""},
        "logging": {"level": "INFO"},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = env_map.get(CONFIG_ENV, "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _require_extension(key: str, value: object) -> str:
    if not isinstance(value, str):
        raise ConvertConfigError(f"{key} must be a string.")
    normalized = value.strip()
    if normalized.startswith("."):
        normalized = normalized[1:]
    if not normalized:
        raise ConvertConfigError(f"{key} must be a non-empty extension.")
    return normalized


def _optional_path(key: str, value: object) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        raw = value.strip()
        return Path(raw).expanduser() if raw else None
    raise ConvertConfigError(f"{key} must be a string when provided.")


def _optional_timeout(value: object) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConvertConfigError("converter.timeout must be a number.")
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConvertConfigError(
            "converter.timeout must be a number."
        ) from exc
    if seconds < 0:
        raise ConvertConfigError("converter.timeout must not be negative.")
    return seconds or None


def _coerce_bool(key: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise ConvertConfigError(f"{key} must be a boolean.")


def _resolve_log_level(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConvertConfigError("logging.level must be a non-empty string.")
    return value.strip().upper()


def _env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    return raw.strip() or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


__all__ = [
    "CONFIG_FILENAME",
    "CONFIG_ENV",
    "ConfigOverrides",
    "ConvertConfig",
    "LoadResult",
    "load_config",
]
