"""Settings for the FocusMate command line tools.

Values are layered with prepper: discovered ``FocusMate`` YAML files first,
then a ``.env`` file in the working directory, then the process environment.
Every setting is optional, so an empty environment yields the defaults.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Literal, Mapping, Tuple

from dotenv import dotenv_values
from prepper import (
    ConfigNotFound,
    Field,
    IoError,
    SchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.config import ConfigInstance
from prepper.loaders import _parse_file, _path_to_source, discover_file_paths
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .errors import ConfigurationError

APP_NAME = "FocusMate"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_LEVEL_ALIASES = {"WARN": "WARNING", "ERR": "ERROR", "FATAL": "ERROR"}


class FocusMateSettings(SchemaModel):
    """Paths to the rule and preference files plus the log level."""

    FOCUSMATE_RULES_FILE: str | None = Field(
        default=None,
        description="JSON rules file; the built-in rules are used when unset.",
    )
    FOCUSMATE_PREFERENCES_FILE: str | None = Field(
        default=None,
        description="JSON preferences file; the rules' user_preferences are used when unset.",
    )
    FOCUSMATE_LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level for the command line tools.",
    )

    @model_validator(mode="before")
    def _coerce_log_level(data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        level = data.get("FOCUSMATE_LOG_LEVEL")
        if isinstance(level, str):
            level = level.strip().upper()
            level = LOG_LEVEL_ALIASES.get(level, level)
            data["FOCUSMATE_LOG_LEVEL"] = level if level in LOG_LEVELS else "WARNING"
        return data


def _merge_settings(
    target: dict[str, Any],
    values: Iterable[Tuple[str, Any]],
    *,
    provenance: ProvenanceRecorder,
    source: str,
) -> None:
    """Merge known FocusMate keys from one environment-like source."""

    known = FocusMateSettings.__field_infos__.keys()
    for key, value in sorted(values):
        if key in known and isinstance(value, str):
            merge_layer(
                target,
                {key: value},
                provenance=provenance,
                source=f"env:{source}:{key}",
                layer="env",
            )


def _collect_layers(app_dir: Path, provenance: ProvenanceRecorder) -> dict[str, Any]:
    layers: dict[str, Any] = {}

    for path, label in discover_file_paths(APP_NAME, "yaml", app_dir=app_dir, extra_paths=None):
        parsed = _parse_file(path, "yaml")
        if not isinstance(parsed, Mapping):
            raise IoError(f"{path} must contain a mapping of settings.")
        merge_layer(
            layers,
            parsed,
            provenance=provenance,
            source=_path_to_source(label, "yaml", path),
            layer="file",
        )

    dotenv_path = app_dir / ".env"
    if dotenv_path.is_file():
        _merge_settings(
            layers, dotenv_values(dotenv_path).items(), provenance=provenance, source=".env"
        )
    _merge_settings(layers, os.environ.items(), provenance=provenance, source="process")
    return layers


def _describe_issue(entry: Mapping[str, Any]) -> str:
    path = entry.get("path")
    if isinstance(path, (list, tuple)):
        path = ".".join(str(part) for part in path if part not in (None, ""))
    text = str(entry.get("message") or entry.get("msg") or "Invalid value")
    if path:
        text = f"{path}: {text}"
    if entry.get("source"):
        text += f" (from {entry['source']})"
    return text


@lru_cache(maxsize=1)
def _load_config_instance(app_dir: Path | None = None) -> ConfigInstance:
    """Build the settings instance once per process."""

    provenance = ProvenanceRecorder()
    try:
        layers = _collect_layers(app_dir or Path.cwd(), provenance)
        model = FocusMateSettings.validate(layers, provenance=provenance)
    except ValidationError as exc:
        issues = "\n".join(f"- {_describe_issue(entry)}" for entry in exc.to_dict())
        raise ConfigurationError(f"Invalid FocusMate settings:\n{issues}") from exc
    except (ConfigNotFound, IoError, SchemaError) as exc:
        raise ConfigurationError(f"FocusMate settings could not be loaded: {exc}") from exc
    return ConfigInstance(
        model=model,
        provenance=provenance,
        env_prefix=None,
        schema_cls=FocusMateSettings,
    )


def get_config(app_dir: Path | None = None) -> ConfigInstance:
    return _load_config_instance(app_dir=app_dir)


def get_settings(app_dir: Path | None = None) -> FocusMateSettings:
    """Typed settings model for the current working directory."""

    return get_config(app_dir=app_dir).model()


def optional_path(value: str | None) -> Path | None:
    """Expand a configured path value, treating blanks as unset."""

    if value is None or not value.strip():
        return None
    return Path(value).expanduser()
