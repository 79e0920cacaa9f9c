"""Load graphport settings from TOML (e.g. graphport.toml).

Config file is looked up in order:
  1. The path passed to `load_config`
  2. Path in GRAPHPORT_CONFIG env var (if set)
  3. graphport.toml in the current working directory

If no file is found, built-in defaults are used (no exclusions, binary data
always inlined, duplicate checking off). Example:

    log_level = "INFO"

    [export]
    blob_threshold = 4096
    exclude = ["cachedThumbnail"]

    [export.exclude_by_entity]
    Person = ["passwordHash"]

    [import]
    check_for_duplicates = true

    [import.duplicate_fields]
    Person = ["email"]
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from graphport.logging import PprintLogger, setup_logging

CONFIG_ENV_VAR = "GRAPHPORT_CONFIG"
CONFIG_FILENAME = "graphport.toml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ExcludedFields(BaseModel, frozen=True):
    """Two-tier field exclusion for export.

    The effective exclusion set of an entity kind is the union of
    `all_entities` and that kind's entry in `by_entity`.
    """

    all_entities: list[str] = Field(default_factory=list)
    by_entity: dict[str, list[str]] = Field(default_factory=dict)

    def excluded_for(self, entity: str) -> frozenset[str]:
        return frozenset(self.all_entities) | frozenset(self.by_entity.get(entity, ()))


class ExportSettings(BaseModel, frozen=True):
    excluding: ExcludedFields = Field(default_factory=ExcludedFields)
    blob_threshold: int | None = Field(default=None, ge=0)


class ImportSettings(BaseModel, frozen=True):
    check_for_duplicates: bool = False
    duplicate_fields: dict[str, list[str]] = Field(default_factory=dict)


class GraphPortConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    export: ExportSettings = Field(default_factory=ExportSettings)
    import_: ImportSettings = Field(default_factory=ImportSettings, alias="import")
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, value: str) -> str:
        if value.upper() not in LOG_LEVELS:
            raise ValueError(f"unknown log level: {value!r}")
        return value.upper()


def _default_config_paths() -> list[Path]:
    """Return paths to check for graphport.toml (first existing wins)."""
    paths: list[Path] = []
    if os.environ.get(CONFIG_ENV_VAR):
        paths.append(Path(os.environ[CONFIG_ENV_VAR]))
    paths.append(Path.cwd() / CONFIG_FILENAME)
    return paths


def _export_section(data: dict[str, Any]) -> dict[str, Any]:
    section = dict(data.get("export", {}))
    excluding = {
        "all_entities": section.pop("exclude", []),
        "by_entity": section.pop("exclude_by_entity", {}),
    }
    section["excluding"] = excluding
    return section


def config_from_dict(data: dict[str, Any]) -> GraphPortConfig:
    """Build a GraphPortConfig from parsed TOML data.

    Raises:
        pydantic.ValidationError: If a value has the wrong type or range.
    """
    return GraphPortConfig.model_validate(
        {
            "export": _export_section(data),
            "import": data.get("import", {}),
            "log_level": data.get("log_level", "INFO"),
        }
    )


def load_config(path: Path | None = None) -> GraphPortConfig:
    """Load graphport config from a TOML file.

    An explicitly passed `path` must exist. Candidate paths from the
    environment or working directory that are missing or unreadable are
    skipped.

    Raises:
        FileNotFoundError: If `path` is given and does not exist.
        pydantic.ValidationError: If the file holds invalid values.
    """
    if path is not None:
        with open(path, "rb") as f:
            return config_from_dict(tomllib.load(f))

    for candidate in _default_config_paths():
        if candidate.is_file():
            try:
                with open(candidate, "rb") as f:
                    data = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError):
                continue
            return config_from_dict(data)
    return GraphPortConfig()


def configure_logging(config: GraphPortConfig) -> PprintLogger:
    """Apply the configured log level to every graphport logger."""
    return setup_logging("graphport", level=config.log_level)
