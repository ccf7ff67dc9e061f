"""Settings and the global seed config.

Settings are loaded from environment variables:
- FERN_CONFIG      (optional) path of the global config file
- FERN_MARKER      (optional) marker file name, default ``fern.yaml``
- FERN_LOG_LEVEL   (optional) default ``WARNING``
- FERN_LOG_FORMAT  (optional) ``text`` or ``json``

The global config file is only read when seeding. A missing or malformed
config therefore never affects listing or running tasks.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fern.errors import ConfigParseError, NoConfig
from fern.leaf import (
    DEFAULT_MARKER_NAME,
    TaskDefinition,
    describe_yaml_error,
    format_validation_error,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".fern.config.yaml"


def default_config_path() -> Path:
    """Per-user default location of the global config file."""

    return Path.home() / CONFIG_FILE_NAME


class FernSettings(BaseSettings):
    """Process settings for one fern invocation.

    Notes:
        Fields can be passed by name in tests, e.g.
        ``FernSettings(config_path=tmp_path / "config.yaml")``.
    """

    config_path: Path = Field(
        default_factory=default_config_path,
        validation_alias="FERN_CONFIG",
        description="Global config file holding seed templates",
    )
    marker_name: str = Field(
        default=DEFAULT_MARKER_NAME,
        validation_alias="FERN_MARKER",
        description="File name that marks a directory as a leaf",
    )
    log_level: str = Field(
        default="WARNING",
        validation_alias="FERN_LOG_LEVEL",
        description="Root logging level",
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        validation_alias="FERN_LOG_FORMAT",
        description="Log output format",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    @field_validator("marker_name")
    @classmethod
    def _bare_file_name(cls, value: str) -> str:
        value = value.strip()
        if not value or value in {".", ".."} or "/" in value or "\\" in value:
            raise ValueError("FERN_MARKER must be a plain file name")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level


class SeedConfig(BaseModel):
    """Parsed global config: named seed templates."""

    seeds: dict[StrictStr, TaskDefinition] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @field_validator("seeds", mode="before")
    @classmethod
    def _null_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def names(self) -> list[str]:
        return sorted(self.seeds)

    def get(self, name: str) -> TaskDefinition | None:
        return self.seeds.get(name)


def load_seed_config(path: Path) -> SeedConfig:
    """Read the global config file.

    Raises:
        NoConfig: the file does not exist.
        ConfigParseError: the file cannot be read, is not valid YAML, or does
            not have the expected shape.
    """

    if not path.exists():
        raise NoConfig(path=path)

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigParseError(path=path, reason=f"not valid UTF-8: {e.reason}") from e
    except OSError as e:
        raise ConfigParseError(path=path, reason=e.strerror or str(e)) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigParseError(path=path, reason=describe_yaml_error(e)) from e

    if data is None:
        logger.debug("Config file is empty", extra={"path": str(path)})
        return SeedConfig()
    if not isinstance(data, dict):
        raise ConfigParseError(path=path, reason="top level must be a mapping")

    try:
        config = SeedConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(path=path, reason=format_validation_error(e)) from e

    logger.debug("Loaded config", extra={"path": str(path), "seeds": config.names})
    return config
