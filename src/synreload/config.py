"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SYNRELOAD__RELOAD__INTERVAL_SECONDS=30)
  2. synreload.yaml         (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The config file is optional. Without a ``source`` section the service starts
with an empty dictionary and never reloads.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from synreload.models.synonyms import RuleFormat

_CONFIG_FILE_NAME = "synreload.yaml"
_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir("synreload")


def _find_config_file() -> str | None:
    """Return the path of the first synreload.yaml found, or None."""
    candidates = [
        Path(_CONFIG_FILE_NAME),
        Path(_DEFAULT_CONFIG_DIR) / _CONFIG_FILE_NAME,
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class SqlSourceSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    database: str
    entries_query: str = "SELECT words FROM synonym"
    marker_query: str = "SELECT MAX(update_time) AS last_modify_dt FROM synonym"
    entries_column: str = "words"
    marker_column: str = "last_modify_dt"


class HttpSourceSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str
    timeout_seconds: float = Field(default=10.0, gt=0)


class SourceSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["sql", "http"] = "sql"
    sql: SqlSourceSettings | None = None
    http: HttpSourceSettings | None = None

    @model_validator(mode="after")
    def _check_kind_section(self) -> SourceSettings:
        if getattr(self, self.kind) is None:
            raise ValueError(f"source.kind is {self.kind!r} but source.{self.kind} is missing")
        return self


class ReloadSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    interval_seconds: float = Field(default=60.0, gt=0)
    timeout_seconds: float = Field(default=30.0, gt=0)
    format: RuleFormat = RuleFormat.SOLR
    expand: bool = True
    lenient: bool = False


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SYNRELOAD__SOURCE__SQL__DATABASE=/srv/syn.db
        env_prefix="SYNRELOAD__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    source: SourceSettings | None = None
    reload: ReloadSettings = ReloadSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
