from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from typing import Self

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from wcd_sync.core.url_utils import domain_from_site_url

from ._validators import _parse_bounded_int
from .integrations import WebChangeDetectorConfig, WordPressConfig

logger = logging.getLogger(__name__)


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    db_path: str = Field(default="/data/wcd_sync.db", validation_alias="DB_PATH")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    use_loguru: bool = Field(default=True, validation_alias="LOG_USE_LOGURU")

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        log_level = str(value or "INFO").upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {valid_levels}"
            raise ValueError(msg)
        return log_level

    @field_validator("db_path", mode="before")
    @classmethod
    def _validate_db_path(cls, value: Any) -> str:
        path = str(value or "/data/wcd_sync.db").strip()
        if "\x00" in path:
            msg = "DB path contains invalid characters"
            raise ValueError(msg)
        return path

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Any) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        return trimmed or None


class InventorySyncConfig(BaseModel):
    """Timing knobs for the rate gate, deferred jobs and the daily run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rate_interval_minutes: int = Field(default=60, validation_alias="SYNC_RATE_INTERVAL_MINUTES")
    defer_delay_seconds: int = Field(default=5, validation_alias="SYNC_DEFER_DELAY_SECONDS")
    daily_enabled: bool = Field(default=True, validation_alias="SYNC_DAILY_ENABLED")
    daily_interval_hours: int = Field(default=24, validation_alias="SYNC_DAILY_INTERVAL_HOURS")
    job_retention_hours: int = Field(
        default=24,
        validation_alias=AliasChoices("SYNC_JOB_RETENTION_HOURS", "SYNC_JOB_RETENTION"),
    )

    @field_validator("rate_interval_minutes", mode="before")
    @classmethod
    def _validate_rate_interval(cls, value: Any) -> int:
        return _parse_bounded_int(
            value, default=60, low=1, high=24 * 60, label="Sync rate interval (minutes)"
        )

    @field_validator("defer_delay_seconds", mode="before")
    @classmethod
    def _validate_defer_delay(cls, value: Any) -> int:
        return _parse_bounded_int(
            value, default=5, low=0, high=3600, label="Sync defer delay (seconds)"
        )

    @field_validator("daily_interval_hours", mode="before")
    @classmethod
    def _validate_daily_interval(cls, value: Any) -> int:
        return _parse_bounded_int(
            value, default=24, low=1, high=168, label="Daily sync interval (hours)"
        )

    @field_validator("job_retention_hours", mode="before")
    @classmethod
    def _validate_retention(cls, value: Any) -> int:
        return _parse_bounded_int(
            value, default=24, low=1, high=24 * 30, label="Sync job retention (hours)"
        )


@dataclass(frozen=True)
class AppConfig:
    wcd: WebChangeDetectorConfig
    wordpress: WordPressConfig
    sync: InventorySyncConfig
    runtime: RuntimeConfig

    @property
    def domain(self) -> str:
        """Website domain used in API headers and website lookup."""
        return self.wcd.domain or domain_from_site_url(self.wordpress.site_url)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env``.

    Nested models are populated by matching the ``validation_alias`` of each
    field against the flat environment.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    wcd: WebChangeDetectorConfig = Field(default_factory=WebChangeDetectorConfig)
    wordpress: WordPressConfig = Field(default_factory=WordPressConfig)
    sync: InventorySyncConfig = Field(default_factory=InventorySyncConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @model_validator(mode="before")
    @classmethod
    def _build_nested_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Build nested config objects from flat environment variables.

        Constructor arguments take precedence over the environment.
        """
        if not isinstance(data, dict):
            return data

        result = dict(data)
        merged_source = {**dict(os.environ), **data}

        for field_name, field_info in cls.model_fields.items():
            annotation = field_info.annotation
            if not isinstance(annotation, type) or not issubclass(annotation, BaseModel):
                continue

            nested_data: dict[str, Any] = {}
            for nested_field_name, nested_field in annotation.model_fields.items():
                env_value = cls._resolve_env_value(merged_source, nested_field)
                if env_value is not None:
                    nested_data[nested_field_name] = env_value

            if nested_data:
                if field_name in result and isinstance(result[field_name], dict):
                    result[field_name] = {**nested_data, **result[field_name]}
                else:
                    result[field_name] = nested_data

        return result

    @staticmethod
    def _resolve_env_value(data: dict[str, Any], field: Any) -> Any | None:
        aliases: list[str] = []
        alias = field.validation_alias
        if isinstance(alias, AliasChoices):
            aliases.extend(choice for choice in alias.choices if isinstance(choice, str))
        elif isinstance(alias, str):
            aliases.append(alias)
        if field.alias:
            aliases.append(field.alias)

        for name in aliases:
            if name in data:
                return data[name]
        return None

    @model_validator(mode="after")
    def _warn_missing_site(self) -> Self:
        if not self.wordpress.site_url and not self.wcd.domain:
            logger.warning("config_site_url_missing", extra={"hint": "set WP_SITE_URL"})
        return self

    def as_app_config(self) -> AppConfig:
        return AppConfig(
            wcd=self.wcd,
            wordpress=self.wordpress,
            sync=self.sync,
            runtime=self.runtime,
        )


def load_config(**overrides: Any) -> AppConfig:
    """Load configuration from environment variables and an optional ``.env``.

    Raises:
        RuntimeError: If configuration validation fails.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        msg = f"Configuration validation failed: {exc}"
        raise RuntimeError(msg) from exc
    return settings.as_app_config()
