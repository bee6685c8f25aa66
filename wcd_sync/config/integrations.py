from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._validators import _clean_token, _parse_bounded_float, _parse_bounded_int

logger = logging.getLogger(__name__)

DEFAULT_WCD_API_URL = "https://api.webchangedetector.com/api/v2/"


class WebChangeDetectorConfig(BaseModel):
    """Remote WebChangeDetector API credentials and caller identity."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_token: str = Field(default="", validation_alias="WCD_API_TOKEN")
    api_url: str = Field(default=DEFAULT_WCD_API_URL, validation_alias="WCD_API_URL")
    request_timeout_sec: float = Field(default=30.0, validation_alias="WCD_REQUEST_TIMEOUT_SEC")
    plugin_version: str = Field(default="4.0.0", validation_alias="WCD_PLUGIN_VERSION")
    domain: str = Field(
        default="",
        validation_alias="WCD_DOMAIN",
        description="Website domain as registered remotely; derived from WP_SITE_URL when empty",
    )
    wp_id: int = Field(default=1, validation_alias="WCD_WP_ID")

    @field_validator("api_token", mode="before")
    @classmethod
    def _validate_api_token(cls, value: Any) -> str:
        return _clean_token(value, name="WebChangeDetector API token")

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        url = str(value or DEFAULT_WCD_API_URL).strip()
        if not url:
            return DEFAULT_WCD_API_URL
        if not url.startswith(("http://", "https://")):
            msg = "WebChangeDetector API URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/") + "/"

    @field_validator("request_timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        return _parse_bounded_float(
            value, default=30.0, low=1.0, high=600.0, label="WebChangeDetector request timeout"
        )

    @field_validator("wp_id", mode="before")
    @classmethod
    def _validate_wp_id(cls, value: Any) -> int:
        return _parse_bounded_int(
            value, default=1, low=0, high=2**31 - 1, label="WordPress user id"
        )


class WordPressConfig(BaseModel):
    """WordPress REST API access used to enumerate site content."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    site_url: str = Field(default="", validation_alias="WP_SITE_URL")
    username: str = Field(default="", validation_alias="WP_USERNAME")
    app_password: str = Field(default="", validation_alias="WP_APP_PASSWORD")
    request_timeout_sec: float = Field(default=30.0, validation_alias="WP_REQUEST_TIMEOUT_SEC")
    locales: tuple[str, ...] = Field(
        default=(),
        validation_alias="WP_LOCALES",
        description="Comma separated language codes served by WPML or Polylang",
    )

    @field_validator("site_url", mode="before")
    @classmethod
    def _validate_site_url(cls, value: Any) -> str:
        url = str(value or "").strip()
        if not url:
            return ""
        if not url.startswith(("http://", "https://")):
            msg = "WP_SITE_URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("app_password", mode="before")
    @classmethod
    def _validate_app_password(cls, value: Any) -> str:
        # Application passwords are shown with spaces; WordPress accepts either form.
        return str(value or "").replace(" ", "").strip()

    @field_validator("request_timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        return _parse_bounded_float(
            value, default=30.0, low=1.0, high=600.0, label="WordPress request timeout"
        )

    @field_validator("locales", mode="before")
    @classmethod
    def _validate_locales(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            parts = value.split(",")
        elif isinstance(value, (list, tuple)):
            parts = [str(part) for part in value]
        else:
            msg = "WP_LOCALES must be a comma separated string"
            raise ValueError(msg)
        codes: list[str] = []
        for part in parts:
            code = part.strip()
            if code and code not in codes:
                codes.append(code)
        return tuple(codes)

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.app_password)
