"""Pydantic models for the WebChangeDetector v2 API and the sync engine."""

from __future__ import annotations

import enum
import json
from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import Any

from pydantic import BaseModel, Field, field_validator

FRONTPAGE_SLUG = "frontpage"
FRONTPAGE_LABEL = "Frontpage"
CATEGORY_SEPARATOR = "%%"


class ApiResultKind(enum.StrEnum):
    """Outcome classes of a remote API call."""

    PAYLOAD = "payload"
    UPDATE_REQUIRED = "update_required"
    NEEDS_ACTIVATION = "needs_activation"
    UNAUTHORIZED = "unauthorized"
    NO_CREDENTIAL = "no_credential"
    TRANSPORT_ERROR = "transport_error"


class ApiResult(BaseModel):
    """Tagged result of one API call; ``payload`` is only meaningful for PAYLOAD."""

    kind: ApiResultKind
    payload: Any = None
    status_code: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is ApiResultKind.PAYLOAD

    @property
    def is_success(self) -> bool:
        """Delivered with a 2xx status (non-2xx bodies are still PAYLOAD)."""
        return self.ok and self.status_code is not None and 200 <= self.status_code < 300


class InventoryItem(BaseModel):
    """One URL the remote service should track."""

    url: str
    title: str = Field(default="", alias="html_title")
    category_key: str
    content_id: int | str | None = None
    new_url: str | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    def to_wire(self) -> dict[str, str]:
        data = {"url": self.url, "html_title": self.title}
        if self.new_url is not None:
            data["new_url"] = self.new_url
        return data


class SyncUrlType(BaseModel):
    """A content category the website owner enabled for sync."""

    type_slug: str = Field(default="types", alias="url_type_slug")
    type_label: str = Field(default="", alias="url_type_name")
    content_type_slug: str = Field(alias="post_type_slug")
    content_type_label: str = Field(default="", alias="post_type_name")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def is_frontpage(self) -> bool:
        return self.content_type_slug == FRONTPAGE_SLUG

    @classmethod
    def frontpage_marker(cls) -> SyncUrlType:
        return cls(
            type_slug="types",
            type_label=FRONTPAGE_SLUG,
            content_type_slug=FRONTPAGE_SLUG,
            content_type_label=FRONTPAGE_LABEL,
        )


class WebsiteDetails(BaseModel):
    """Remote website record holding the sync configuration."""

    id: str
    domain: str = ""
    sync_url_types: list[SyncUrlType] = Field(default_factory=list)
    allowances: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("sync_url_types", mode="before")
    @classmethod
    def _decode_sync_url_types(cls, value: Any) -> Any:
        # Older API versions return the list JSON-encoded.
        if isinstance(value, str):
            try:
                return json.loads(value) or []
            except ValueError:
                return []
        return value or []

    def is_allowed(self, allowance: str) -> bool:
        return bool(self.allowances.get(allowance))


class UploadFailure(BaseModel):
    batch_index: int
    kind: ApiResultKind
    status_code: int | None = None
    error: str | None = None


class UploadResult(BaseModel):
    """Aggregate outcome of one multi-request upload."""

    collection_id: str
    batches_total: int = 0
    batches_succeeded: int = 0
    batches_failed: int = 0
    items_uploaded: int = 0
    failures: list[UploadFailure] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class SyncStatus(enum.StrEnum):
    COMPLETED = "completed"
    SKIPPED_EMPTY = "skipped_empty"
    RATE_GATED = "rate_gated"
    FAILED = "failed"


class SyncOutcome(BaseModel):
    """Terminal result of one sync attempt."""

    status: SyncStatus
    message: str = ""
    collection_id: str | None = None
    items_uploaded: int = 0
    batches_uploaded: int = 0
    batches_failed: int = 0
    error_kind: ApiResultKind | None = None
    errors: list[str] = Field(default_factory=list)
    finished_at: datetime | None = None
