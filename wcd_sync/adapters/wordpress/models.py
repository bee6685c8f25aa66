"""Pydantic models for the WordPress REST API."""

from __future__ import annotations

import html
from typing import Any

from pydantic import BaseModel, Field, field_validator


class WpRendered(BaseModel):
    """``{"rendered": "..."}`` wrapper used by post titles."""

    rendered: str = ""

    model_config = {"populate_by_name": True, "extra": "ignore"}


class WpVisibility(BaseModel):
    public: bool = True

    model_config = {"populate_by_name": True, "extra": "ignore"}


class WpPostType(BaseModel):
    """Entry of ``/wp/v2/types``. ``name`` is the plural label there."""

    slug: str
    label: str = Field(default="", alias="name")
    rest_base: str = ""
    viewable: bool | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}


class WpTaxonomy(BaseModel):
    """Entry of ``/wp/v2/taxonomies``."""

    slug: str
    label: str = Field(default="", alias="name")
    rest_base: str = ""
    visibility: WpVisibility | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}


class WpPost(BaseModel):
    id: int
    link: str = ""
    status: str = "publish"
    title: WpRendered = Field(default_factory=WpRendered)

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> Any:
        # Post types without title support may send a plain string or nothing.
        if value is None:
            return {}
        if isinstance(value, str):
            return {"rendered": value}
        return value

    @property
    def plain_title(self) -> str:
        return html.unescape(self.title.rendered)


class WpTerm(BaseModel):
    id: int
    link: str = ""
    name: str = ""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def plain_title(self) -> str:
        return html.unescape(self.name)


class WpSiteIndex(BaseModel):
    """The ``/wp-json/`` discovery document."""

    name: str = ""
    home: str = ""
    url: str = ""

    model_config = {"populate_by_name": True, "extra": "ignore"}


class WpReadingSettings(BaseModel):
    """Subset of ``/wp/v2/settings`` describing the front page."""

    show_on_front: str = "posts"
    page_on_front: int = 0

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("page_on_front", mode="before")
    @classmethod
    def _coerce_page_id(cls, value: Any) -> int:
        try:
            return int(value or 0)
        except (TypeError, ValueError):
            return 0
