"""Plain records exchanged between the content store and the sync engine."""

from __future__ import annotations

from dataclasses import dataclass

PUBLISHED_STATUS = "publish"


@dataclass(frozen=True)
class ContentType:
    """A post type or taxonomy as registered in the CMS."""

    name: str
    label: str = ""
    rest_base: str = ""
    public: bool = True
    is_taxonomy: bool = False

    @property
    def slug(self) -> str:
        """Slug used to match against configured sync types."""
        return self.rest_base or self.name


@dataclass(frozen=True)
class RawContent:
    """One post or term as returned by the content store."""

    id: int | str
    title: str
    link: str
    status: str = PUBLISHED_STATUS

    @property
    def is_published(self) -> bool:
        return self.status == PUBLISHED_STATUS


@dataclass(frozen=True)
class SiteInfo:
    name: str
    home_url: str
    show_on_front: str = "posts"
    page_on_front: int = 0

    @property
    def has_static_front_page(self) -> bool:
        # WordPress keeps page_on_front after switching back to latest posts;
        # a set page id is what counts here.
        return self.page_on_front > 0


@dataclass(frozen=True)
class Locale:
    code: str
    home_url: str
