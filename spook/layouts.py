"""View models passed to theme templates.

Every render call bundles site metadata from the Config with the records being
shown. Templates receive the fields of the view model as top-level variables
and the whole model as ``layout``.

Classes:
    ListType: Which posts a list shows.
    Layout: Fields shared by every template.
    ListLayout: Front page and post lists.
    PageLayout: Single page.
    PostLayout: Single post.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields
from typing import Any

from markupsafe import Markup

from .collections import Group
from .content import Page, Post


class ListType(enum.Enum):
    DEFAULT = "default"
    CATEGORY = "category"
    TAG = "tag"


@dataclass
class Layout:
    website_title: str = ""
    website_owner: str = ""
    website_description: str = ""
    base_url: str = ""
    content_title: str = ""
    content_desc: str = ""
    content_author: str = ""
    categories: list[Group] = field(default_factory=list)
    tags: list[Group] = field(default_factory=list)
    pages: list[Page] = field(default_factory=list)

    def context(self) -> dict[str, Any]:
        """Return the template context: every field plus the model itself."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values["layout"] = self
        return values


@dataclass
class ListLayout(Layout):
    type: ListType = ListType.DEFAULT
    path: str = "/posts"
    posts: list[Post] = field(default_factory=list)
    current_page: int = 1
    max_page: int = 0

    @property
    def prev_page(self) -> int | None:
        return self.current_page - 1 if self.current_page > 1 else None

    @property
    def next_page(self) -> int | None:
        return self.current_page + 1 if self.current_page < self.max_page else None

    def page_url(self, number: int) -> str:
        """URL of another page of this list; page 1 is the list path itself."""
        return self.path if number <= 1 else f"{self.path}/{number}"


@dataclass
class PageLayout(Layout):
    thumbnail: str = ""
    html: Markup = field(default_factory=Markup)


@dataclass
class PostLayout(Layout):
    created_at: str = ""
    updated_at: str = ""
    category: Group | None = None
    post_tags: list[Group] = field(default_factory=list)
    thumbnail: str = ""
    html: Markup = field(default_factory=Markup)
    older: Post | None = None
    newer: Post | None = None
