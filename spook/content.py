"""Content processing for Spook.

This module walks the ``post/`` and ``page/`` directories of a site and turns
every ``<dir>/_index.md`` into a Post or Page record.

A content directory looks like this::

    post/2024-01-15-hello-world/
        _index.md           # +++ TOML front matter +++ then markdown
        _thumbnail.png      # optional
        diagram.svg         # any other asset, copied on build

Problems with a single item (unreadable index file, bad front matter, missing
title, bad timestamp) are logged and the item is skipped. Failing to list the
content directory itself aborts the parse with ContentError.

Key classes:
- Post, Page: Parsed content records.
- ParsedPosts: Sorted posts together with their category and tag groups.
- ContentParser: Scans a site root and builds the records.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from .collections import (
    Group,
    category_group,
    group_categories,
    group_tags,
    sort_pages,
    sort_posts,
    tag_group,
)
from .extractors import (
    ContentError,
    MalformedContentError,
    decode_metadata,
    find_thumbnail,
    first_paragraph_text,
    split_frontmatter,
)
from .renderers import render_markdown

__all__ = [
    "ContentError",
    "ContentParser",
    "InvalidItemError",
    "MalformedContentError",
    "Page",
    "ParsedPosts",
    "Post",
    "format_timestamp",
    "parse_timestamp",
]

logger = logging.getLogger(__name__)

INDEX_FILENAME = "_index.md"
POST_DIR = "post"
PAGE_DIR = "page"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"
_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} [+-]\d{4}")

# normalized front matter key -> expected type
_POST_FIELDS: dict[str, type] = {
    "title": str,
    "excerpt": str,
    "createdat": str,
    "updatedat": str,
    "category": str,
    "tags": list,
    "author": str,
}
_PAGE_FIELDS: dict[str, type] = {
    "title": str,
    "excerpt": str,
}

T = TypeVar("T")


class InvalidItemError(ContentError):
    """A content item is readable but does not satisfy the record rules."""


def parse_timestamp(value: str) -> datetime:
    """Parse a ``YYYY-MM-DD hh:mm:ss ±hhmm`` timestamp.

    Raises:
        ValueError: If the value does not follow the layout exactly.

    Examples:
        >>> parse_timestamp("2024-01-15 08:30:00 +0700").isoformat()
        '2024-01-15T08:30:00+07:00'
    """
    if not _TIMESTAMP_RE.fullmatch(value):
        raise ValueError(f"time data {value!r} does not match 'YYYY-MM-DD hh:mm:ss ±hhmm'")
    return datetime.strptime(value, TIMESTAMP_FORMAT)


def format_timestamp(moment: datetime) -> str:
    """Format a timezone-aware datetime in the front matter layout."""
    return moment.strftime(TIMESTAMP_FORMAT)


@dataclass
class Page:
    """A standalone content page.

    Attributes:
        title: Page title.
        path: URL path of the page, e.g. ``/page/about``.
        excerpt: Explicit excerpt, or the first paragraph of the body.
        thumbnail: URL path of the thumbnail image, or empty.
        content: Rendered HTML body.
        source: Path to the ``_index.md`` file.
    """

    title: str
    path: str
    excerpt: str = ""
    thumbnail: str = ""
    content: str = ""
    source: Path | None = None

    @property
    def slug(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]


@dataclass
class Post:
    """A dated blog post listed in chronological order.

    Attributes:
        title: Post title.
        created_at: Creation timestamp in the front matter layout.
        updated_at: Last update timestamp; defaults to ``created_at``.
        path: URL path of the post, e.g. ``/post/2024-01-15-hello``.
        excerpt: Explicit excerpt, or the first paragraph of the body.
        category: Trimmed category name; empty means uncategorized.
        tags: Trimmed, non-empty, de-duplicated tag names.
        author: Post author; the renderer falls back to the site owner.
        thumbnail: URL path of the thumbnail image, or empty.
        content: Rendered HTML body.
        source: Path to the ``_index.md`` file.
    """

    title: str
    created_at: str
    updated_at: str
    path: str
    excerpt: str = ""
    category: str = ""
    tags: list[str] = field(default_factory=list)
    author: str = ""
    thumbnail: str = ""
    content: str = ""
    source: Path | None = None

    @property
    def slug(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def created(self) -> datetime:
        return parse_timestamp(self.created_at)

    @property
    def updated(self) -> datetime:
        return parse_timestamp(self.updated_at)

    @property
    def category_group(self) -> Group:
        return category_group(self.category)

    @property
    def tag_groups(self) -> list[Group]:
        return [tag_group(tag) for tag in self.tags]


@dataclass
class ParsedPosts:
    """Posts sorted by recency plus their sorted category and tag groups."""

    posts: list[Post]
    categories: list[Group]
    tags: list[Group]


def _clean_tags(tags: list[str]) -> list[str]:
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


def _typed_fields(metadata: dict[str, Any], schema: dict[str, type]) -> dict[str, Any]:
    """Keep the recognized metadata fields, checking their types."""
    values: dict[str, Any] = {}
    for key, expected in schema.items():
        if key not in metadata:
            continue
        value = metadata[key]
        if not isinstance(value, expected):
            raise InvalidItemError(f"'{key}' must be of type {expected.__name__}")
        if expected is list and not all(isinstance(item, str) for item in value):
            raise InvalidItemError(f"'{key}' must be a list of strings")
        values[key] = value
    return values


class ContentParser:
    """Parses the post and page directories of a site.

    Directory entries are processed in name order so that thumbnail discovery
    and the order of posts sharing a timestamp are deterministic.

    Attributes:
        project_root: Root directory of the site.
    """

    def __init__(self, project_root: Path):
        self.project_root = project_root

    def parse_posts(self) -> ParsedPosts:
        """Parse, group and sort every post under ``post/``.

        Raises:
            ContentError: If the post directory cannot be read.
        """
        logger.info("Start parsing blog posts")
        posts = self._scan(POST_DIR, self.build_post)

        logger.info("Sorting posts")
        posts = sort_posts(posts)
        categories = group_categories(posts)
        tags = group_tags(posts)

        logger.info("Finished parsing %d posts", len(posts))
        return ParsedPosts(posts=posts, categories=categories, tags=tags)

    def parse_pages(self) -> list[Page]:
        """Parse every page under ``page/``, sorted by title.

        Raises:
            ContentError: If the page directory cannot be read.
        """
        logger.info("Start parsing pages")
        pages = sort_pages(self._scan(PAGE_DIR, self.build_page))
        logger.info("Finished parsing %d pages", len(pages))
        return pages

    def _scan(self, root_name: str, builder: Callable[[Path], T]) -> list[T]:
        root = self.project_root / root_name
        try:
            entries = sorted(root.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            raise ContentError(f"Unable to read {root_name} directory: {exc}") from exc

        items: list[T] = []
        for entry in entries:
            if not entry.is_dir():
                continue
            try:
                items.append(builder(entry))
            except ContentError as exc:
                logger.error("%s/%s: %s, skipped", root_name, entry.name, exc)
        return items

    def _load(self, directory: Path, schema: dict[str, type]) -> tuple[dict[str, Any], str]:
        """Read an index file and return its typed metadata and markdown body."""
        index = directory / INDEX_FILENAME
        try:
            raw = index.read_bytes()
        except OSError as exc:
            raise InvalidItemError(f"unable to read index file: {exc}") from exc

        metadata, body = split_frontmatter(raw)
        fields = _typed_fields(decode_metadata(metadata), schema)
        fields["title"] = fields.get("title", "").strip()
        if not fields["title"]:
            raise InvalidItemError("title is not defined")
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedContentError(f"body is not valid UTF-8: {exc}") from exc
        return fields, text

    def _common(
        self, directory: Path, root_name: str, fields: dict[str, Any], body: str
    ) -> dict[str, Any]:
        """Derive the path, thumbnail, rendered body and excerpt of an item."""
        path = f"/{root_name}/{directory.name}"
        thumbnail = find_thumbnail(directory)
        content = render_markdown(body)
        excerpt = fields.get("excerpt", "").strip()
        if not excerpt:
            excerpt = first_paragraph_text(content)
        return {
            "title": fields["title"],
            "path": path,
            "excerpt": excerpt,
            "thumbnail": f"{path}/{thumbnail}" if thumbnail else "",
            "content": content,
            "source": directory / INDEX_FILENAME,
        }

    def build_post(self, directory: Path) -> Post:
        """Build a Post from a content directory.

        Raises:
            ContentError: If the item has to be skipped.
        """
        fields, body = self._load(directory, _POST_FIELDS)

        created_at = fields.get("createdat", "")
        updated_at = fields.get("updatedat", "") or created_at
        for value in (created_at, updated_at):
            try:
                parse_timestamp(value)
            except ValueError as exc:
                raise InvalidItemError(f"unable to parse date time: {exc}") from exc

        return Post(
            created_at=created_at,
            updated_at=updated_at,
            category=fields.get("category", "").strip(),
            tags=_clean_tags(fields.get("tags", [])),
            author=fields.get("author", "").strip(),
            **self._common(directory, POST_DIR, fields, body),
        )

    def build_page(self, directory: Path) -> Page:
        """Build a Page from a content directory.

        Raises:
            ContentError: If the item has to be skipped.
        """
        fields, body = self._load(directory, _PAGE_FIELDS)
        return Page(**self._common(directory, PAGE_DIR, fields, body))
