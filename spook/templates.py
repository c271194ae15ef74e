"""Template rendering engine for Spook.

This module renders view models through the active theme using Jinja2.

A theme is a directory under ``theme/``::

    theme/<name>/
        _base.html, _*.html   # base partials, available to every view
        frontpage.html        # optional, front page (``index.html`` also accepted)
        list.html             # post lists, and the front page fallback
        page.html
        post.html
        404.html
        css/ js/ res/         # assets copied or served as-is

Every render call reads the partials plus the one template of the requested
view from disk and builds a fresh environment holding exactly those templates,
so edits to a theme show up on the next render. A template file only counts
as present when it is non-empty.

Key class:
- Renderer: Renders the front page, lists, pages, posts and the 404 page.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, TextIO

from jinja2 import DictLoader, Environment, TemplateError, select_autoescape
from markupsafe import Markup

from .collections import (
    Group,
    Paginator,
    PostCollection,
    category_group,
    tag_group,
)
from .config import Config
from .content import Page, Post, parse_timestamp
from .layouts import Layout, ListLayout, ListType, PageLayout, PostLayout
from .renderers import pygments_css
from .utils import join_url

__all__ = [
    "Renderer",
    "RenderError",
    "TemplateMissingError",
    "default_functions",
]

PARTIAL_PREFIX = "_"
FRONT_PAGE_TEMPLATES = ("frontpage.html", "index.html")
LIST_TEMPLATE = "list.html"
PAGE_TEMPLATE = "page.html"
POST_TEMPLATE = "post.html"
NOT_FOUND_TEMPLATE = "404.html"


class RenderError(Exception):
    """A template could not be loaded or executed."""


class TemplateMissingError(RenderError):
    """The template required by a view does not exist in the theme."""


def add(a: int, b: int) -> int:
    return a + b


def format_time(value: str, fmt: str) -> str:
    """Reformat a front matter timestamp with a strftime format.

    Returns an empty string when the timestamp cannot be parsed.
    """
    try:
        return parse_timestamp(value).strftime(fmt)
    except (TypeError, ValueError):
        return ""


def limit_sentence(text: str, n: int) -> str:
    """Return the first ``n`` sentences of ``text``.

    Sentences end with ``.``, ``?``, ``!`` or a newline; the terminator of the
    last kept sentence is included.

    Examples:
        >>> limit_sentence("One. Two? Three!", 2)
        'One. Two?'
    """
    if not text or n < 1:
        return ""
    trimmed = text[:-1] if text[-1] in ".?!\n" else text
    sentences = re.split(r"[.?!\n]", trimmed)
    kept = ".".join(sentences[: min(n, len(sentences))])
    return text[: len(kept) + 1]


def default_functions() -> dict[str, Callable[..., Any]]:
    """Return a fresh table of the functions every theme can call."""
    return {
        "add": add,
        "format_time": format_time,
        "limit_sentence": limit_sentence,
        "pygments_css": pygments_css,
    }


def template_exists(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


class Renderer:
    """Renders site records through the theme templates.

    Attributes:
        config: Site configuration.
        theme_dir: Directory of the active theme.
        posts: Posts sorted newest first.
        pages: Pages sorted by title.
        categories: Category groups.
        tags: Tag groups.
        functions: Function table installed into every template environment.
    """

    def __init__(
        self,
        config: Config,
        theme_dir: Path,
        posts: Iterable[Post] = (),
        pages: Iterable[Page] = (),
        categories: Iterable[Group] = (),
        tags: Iterable[Group] = (),
        functions: dict[str, Callable[..., Any]] | None = None,
    ):
        self.config = config
        self.theme_dir = theme_dir
        self.posts = PostCollection(posts)
        self.pages = list(pages)
        self.categories = list(categories)
        self.tags = list(tags)
        self.functions = dict(functions) if functions is not None else default_functions()
        self.functions.setdefault("url_for", self._url_for)

    def _url_for(self, path: str) -> str:
        return join_url(self.config.base_url, path)

    def render_front_page(self, out: TextIO) -> int:
        """Render the front page, falling back to the list template.

        The front page shows the first page of the post list.

        Returns:
            Number of posts shown.

        Raises:
            TemplateMissingError: If neither a front page nor a list template exists.
        """
        for name in (*FRONT_PAGE_TEMPLATES, LIST_TEMPLATE):
            if template_exists(self.theme_dir / name):
                entry = name
                break
        else:
            raise TemplateMissingError(
                "template not found: frontpage.html or list.html"
            )

        layout = self._list_layout(
            self.posts,
            ListType.DEFAULT,
            "/posts",
            1,
            content_title=self.config.title,
            content_desc=self.config.description,
            content_author=self.config.owner,
        )
        self._execute(entry, layout, out)
        return len(layout.posts)

    def render_list(
        self, list_type: ListType, group_name: str, page_number: int, out: TextIO
    ) -> int:
        """Render one page of a post list.

        Args:
            list_type: All posts, one category, or one tag.
            group_name: Category or tag name; ``uncategorized`` selects posts
                without a category.
            page_number: 1-indexed page; values below 1 are clamped.
            out: Stream receiving the HTML.

        Returns:
            Number of posts on the rendered page.
        """
        self._require(LIST_TEMPLATE)

        if list_type is ListType.CATEGORY:
            path = category_group(group_name).path
            title = group_name
        elif list_type is ListType.TAG:
            path = tag_group(group_name).path
            title = group_name
        else:
            path = "/posts"
            title = self.config.title

        layout = self._list_layout(
            self.list_posts(list_type, group_name),
            list_type,
            path,
            page_number,
            content_title=title,
            content_desc=self.config.description,
        )
        self._execute(LIST_TEMPLATE, layout, out)
        return len(layout.posts)

    def list_posts(self, list_type: ListType, group_name: str = "") -> PostCollection:
        """Return every post shown by a list, across all of its pages."""
        if list_type is ListType.CATEGORY:
            return self.posts.in_category(group_name)
        if list_type is ListType.TAG:
            return self.posts.with_tag(group_name)
        return self.posts

    def render_page(self, page: Page, out: TextIO) -> None:
        self._require(PAGE_TEMPLATE)
        layout = PageLayout(
            **self._site_fields(),
            content_title=page.title,
            content_desc=page.excerpt,
            thumbnail=page.thumbnail,
            html=Markup(page.content),
        )
        self._execute(PAGE_TEMPLATE, layout, out)

    def render_post(self, post: Post, out: TextIO) -> None:
        """Render a single post with links to its older and newer neighbours."""
        self._require(POST_TEMPLATE)
        older, newer = (
            self.posts.neighbours(post) if post in self.posts else (None, None)
        )
        layout = PostLayout(
            **self._site_fields(),
            content_title=post.title,
            content_desc=post.excerpt,
            content_author=post.author or self.config.owner,
            created_at=post.created_at,
            updated_at=post.updated_at,
            category=post.category_group,
            post_tags=post.tag_groups,
            thumbnail=post.thumbnail,
            html=Markup(post.content),
            older=older,
            newer=newer,
        )
        self._execute(POST_TEMPLATE, layout, out)

    def render_not_found(self, out: TextIO) -> None:
        self._require(NOT_FOUND_TEMPLATE)
        layout = Layout(**self._site_fields(), content_title="Not Found")
        self._execute(NOT_FOUND_TEMPLATE, layout, out)

    def has_template(self, name: str) -> bool:
        return template_exists(self.theme_dir / name)

    def _require(self, name: str) -> None:
        if not self.has_template(name):
            raise TemplateMissingError(f"template not found: {name}")

    def _site_fields(self) -> dict[str, Any]:
        return {
            "website_title": self.config.title,
            "website_owner": self.config.owner,
            "website_description": self.config.description,
            "base_url": self.config.base_url,
            "categories": self.categories,
            "tags": self.tags,
            "pages": self.pages,
        }

    def _list_layout(
        self,
        posts: PostCollection,
        list_type: ListType,
        path: str,
        page_number: int,
        **content: str,
    ) -> ListLayout:
        paginator = Paginator(posts, self.config.pagination)
        return ListLayout(
            **self._site_fields(),
            **content,
            type=list_type,
            path=path,
            posts=paginator.page(page_number),
            current_page=max(page_number, 1),
            max_page=paginator.count,
        )

    def _load_templates(self, entry: str) -> dict[str, str]:
        """Read the base partials and the entry template into one namespace."""
        try:
            entries = sorted(self.theme_dir.iterdir(), key=lambda p: p.name)
            templates = {
                path.name: path.read_text(encoding="utf-8")
                for path in entries
                if path.name.startswith(PARTIAL_PREFIX)
                and path.suffix == ".html"
                and path.is_file()
            }
            templates[entry] = (self.theme_dir / entry).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise RenderError(f"Unable to read theme {self.theme_dir}: {exc}") from exc
        return templates

    def _execute(self, entry: str, layout: Layout, out: TextIO) -> None:
        """Execute ``entry`` against the view model, streaming into ``out``."""
        self.config.validate()
        env = Environment(
            loader=DictLoader(self._load_templates(entry)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        env.globals.update(self.functions)
        try:
            template = env.get_template(entry)
            template.stream(**layout.context()).dump(out)
        except TemplateError as exc:
            raise RenderError(f"{entry}: {exc}") from exc
