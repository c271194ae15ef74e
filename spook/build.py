"""Site building functionality for Spook.

This module contains the core logic for building the static site. It loads the
configuration, copies assets, parses content, renders every view through the
theme and writes the result to the publish directory.

Output layout::

    index.html                     front page
    posts/index.html, posts/2/...  post list pages
    category/<name>/index.html     one list per category ("uncategorized" for none)
    tag/<name>/index.html          one list per tag
    page/<dir>/index.html          pages, with their asset files
    post/<dir>/index.html          posts, with their asset files
    404.html                       when the theme has one
    static/, css/, js/, res/ ...   static directory and theme assets

Key functions:
- build_site: Main function to build the entire site.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from .assets import AssetPipeline
from .collections import UNCATEGORIZED, Paginator
from .config import ConfigError, load_config
from .content import INDEX_FILENAME, ContentError, ContentParser, Page, Post
from .layouts import ListType
from .templates import NOT_FOUND_TEMPLATE, Renderer
from .utils import copy_tree, ensure_clean_dir, safe_join

logger = logging.getLogger(__name__)


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        target_path: Path that was being produced when the error happened.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        target_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.target_path = target_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{target_path}: {message}")


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        posts: Posts that were published.
        pages: Pages that were published.
        output_dir: Directory where the site was built.
        files: HTML files written, in order.
    """

    posts: list[Post]
    pages: list[Page]
    output_dir: Path
    files: list[Path] = field(default_factory=list)


def resolve_output_dir(project_root: Path, output: str | Path) -> Path:
    path = Path(output)
    return path if path.is_absolute() else project_root / path


def build_site(
    project_root: Path,
    output_dir: str | Path | None = None,
    minify: bool = True,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the site.
        output_dir: Optional output directory, overriding ``publishDir``.
        minify: Whether theme JavaScript is minified.

    Returns:
        BuildResult describing what was published.

    Raises:
        ConfigError: If the configuration or theme is unusable.
        BuildError: If anything fails while producing the output.
    """
    config = load_config(project_root)
    theme_dir = config.theme_dir(project_root)
    if not theme_dir.is_dir():
        raise ConfigError(f"Theme directory does not exist: {theme_dir}")

    out = resolve_output_dir(project_root, output_dir or config.publish_dir)
    try:
        ensure_clean_dir(out)
        AssetPipeline(project_root, theme_dir, out, minify=minify).run()
    except OSError as exc:
        raise BuildError(out, _format_error_message(exc), exc) from exc

    parser = ContentParser(project_root)
    try:
        parsed = parser.parse_posts()
        pages = parser.parse_pages()
    except ContentError as exc:
        raise BuildError(project_root, str(exc), exc) from exc

    renderer = Renderer(
        config,
        theme_dir,
        posts=parsed.posts,
        pages=pages,
        categories=parsed.categories,
        tags=parsed.tags,
    )
    result = BuildResult(posts=parsed.posts, pages=pages, output_dir=out)

    logger.info("Building front page")
    _render_to(result, out / "index.html", renderer.render_front_page)

    logger.info("Building list of posts")
    _build_list(result, renderer, out / "posts", ListType.DEFAULT, "")

    logger.info("Building list of posts by category")
    if any(category.name == UNCATEGORIZED for category in parsed.categories):
        logger.warning(
            "Category '%s' shares its list with posts without a category; "
            "its posts are not listed there",
            UNCATEGORIZED,
        )
    for category in parsed.categories:
        name = category.name or UNCATEGORIZED
        list_dir = _group_dir(out / "category", name)
        if list_dir is not None:
            _build_list(result, renderer, list_dir, ListType.CATEGORY, name)

    logger.info("Building list of posts by tag")
    for tag in parsed.tags:
        list_dir = _group_dir(out / "tag", tag.name)
        if list_dir is not None:
            _build_list(result, renderer, list_dir, ListType.TAG, tag.name)

    logger.info("Building pages")
    for page in pages:
        target = _copy_item_dir(out, page)
        _render_to(result, target / "index.html", lambda f, p=page: renderer.render_page(p, f))

    logger.info("Building posts")
    for post in parsed.posts:
        target = _copy_item_dir(out, post)
        _render_to(result, target / "index.html", lambda f, p=post: renderer.render_post(p, f))

    if renderer.has_template(NOT_FOUND_TEMPLATE):
        logger.info("Building 404 page")
        _render_to(result, out / "404.html", renderer.render_not_found)

    logger.info("Built %d files into %s", len(result.files), out)
    return result


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type in ("RenderError", "TemplateMissingError", "ConfigError"):
        return error_msg
    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"

    return f"{error_type}: {error_msg}"


def _render_to(
    result: BuildResult, target: Path, render: Callable[[TextIO], int | None]
) -> int | None:
    """Stream a render call into ``target``.

    Raises:
        BuildError: If the file cannot be written or the render fails.
    """
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            rendered = render(f)
    except Exception as exc:
        raise BuildError(target, _format_error_message(exc), exc) from exc
    result.files.append(target)
    return rendered


def _build_list(
    result: BuildResult,
    renderer: Renderer,
    list_dir: Path,
    list_type: ListType,
    group_name: str,
) -> None:
    """Write every page of a post list, stopping at the first empty page.

    Page 1 goes to ``<list_dir>/index.html`` and is always written; page ``n``
    goes to ``<list_dir>/<n>/index.html``.
    """
    paginator = Paginator(
        renderer.list_posts(list_type, group_name), renderer.config.pagination
    )
    for number, _ in paginator.pages():
        page_dir = list_dir if number == 1 else list_dir / str(number)
        _render_to(
            result,
            page_dir / "index.html",
            lambda f, n=number: renderer.render_list(list_type, group_name, n, f),
        )


def _group_dir(root: Path, name: str) -> Path | None:
    """Resolve the list directory of a category or tag below ``root``.

    Names map to a single directory directly below ``root``. Returns None,
    after logging, for names that would land anywhere else.
    """
    list_dir = safe_join(root, name)
    if list_dir is None or list_dir.parent != root.resolve() or list_dir.name != name:
        logger.error("%s/%s: not a valid list directory name, skipped", root.name, name)
        return None
    return list_dir


def _copy_item_dir(out: Path, item: Page | Post) -> Path:
    """Copy a post or page directory, minus its index file, into the output."""
    target = out / item.path.strip("/")
    try:
        copy_tree(item.source.parent, target, exclude={INDEX_FILENAME})
    except OSError as exc:
        raise BuildError(target, _format_error_message(exc), exc) from exc
    return target
