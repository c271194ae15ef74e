"""Command-line interface for Spook.

This module defines the CLI commands using Click framework.
It provides commands for scaffolding sites, themes and content, building the
site, and running the web server.

Commands:
- new site: Scaffold a new Spook site.
- new theme: Create a theme from the starter theme.
- new page / new post: Create a content directory with its front matter.
- build: Build the site into the publish directory.
- server: Serve the site, rendering on every request.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path

import click
import questionary
import tomli_w

from . import __version__
from .config import CONFIG_FILENAME, DEFAULT_PAGINATION, ConfigError, load_config
from .content import INDEX_FILENAME, PAGE_DIR, POST_DIR, format_timestamp
from .utils import create_dir_name, is_empty_dir

# Theme copied by ``new theme``
_STARTER_DIR = Path(__file__).parent / "starter"
_THEME_ASSET_DIRS = ("css", "js", "res")

PAGE_NAME_LIMIT = 80
POST_NAME_LIMIT = 90

SITE_DIRS = ("static", "theme", PAGE_DIR, POST_DIR)


@click.group()
@click.version_option(version=__version__, prog_name="spook")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
def cli(verbose: bool):
    """Spook static site generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )


@cli.group()
def new():
    """Create a site, theme, page or post."""


@new.command("site")
@click.argument("path")
@click.option("--force", is_flag=True, help="Create the site in a non-empty directory")
def new_site(path: str, force: bool):
    """Scaffold a new Spook site."""
    target = Path(path).resolve()
    if target.exists() and not force and not is_empty_dir(target):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )

    title = _ask(
        questionary.text(
            "Website title:",
            validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
            style=_questionary_style(),
        )
    )
    owner = _ask(questionary.text("Website owner:", style=_questionary_style()))
    base_url = _ask(
        questionary.text("Base URL:", default="/", style=_questionary_style())
    )

    for name in SITE_DIRS:
        (target / name).mkdir(parents=True, exist_ok=True)

    config = {
        "title": title.strip(),
        "description": "",
        "owner": owner.strip(),
        "baseURL": base_url.strip() or "/",
        "pagination": DEFAULT_PAGINATION,
        "theme": "",
    }
    with open(target / CONFIG_FILENAME, "wb") as f:
        tomli_w.dump(config, f)

    click.echo(f"New Spook site created at {target}")
    click.echo("Next, create a theme with `spook new theme <name>` and set it in config.toml")


@new.command("theme")
@click.argument("name")
def new_theme(name: str):
    """Create a theme from the starter theme."""
    project_root = Path.cwd()
    _require_config(project_root, check_theme=False)

    target = project_root / "theme" / name
    if target.exists() and not is_empty_dir(target):
        raise click.ClickException(f"Theme directory is not empty: {target}")

    _copy_starter_theme(target)
    click.echo(f"Created theme {name} at {target.relative_to(project_root)}")


@new.command("page")
@click.argument("title")
def new_page(title: str):
    """Create a new page."""
    project_root = Path.cwd()
    _require_config(project_root, check_theme=False)

    page_dir = project_root / PAGE_DIR
    name = create_dir_name(title, page_dir, PAGE_NAME_LIMIT)
    index = _write_item(page_dir / name, {"title": title.strip()})
    click.echo(f"Created {index.relative_to(project_root)}")


@new.command("post")
@click.argument("title")
def new_post(title: str):
    """Create a new blog post."""
    project_root = Path.cwd()
    config = _require_config(project_root, check_theme=False)

    now = datetime.now().astimezone()
    post_dir = project_root / POST_DIR
    date_prefix = now.strftime("%Y-%m-%d")
    name = create_dir_name(title, post_dir, POST_NAME_LIMIT)
    # the date prefix may clash even when the bare name does not
    while (post_dir / f"{date_prefix}-{name}").is_dir():
        name += "-1"

    timestamp = format_timestamp(now)
    index = _write_item(
        post_dir / f"{date_prefix}-{name}",
        {
            "title": title.strip(),
            "excerpt": "",
            "createdAt": timestamp,
            "updatedAt": timestamp,
            "category": "",
            "tags": [],
            "author": config.owner,
        },
    )
    click.echo(f"Created {index.relative_to(project_root)}")


@cli.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False),
    required=False,
    help="Output directory (overrides publishDir in config.toml)",
)
def build(output: str | None):
    """Build the site into the publish directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site

    try:
        result = build_site(project_root, output_dir=output)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from None
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        rel_path = _display_path(exc.target_path, project_root)
        click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    click.echo(
        f"Built {len(result.posts)} posts and {len(result.pages)} pages "
        f"into {result.output_dir}"
    )


@cli.command()
@click.option(
    "--port",
    "-p",
    type=int,
    default=8080,
    show_default=True,
    help="Port to run the web server on",
)
def server(port: int):
    """Serve the site, rendering every request from the sources."""
    project_root = Path.cwd()
    from .server import SiteServer

    try:
        site_server = SiteServer(project_root, port=port)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from None
    site_server.start()


cli.add_command(server, name="serve")


def main():
    """Entry point for the CLI application."""
    cli()


def _ask(question):
    """Ask a questionary question, aborting when the user cancels."""
    answer = question.ask()
    if answer is None:
        raise click.Abort()
    return answer


def _require_config(project_root: Path, check_theme: bool = True):
    try:
        return load_config(project_root, check_theme=check_theme)
    except ConfigError as exc:
        raise click.ClickException(
            f"{exc}. Run this command from a Spook site root."
        ) from None


def _write_item(directory: Path, metadata: dict) -> Path:
    """Create a content directory with an index file holding only front matter."""
    directory.mkdir(parents=True)
    index = directory / INDEX_FILENAME
    index.write_text(f"+++\n{tomli_w.dumps(metadata)}+++\n", encoding="utf-8")
    return index


def _copy_starter_theme(target: Path) -> None:
    """Copy the starter theme into ``target``, creating the asset directories."""
    for src_path in _STARTER_DIR.rglob("*"):
        if src_path.is_dir():
            continue
        rel_path = src_path.relative_to(_STARTER_DIR)
        dest_path = target / rel_path
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)
    for name in _THEME_ASSET_DIRS:
        (target / name).mkdir(parents=True, exist_ok=True)


def _display_path(path: Path, project_root: Path) -> Path:
    try:
        return path.relative_to(project_root)
    except ValueError:
        return path


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )
