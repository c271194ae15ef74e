"""Web server for Spook.

Serves the site straight from its sources: every request re-parses the content
directories and re-reads the theme templates, so edits show up on reload
without a build step. Nothing is cached between requests.

Routes (GET and HEAD):
- ``/css/*``, ``/js/*``, ``/res/*``: theme asset files.
- ``/static/*``: files from the ``static/`` directory.
- ``/``: front page.
- ``/posts[/<n>]``, ``/category/<name>[/<n>]``, ``/tag/<name>[/<n>]``: post lists.
- ``/page/<name>/``, ``/post/<name>/``: a page or post; other files below
  them are served from the item directory. Missing trailing slashes redirect.

Errors are mapped at the request boundary: NotFound and missing files give a
404 (rendered with the theme's 404.html when it has one), everything else a 500.

Key classes:
- SiteServer: Binds the HTTP server for a site.
- SiteRequestHandler: Routes requests and renders responses.
"""

from __future__ import annotations

import io
import logging
import re
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import unquote, urlsplit

from . import __version__
from .collections import UNCATEGORIZED
from .config import Config, ConfigError, load_config
from .content import INDEX_FILENAME, PAGE_DIR, POST_DIR, ContentError, ContentParser
from .layouts import ListType
from .templates import RenderError, Renderer
from .utils import safe_join

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
REQUEST_TIMEOUT = 10
THEME_ASSET_DIRS = ("css", "js", "res")

_NAME = r"(?P<name>[^/]+)"
_NUMBER = r"(?:/(?P<number>\d+))?/?"

ROUTES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(rf"^/(?P<folder>{'|'.join(THEME_ASSET_DIRS)})/(?P<path>.*)$"), "serve_theme_file"),
    (re.compile(r"^/static/(?P<path>.*)$"), "serve_static_file"),
    (re.compile(r"^/$"), "serve_front_page"),
    (re.compile(rf"^/posts{_NUMBER}$"), "serve_post_list"),
    (re.compile(rf"^/category/{_NAME}{_NUMBER}$"), "serve_category_list"),
    (re.compile(rf"^/tag/{_NAME}{_NUMBER}$"), "serve_tag_list"),
    (re.compile(rf"^/(?P<kind>page|post)/{_NAME}$"), "add_suffix_slash"),
    (re.compile(rf"^/page/{_NAME}/(?P<path>.*)$"), "serve_page"),
    (re.compile(rf"^/post/{_NAME}/(?P<path>.*)$"), "serve_post"),
]


class NotFound(Exception):
    """The requested resource does not exist."""


class SiteRequestHandler(SimpleHTTPRequestHandler):
    """HTTP request handler that renders the site on every request.

    Attributes:
        project_root: Root directory of the site.
        config: Site configuration, loaded once at server start.
        theme_dir: Directory of the active theme.
    """

    project_root: Path = Path(".")
    config: Config = Config()
    theme_dir: Path = Path(".")

    server_version = f"spook/{__version__}"
    timeout = REQUEST_TIMEOUT
    _head_only = False

    def do_GET(self):
        self._head_only = False
        self._dispatch()

    def do_HEAD(self):
        self._head_only = True
        self._dispatch()

    def log_message(self, format, *args):
        logger.info("%s - %s", self.address_string(), format % args)

    def _dispatch(self) -> None:
        path = unquote(urlsplit(self.path).path)
        try:
            for pattern, handler_name in ROUTES:
                match = pattern.match(path)
                if match:
                    getattr(self, handler_name)(**match.groupdict())
                    return
            raise NotFound(path)
        except NotFound:
            self.send_not_found()
        except (BrokenPipeError, ConnectionResetError):
            # client went away
            return
        except (ConfigError, ContentError, RenderError) as exc:
            logger.error("%s: %s", path, exc)
            self.send_text(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))
        except Exception as exc:
            logger.exception("Unexpected error while serving %s", path)
            self.send_text(HTTPStatus.INTERNAL_SERVER_ERROR, f"{type(exc).__name__}: {exc}")

    # Response helpers

    def send_body(self, status: int, content_type: str, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if not self._head_only:
            self.wfile.write(body)

    def send_html(self, html: str, status: int = HTTPStatus.OK) -> None:
        self.send_body(status, "text/html; charset=utf-8", html.encode("utf-8"))

    def send_text(self, status: int, message: str) -> None:
        self.send_body(status, "text/plain; charset=utf-8", message.encode("utf-8"))

    def send_file(self, root: Path, relative: str) -> None:
        """Send a file below ``root``, refusing paths that escape it."""
        target = safe_join(root, relative)
        if target is None or not target.is_file():
            raise NotFound(relative)
        self.send_body(HTTPStatus.OK, self.guess_type(str(target)), target.read_bytes())

    def send_not_found(self) -> None:
        try:
            renderer = self.renderer()
            if renderer.has_template("404.html"):
                buffer = io.StringIO()
                renderer.render_not_found(buffer)
                self.send_html(buffer.getvalue(), HTTPStatus.NOT_FOUND)
                return
        except (ConfigError, ContentError, RenderError) as exc:
            logger.error("Unable to render 404 page: %s", exc)
        self.send_text(HTTPStatus.NOT_FOUND, "404 page not found")

    # Rendering

    def renderer(self) -> Renderer:
        """Parse the site from scratch and return a renderer over it."""
        parser = ContentParser(self.project_root)
        parsed = parser.parse_posts()
        pages = parser.parse_pages()
        return Renderer(
            self.config,
            self.theme_dir,
            posts=parsed.posts,
            pages=pages,
            categories=parsed.categories,
            tags=parsed.tags,
        )

    def serve_theme_file(self, folder: str, path: str) -> None:
        self.send_file(self.theme_dir / folder, path)

    def serve_static_file(self, path: str) -> None:
        self.send_file(self.project_root / "static", path)

    def serve_front_page(self) -> None:
        buffer = io.StringIO()
        self.renderer().render_front_page(buffer)
        self.send_html(buffer.getvalue())

    def serve_post_list(self, number: str | None) -> None:
        self._serve_list(ListType.DEFAULT, "", number)

    def serve_category_list(self, name: str, number: str | None) -> None:
        self._serve_list(ListType.CATEGORY, name, number)

    def serve_tag_list(self, name: str, number: str | None) -> None:
        self._serve_list(ListType.TAG, name, number)

    def _serve_list(self, list_type: ListType, name: str, number: str | None) -> None:
        renderer = self.renderer()
        if list_type is ListType.CATEGORY:
            known = {group.name or UNCATEGORIZED for group in renderer.categories}
            if name not in known:
                raise NotFound(name)
        elif list_type is ListType.TAG:
            if name not in {group.name for group in renderer.tags}:
                raise NotFound(name)

        page_number = max(int(number or 1), 1)
        buffer = io.StringIO()
        count = renderer.render_list(list_type, name, page_number, buffer)
        if count == 0 and page_number > 1:
            raise NotFound(f"page {page_number}")
        self.send_html(buffer.getvalue())

    def add_suffix_slash(self, kind: str, name: str) -> None:
        self.send_response(HTTPStatus.MOVED_PERMANENTLY)
        self.send_header("Location", f"/{kind}/{name}/")
        self.send_header("Content-Length", "0")
        self.end_headers()

    def serve_page(self, name: str, path: str) -> None:
        if path:
            self._serve_item_file(PAGE_DIR, name, path)
            return
        renderer = self.renderer()
        page = next((p for p in renderer.pages if p.path == f"/{PAGE_DIR}/{name}"), None)
        if page is None:
            raise NotFound(name)
        buffer = io.StringIO()
        renderer.render_page(page, buffer)
        self.send_html(buffer.getvalue())

    def serve_post(self, name: str, path: str) -> None:
        if path:
            self._serve_item_file(POST_DIR, name, path)
            return
        renderer = self.renderer()
        post = renderer.posts.find(f"/{POST_DIR}/{name}")
        if post is None:
            raise NotFound(name)
        buffer = io.StringIO()
        renderer.render_post(post, buffer)
        self.send_html(buffer.getvalue())

    def _serve_item_file(self, root_name: str, name: str, path: str) -> None:
        if Path(path).name == INDEX_FILENAME:
            raise NotFound(path)
        self.send_file(self.project_root / root_name / name, path)


class SiteServer:
    """Serves a site over HTTP, rendering on every request.

    Attributes:
        project_root: Root directory of the site.
        config: Site configuration.
        port: Port to listen on.
        host: Interface to bind.
    """

    def __init__(self, project_root: Path, port: int = DEFAULT_PORT, host: str = ""):
        """Initialize the server.

        Raises:
            ConfigError: If the configuration or theme is unusable.
        """
        self.project_root = project_root
        self.config = load_config(project_root)
        self.theme_dir = self.config.theme_dir(project_root)
        if not self.theme_dir.is_dir():
            raise ConfigError(f"Theme directory does not exist: {self.theme_dir}")
        self.port = port
        self.host = host

    def handler_class(self) -> type[SiteRequestHandler]:
        return type(
            "_BoundSiteRequestHandler",
            (SiteRequestHandler,),
            {
                "project_root": self.project_root,
                "config": self.config,
                "theme_dir": self.theme_dir,
            },
        )

    def create_server(self) -> ThreadingHTTPServer:
        return ThreadingHTTPServer((self.host, self.port), self.handler_class())

    def start(self) -> None:  # pragma: no cover - integration path
        httpd = self.create_server()
        logger.info("Serve spook in :%d", httpd.server_address[1])
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            httpd.server_close()
