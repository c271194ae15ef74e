import http.client
import threading

import pytest

from spook.config import ConfigError
from spook.server import SiteServer


@pytest.fixture
def serve(site):
    """Start a SiteServer for the site on a free port and return a request helper."""
    httpd = SiteServer(site.root, port=0, host="127.0.0.1").create_server()
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    port = httpd.server_address[1]

    def request(path, method="GET"):
        conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
        try:
            conn.request(method, path)
            response = conn.getresponse()
            return response.status, response, response.read().decode("utf-8")
        finally:
            conn.close()

    yield request
    httpd.shutdown()
    httpd.server_close()


@pytest.fixture
def paginate_by_one(site):
    """Write pagination=1 before the server loads its config."""
    site.config(pagination=1)


def test_front_page_and_lists(site, paginate_by_one, serve):
    site.config(pagination=1)
    site.post("a", "First", created="2024-01-01 00:00:00 +0000", category="Tech", tags=["go"])
    site.post("b", "Second", created="2024-01-02 00:00:00 +0000")

    status, response, body = serve("/")
    assert status == 200
    assert response.getheader("Content-Type") == "text/html; charset=utf-8"
    assert "[Second]" in body

    status, _, body = serve("/posts/2")
    assert (status, "[First]" in body) == (200, True)

    status, _, body = serve("/category/Tech")
    assert (status, "[First]" in body) == (200, True)

    status, _, body = serve("/category/uncategorized/")
    assert (status, "[Second]" in body) == (200, True)

    status, _, body = serve("/tag/go")
    assert (status, "[First]" in body) == (200, True)


def test_unknown_groups_and_pages_are_not_found(site, serve):
    site.post("a", "First")
    for path in ("/category/nope", "/tag/nope", "/posts/5", "/nowhere", "/post/missing/"):
        status, _, body = serve(path)
        assert status == 404, path
        assert "nothing here" in body


def test_plain_not_found_without_theme_template(site, serve):
    (site.root / "theme" / "plain" / "404.html").unlink()
    status, response, body = serve("/nowhere")
    assert status == 404
    assert body == "404 page not found"
    assert response.getheader("Content-Type").startswith("text/plain")


def test_posts_and_pages_render_live(site, serve):
    directory = site.post("hello", "Hello")
    (directory / "notes.txt").write_text("attached", encoding="utf-8")
    site.page("about", "About")

    status, _, body = serve("/post/hello/")
    assert (status, "<h1>Hello</h1>" in body) == (200, True)

    status, _, body = serve("/post/hello/notes.txt")
    assert (status, body) == (200, "attached")

    status, _, _ = serve("/post/hello/_index.md")
    assert status == 404

    status, _, body = serve("/page/about/")
    assert (status, "<h1>About</h1>" in body) == (200, True)

    # content edits show up without a rebuild
    site.post("hello", "Hello Again")
    _, _, body = serve("/post/hello/")
    assert "<h1>Hello Again</h1>" in body


def test_missing_trailing_slash_redirects(site, serve):
    site.page("about", "About")
    status, response, _ = serve("/page/about")
    assert status == 301
    assert response.getheader("Location") == "/page/about/"


def test_static_and_theme_files(site, serve):
    (site.root / "static" / "robots.txt").write_text("User-agent: *", encoding="utf-8")
    css = site.root / "theme" / "plain" / "css"
    css.mkdir()
    (css / "style.css").write_text("body{}", encoding="utf-8")

    status, _, body = serve("/static/robots.txt")
    assert (status, body) == (200, "User-agent: *")

    status, response, body = serve("/css/style.css")
    assert (status, body) == (200, "body{}")
    assert response.getheader("Content-Type") == "text/css"

    status, _, _ = serve("/css/../../../config.toml")
    assert status == 404
    status, _, _ = serve("/static/%2e%2e/config.toml")
    assert status == 404
    status, _, _ = serve("/css/style%00.css")
    assert status == 404
    status, _, _ = serve("/post/missing/a%00b.txt")
    assert status == 404


def test_head_request_has_no_body(site, serve):
    status, response, body = serve("/", method="HEAD")
    assert status == 200
    assert int(response.getheader("Content-Length")) > 0
    assert body == ""


def test_render_failures_are_server_errors(site, serve):
    site.post("a", "A")
    site.theme({"post.html": "{% for %}"})
    status, _, body = serve("/post/a/")
    assert status == 500
    assert "post.html" in body

    (site.root / "theme" / "plain" / "list.html").unlink()
    status, _, body = serve("/")
    assert status == 500
    assert "template not found" in body


def test_server_requires_valid_config(site):
    site.config(theme="missing")
    with pytest.raises(ConfigError):
        SiteServer(site.root)
    site.config(baseURL="")
    with pytest.raises(ConfigError):
        SiteServer(site.root)
