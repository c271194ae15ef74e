from pathlib import Path

import pytest
import tomli_w
from PIL import Image

MINIMAL_THEME = {
    "_base.html": (
        "<title>{{ website_title }}</title>"
        "{% block content %}{% endblock %}"
    ),
    "list.html": (
        '{% extends "_base.html" %}{% block content %}'
        "<h1>{{ content_title }}</h1>"
        "{% for post in posts %}[{{ post.title }}]{% endfor %}"
        " page {{ layout.current_page }}/{{ layout.max_page }}"
        "{% endblock %}"
    ),
    "page.html": (
        '{% extends "_base.html" %}{% block content %}'
        "<h1>{{ content_title }}</h1>{{ html }}"
        "{% endblock %}"
    ),
    "post.html": (
        '{% extends "_base.html" %}{% block content %}'
        "<h1>{{ content_title }}</h1>by {{ content_author }}{{ html }}"
        "{% if older %} older={{ older.title }}{% endif %}"
        "{% if newer %} newer={{ newer.title }}{% endif %}"
        "{% endblock %}"
    ),
    "404.html": '{% extends "_base.html" %}{% block content %}nothing here{% endblock %}',
}


class SiteBuilder:
    """Writes a Spook project tree under ``root`` for tests."""

    def __init__(self, root: Path):
        self.root = root
        for name in ("static", "theme", "page", "post"):
            (root / name).mkdir(parents=True, exist_ok=True)

    def config(self, **values) -> Path:
        data = {
            "title": "Test Site",
            "description": "A site for tests",
            "owner": "Site Owner",
            "baseURL": "/",
            "pagination": 10,
            "theme": "plain",
        }
        data.update(values)
        path = self.root / "config.toml"
        path.write_text(tomli_w.dumps(data), encoding="utf-8")
        return path

    def theme(self, files=None, name="plain") -> Path:
        theme_dir = self.root / "theme" / name
        theme_dir.mkdir(parents=True, exist_ok=True)
        for rel, text in (MINIMAL_THEME if files is None else files).items():
            path = theme_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return theme_dir

    def item(self, kind: str, name: str, metadata: dict, body: str = "Body text.\n") -> Path:
        directory = self.root / kind / name
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "_index.md").write_text(
            f"+++\n{tomli_w.dumps(metadata)}+++\n{body}", encoding="utf-8"
        )
        return directory

    def post(
        self,
        name: str,
        title: str,
        created: str = "2024-01-15 08:00:00 +0000",
        body: str = "Body text.\n",
        **fields,
    ) -> Path:
        metadata = {"title": title, "createdAt": created}
        metadata.update(fields)
        return self.item("post", name, metadata, body)

    def page(self, name: str, title: str, body: str = "Body text.\n", **fields) -> Path:
        metadata = {"title": title}
        metadata.update(fields)
        return self.item("page", name, metadata, body)

    def raw(self, kind: str, name: str, content: str) -> Path:
        directory = self.root / kind / name
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "_index.md").write_text(content, encoding="utf-8")
        return directory


def write_png(path: Path, size=(4, 4)) -> Path:
    Image.new("RGB", size, color=(200, 30, 30)).save(path, format="PNG")
    return path


@pytest.fixture
def site(tmp_path):
    """An empty site with a valid config and the minimal theme."""
    builder = SiteBuilder(tmp_path / "site")
    builder.config()
    builder.theme()
    return builder


@pytest.fixture
def png_writer():
    return write_png
