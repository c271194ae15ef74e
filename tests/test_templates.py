import io

import pytest

from spook.config import Config, ConfigError, load_config
from spook.content import ContentParser
from spook.layouts import ListLayout, ListType
from spook.templates import (
    Renderer,
    RenderError,
    TemplateMissingError,
    add,
    default_functions,
    format_time,
    limit_sentence,
)


def make_renderer(site):
    config = load_config(site.root)
    parser = ContentParser(site.root)
    parsed = parser.parse_posts()
    return Renderer(
        config,
        config.theme_dir(site.root),
        posts=parsed.posts,
        pages=parser.parse_pages(),
        categories=parsed.categories,
        tags=parsed.tags,
    )


def render(method, *args):
    buffer = io.StringIO()
    result = method(*args, buffer) if args else method(buffer)
    return buffer.getvalue(), result


def test_limit_sentence():
    text = "One. Two? Three! Four"
    assert limit_sentence(text, 1) == "One."
    assert limit_sentence(text, 2) == "One. Two?"
    assert limit_sentence(text, 10) == text
    assert limit_sentence("Only one.", 3) == "Only one."
    assert limit_sentence(text, 0) == ""
    assert limit_sentence("", 2) == ""


def test_format_time_and_add():
    assert format_time("2024-01-15 08:30:00 +0700", "%Y/%m/%d") == "2024/01/15"
    assert format_time("not a time", "%Y") == ""
    assert add(2, 3) == 5


def test_default_functions_are_fresh_tables():
    first = default_functions()
    first["extra"] = lambda: None
    assert "extra" not in default_functions()
    assert set(default_functions()) == {"add", "format_time", "limit_sentence", "pygments_css"}


def test_render_front_page_falls_back_to_list(site):
    site.post("a", "Hello")
    html, count = render(make_renderer(site).render_front_page)
    assert count == 1
    assert "<title>Test Site</title>" in html
    assert "[Hello]" in html


def test_render_front_page_prefers_frontpage_template(site):
    site.theme({"frontpage.html": "front {{ posts|length }} {{ content_author }}"})
    html, _ = render(make_renderer(site).render_front_page)
    assert html == "front 0 Site Owner"


def test_front_page_shows_first_list_page(site):
    site.config(pagination=1)
    site.post("a", "Older", created="2024-01-01 00:00:00 +0000", tags=["go"])
    site.post("b", "Newer", created="2024-01-02 00:00:00 +0000")
    renderer = make_renderer(site)
    html, count = render(renderer.render_front_page)
    assert count == 1
    assert "[Newer] page 1/2" in html
    assert [p.title for p in renderer.list_posts(ListType.DEFAULT)] == ["Newer", "Older"]
    assert [p.title for p in renderer.list_posts(ListType.TAG, "go")] == ["Older"]
    assert [p.title for p in renderer.list_posts(ListType.CATEGORY, "uncategorized")] == [
        "Newer",
        "Older",
    ]


def test_empty_template_counts_as_missing(site):
    site.theme({"frontpage.html": "", "index.html": "index page"})
    html, _ = render(make_renderer(site).render_front_page)
    assert html == "index page"


def test_front_page_without_templates(site):
    (site.root / "theme" / "plain" / "list.html").unlink()
    with pytest.raises(TemplateMissingError):
        render(make_renderer(site).render_front_page)


def test_missing_post_template(site):
    site.post("a", "Hello")
    (site.root / "theme" / "plain" / "post.html").unlink()
    renderer = make_renderer(site)
    with pytest.raises(TemplateMissingError, match="post.html"):
        render(renderer.render_post, renderer.posts[0])


def test_render_list_paginates(site):
    site.config(pagination=2)
    for n in range(5):
        site.post(f"p{n}", f"Post {n}", created=f"2024-01-0{n + 1} 00:00:00 +0000")
    renderer = make_renderer(site)

    html, count = render(renderer.render_list, ListType.DEFAULT, "", 1)
    assert count == 2
    assert "[Post 4][Post 3]" in html
    assert "page 1/3" in html

    html, count = render(renderer.render_list, ListType.DEFAULT, "", 3)
    assert count == 1
    assert "[Post 0]" in html

    _, count = render(renderer.render_list, ListType.DEFAULT, "", 4)
    assert count == 0


def test_render_list_by_category_and_tag(site):
    site.post("a", "In Tech", category="Tech", tags=["go"])
    site.post("b", "No Category", tags=["go"])
    renderer = make_renderer(site)

    html, count = render(renderer.render_list, ListType.CATEGORY, "Tech", 1)
    assert (count, "[In Tech]" in html, "<h1>Tech</h1>" in html) == (1, True, True)

    html, count = render(renderer.render_list, ListType.CATEGORY, "uncategorized", 1)
    assert count == 1
    assert "[No Category]" in html

    _, count = render(renderer.render_list, ListType.TAG, "go", 1)
    assert count == 2


def test_render_post_with_neighbours_and_author(site):
    site.post("a", "Oldest", created="2024-01-01 00:00:00 +0000")
    site.post("b", "Middle", created="2024-01-02 00:00:00 +0000", author="Guest")
    site.post("c", "Newest", created="2024-01-03 00:00:00 +0000", body="Some *markdown*.\n")
    renderer = make_renderer(site)
    newest, middle, _ = renderer.posts

    html, _ = render(renderer.render_post, middle)
    assert "by Guest" in html
    assert "older=Oldest" in html
    assert "newer=Newest" in html

    html, _ = render(renderer.render_post, newest)
    assert "by Site Owner" in html
    assert "<em>markdown</em>" in html
    assert "newer=" not in html


def test_render_page_and_not_found(site):
    site.page("about", "About", body="Hello <b>there</b>\n")
    renderer = make_renderer(site)
    html, _ = render(renderer.render_page, renderer.pages[0])
    assert "<h1>About</h1>" in html
    assert "<b>there</b>" in html

    html, _ = render(renderer.render_not_found)
    assert "nothing here" in html


def test_variables_are_escaped(site):
    site.post("a", "<script>x</script>")
    html, _ = render(make_renderer(site).render_front_page)
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_url_for_joins_base_url(site):
    site.config(baseURL="https://example.com/blog/")
    site.theme({"list.html": "{{ url_for('/posts') }} {{ url_for('https://x.org/a') }}"})
    html, _ = render(make_renderer(site).render_front_page)
    assert html == "https://example.com/blog/posts https://x.org/a"


def test_custom_function_table(site):
    site.theme({"list.html": "{{ shout('hi') }}"})
    config = load_config(site.root)
    renderer = Renderer(
        config,
        config.theme_dir(site.root),
        functions={"shout": lambda s: s.upper()},
    )
    html, _ = render(renderer.render_front_page)
    assert html == "HI"


def test_template_errors_become_render_errors(site):
    site.theme({"list.html": "{% for %}"})
    with pytest.raises(RenderError):
        render(make_renderer(site).render_front_page)
    site.theme({"list.html": "{{ missing.attribute }}"})
    with pytest.raises(RenderError):
        render(make_renderer(site).render_front_page)


def test_render_validates_config(tmp_path):
    theme = tmp_path / "theme"
    theme.mkdir()
    (theme / "list.html").write_text("x", encoding="utf-8")
    renderer = Renderer(Config(base_url="", theme="theme"), theme)
    with pytest.raises(ConfigError):
        render(renderer.render_front_page)


def test_list_layout_page_links():
    layout = ListLayout(path="/tag/go", current_page=2, max_page=3)
    assert (layout.prev_page, layout.next_page) == (1, 3)
    assert layout.page_url(1) == "/tag/go"
    assert layout.page_url(3) == "/tag/go/3"
    last = ListLayout(current_page=3, max_page=3)
    assert last.next_page is None
