from spook.renderers import highlight_code, pygments_css, render_markdown


def test_headings_get_unique_ids():
    html = render_markdown("# Intro\n\n## Intro\n\n## Setup and Use\n")
    assert '<h1 id="intro">Intro</h1>' in html
    assert '<h2 id="intro-1">Intro</h2>' in html
    assert 'id="setup-and-use"' in html


def test_fenced_code_is_highlighted():
    html = render_markdown("```python\ndef greet():\n    return 1\n```\n")
    assert 'class="highlight"' in html
    assert "greet" in html


def test_highlight_code_unknown_language_falls_back():
    html = highlight_code("plain words here", "not-a-language")
    assert 'class="highlight"' in html
    assert "words" in html


def test_markdown_plugins():
    html = render_markdown("~~gone~~ and https://example.com\n\n| a |\n|---|\n| 1 |\n")
    assert "<del>gone</del>" in html
    assert '<a href="https://example.com">' in html
    assert "<table>" in html


def test_pygments_css_targets_highlight_class():
    assert ".highlight" in pygments_css()
