"""Markdown rendering for Spook.

Post and page bodies are written in Markdown. This module turns them into HTML
with heading anchors and Pygments syntax highlighting for code blocks.

Key functions:
- render_markdown: Render a Markdown body to HTML.
- highlight_code: Highlight a code block, guessing the language when needed.
"""

from __future__ import annotations

import re

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.lexers.special import TextLexer
from pygments.util import ClassNotFound

HIGHLIGHT_CSS_CLASS = "highlight"


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


def highlight_code(code: str, language: str | None = None) -> str:
    """Render a code block as highlighted HTML.

    Uses the lexer named by ``language`` when Pygments knows it, otherwise
    guesses from the code itself, falling back to plain text.

    Args:
        code: The code content.
        language: Optional language identifier (e.g., 'python').

    Returns:
        HTML string with highlighted code.
    """
    code = code.rstrip("\n")
    lexer = None
    if language:
        try:
            lexer = get_lexer_by_name(language, stripall=True)
        except ClassNotFound:
            lexer = None
    if lexer is None:
        try:
            lexer = guess_lexer(code)
        except ClassNotFound:
            lexer = TextLexer()
    formatter = HtmlFormatter(nowrap=False, cssclass=HIGHLIGHT_CSS_CLASS)
    return highlight(code, lexer, formatter)


def pygments_css() -> str:
    """Return Pygments CSS styles for the highlight class."""
    return HtmlFormatter().get_style_defs(f".{HIGHLIGHT_CSS_CLASS}")


class _HighlightRenderer(mistune.HTMLRenderer):
    """Markdown renderer with heading anchors and syntax highlighting."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = _generate_heading_id(text)

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        language = info.split()[0] if info and info.strip() else None
        return highlight_code(code, language)


def render_markdown(text: str) -> str:
    """Render Markdown content to HTML.

    Args:
        text: Markdown source.

    Returns:
        Rendered HTML.
    """
    markdown = mistune.create_markdown(
        renderer=_HighlightRenderer(),
        plugins=["strikethrough", "footnotes", "table", "url"],
    )
    return markdown(text)
