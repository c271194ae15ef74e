"""Metadata extractors for Spook.

This module pulls the pieces of a content item apart: the TOML front matter,
the excerpt fallback and the thumbnail image that sits beside the index file.

Key functions:
- split_frontmatter: Separate the ``+++`` delimited metadata block from the body.
- decode_metadata: Decode the metadata block as TOML.
- first_paragraph_text: Text of the first paragraph of rendered HTML.
- find_thumbnail: Locate the thumbnail image of a content directory.
"""

from __future__ import annotations

import codecs
import tomllib
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup
from PIL import Image

from .config import normalize_key

DELIMITER = b"+++"
THUMBNAIL_PREFIX = "_thumbnail."


class ContentError(Exception):
    """Content could not be read or parsed."""


class MalformedContentError(ContentError):
    """The front matter block is missing or undecodable."""


def split_frontmatter(raw: bytes) -> tuple[bytes, bytes]:
    """Split raw file content into its metadata block and body.

    The content must start with a ``+++`` line; the next ``+++`` line closes
    the metadata block.

    Args:
        raw: Raw bytes of the content file.

    Returns:
        Tuple of (metadata bytes, body bytes).

    Raises:
        MalformedContentError: If the opening or closing delimiter is missing.

    Examples:
        >>> split_frontmatter(b'+++\\ntitle = "Hi"\\n+++\\nBody\\n')
        (b'title = "Hi"\\n', b'Body\\n')
    """
    lines = raw.removeprefix(codecs.BOM_UTF8).splitlines(keepends=True)
    if not lines or lines[0].rstrip() != DELIMITER:
        raise MalformedContentError("malformed content: not started with metadata")
    for index in range(1, len(lines)):
        if lines[index].rstrip() == DELIMITER:
            return b"".join(lines[1:index]), b"".join(lines[index + 1 :])
    raise MalformedContentError("malformed content: metadata block is not closed")


def decode_metadata(metadata: bytes) -> dict[str, Any]:
    """Decode a TOML metadata block.

    Keys are normalized with :func:`spook.config.normalize_key`, so
    ``createdAt``, ``CreatedAt`` and ``created_at`` are the same field.

    Raises:
        MalformedContentError: If the block is not valid UTF-8 TOML.
    """
    try:
        data = tomllib.loads(metadata.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise MalformedContentError(f"unable to parse metadata: {exc}") from exc
    return {normalize_key(key): value for key, value in data.items()}


def first_paragraph_text(html: str) -> str:
    """Return the text of the first ``<p>`` element with whitespace collapsed.

    Args:
        html: Rendered HTML.

    Returns:
        Plain text of the first paragraph, or an empty string.
    """
    paragraph = BeautifulSoup(html, "html.parser").find("p")
    if paragraph is None:
        return ""
    return " ".join(paragraph.get_text().split())


def is_image_file(path: Path) -> bool:
    """Check the file's byte signature and report whether it is an image."""
    try:
        with Image.open(path) as img:
            mime = img.get_format_mimetype()
    except (OSError, Image.DecompressionBombError):
        return False
    return bool(mime) and mime.startswith("image/")


def find_thumbnail(directory: Path) -> str:
    """Find the thumbnail file of a content directory.

    Regular files are examined in name order; the first one whose name starts
    with ``_thumbnail.`` and whose content is an image wins.

    Args:
        directory: Directory of a post or page.

    Returns:
        File name of the thumbnail, or an empty string.
    """
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError:
        return ""
    for entry in entries:
        if not entry.name.startswith(THUMBNAIL_PREFIX) or not entry.is_file():
            continue
        if is_image_file(entry):
            return entry.name
    return ""
