"""Asset pipeline for Spook.

This module copies the files that are published as-is: the site's ``static/``
directory and every subdirectory of the active theme (``css/``, ``js/``,
``res/`` and so on). JavaScript files from the theme are minified on the way.

Key class:
- AssetPipeline: Copies static and theme assets into the output directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rjsmin import jsmin

from .utils import copy_tree

logger = logging.getLogger(__name__)

STATIC_DIR = "static"


def minify_js(source: Path, dest: Path) -> bool:
    """Write a minified copy of a JavaScript file.

    Returns:
        True if the file was handled, False for non-JavaScript files.
    """
    if source.suffix.lower() != ".js":
        return False
    with open(source, encoding="utf-8") as f_in:
        minified = jsmin(f_in.read())
    with open(dest, "w", encoding="utf-8") as f_out:
        f_out.write(minified)
    return True


class AssetPipeline:
    """Copies static files and theme assets for the site.

    Attributes:
        project_root: Root directory of the site.
        theme_dir: Directory of the active theme.
        output_dir: Directory where assets are written.
        minify: Whether theme JavaScript is minified.
    """

    def __init__(
        self,
        project_root: Path,
        theme_dir: Path,
        output_dir: Path,
        minify: bool = True,
    ):
        self.project_root = project_root
        self.theme_dir = theme_dir
        self.output_dir = output_dir
        self.minify = minify

    def run(self) -> None:
        """Copy ``static/`` and the theme asset directories.

        Raises:
            OSError: If the theme directory cannot be read or a copy fails.
        """
        self._copy_static()
        self._copy_theme()

    def _copy_static(self) -> None:
        static_dir = self.project_root / STATIC_DIR
        if not static_dir.is_dir():
            return
        logger.info("Copying static directory")
        copy_tree(static_dir, self.output_dir / STATIC_DIR)

    def _copy_theme(self) -> None:
        logger.info("Copying theme assets")
        transform = minify_js if self.minify else None
        for item in sorted(self.theme_dir.iterdir(), key=lambda p: p.name):
            if not item.is_dir():
                continue
            copy_tree(item, self.output_dir / item.name, transform=transform)
