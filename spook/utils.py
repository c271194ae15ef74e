"""Utility functions for Spook.

This module contains the filesystem and string helpers shared by the build,
server and CLI modules.

Key functions:
    join_url: Join a base URL with a path.
    ensure_clean_dir: Ensure a directory exists and is empty.
    copy_tree: Copy a directory tree, skipping excluded names and symlinks.
    is_empty_dir: Check whether a directory has no entries.
    create_dir_name: Build a unique directory name from a title.
    safe_join: Resolve a relative request path inside a root directory.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Callable, Collection
from pathlib import Path

_UNSAFE_NAME_RE = re.compile(r"[^\w-]+")


def join_url(base_url: str, path: str) -> str:
    """Safely join a base URL and a path, avoiding double slashes.

    Args:
        base_url: Base URL (e.g., https://example.com/blog) or absolute path.
        path: Path beginning with or without a leading slash.

    Returns:
        Combined URL. External URLs are returned unchanged.

    Examples:
        >>> join_url('https://example.com/', '/about')
        'https://example.com/about'

        >>> join_url('/', 'posts')
        '/posts'
    """
    if path.startswith(("http://", "https://", "//")):
        return path
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base_url.rstrip('/')}{suffix}"


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    The directory itself is kept; everything inside it is removed.

    Args:
        path: Directory path to clean or create.
    """
    path.mkdir(parents=True, exist_ok=True)
    for item in path.iterdir():
        if item.is_dir() and not item.is_symlink():
            shutil.rmtree(item)
        else:
            item.unlink()


def copy_tree(
    src: Path,
    dst: Path,
    exclude: Collection[str] = (),
    transform: Callable[[Path, Path], bool] | None = None,
) -> None:
    """Copy a directory tree, replacing the destination.

    Symlinks are skipped. Files whose name is in ``exclude`` are not copied.

    Args:
        src: Source directory.
        dst: Destination directory; removed first if it exists.
        exclude: File names to leave out.
        transform: Optional hook called as ``transform(source, dest)`` for each
            file; when it returns True the file is considered written.

    Raises:
        NotADirectoryError: If ``src`` is not a directory.
    """
    if not src.is_dir():
        raise NotADirectoryError(f"Source is not a directory: {src}")
    if dst.exists():
        shutil.rmtree(dst)
    dst.mkdir(parents=True)

    for entry in sorted(src.iterdir(), key=lambda p: p.name):
        if entry.is_symlink():
            continue
        target = dst / entry.name
        if entry.is_dir():
            copy_tree(entry, target, exclude, transform)
        elif entry.name not in exclude:
            if transform is None or not transform(entry, target):
                shutil.copy2(entry, target)


def is_empty_dir(path: Path) -> bool:
    """Check whether a directory exists and has no entries."""
    try:
        return not any(path.iterdir())
    except OSError:
        return False


def _name_words(title: str) -> list[str]:
    words = (_UNSAFE_NAME_RE.sub("", word.lower()) for word in title.split())
    return [word for word in words if word]


def create_dir_name(title: str, parent: Path, limit: int) -> str:
    """Build a unique directory name under ``parent`` from a title.

    Words are lower-cased and joined with ``-``; words stop being added once
    the name reaches ``limit`` characters. ``-1`` is appended until the name
    does not clash with an existing directory.

    Examples:
        >>> create_dir_name("Hello World", Path("post"), 80)
        'hello-world'
    """
    name = ""
    for word in _name_words(title):
        name = f"{name}-{word}" if name else word
        if len(name) >= limit:
            break
    name = name or "untitled"
    while (parent / name).is_dir():
        name += "-1"
    return name


def safe_join(root: Path, relative: str) -> Path | None:
    """Resolve ``relative`` inside ``root``.

    Returns:
        The resolved path, or None when it would escape ``root`` or cannot
        be resolved (e.g. it contains a NUL byte).
    """
    base = root.resolve()
    try:
        target = (base / relative.lstrip("/")).resolve()
    except ValueError:
        return None
    if target != base and base not in target.parents:
        return None
    return target
