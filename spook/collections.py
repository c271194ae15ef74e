from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from .content import Page, Post

T = TypeVar("T")

UNCATEGORIZED = "uncategorized"


@dataclass(frozen=True)
class Group:
    """A category or tag with its list path and number of posts."""

    name: str
    path: str
    count: int = 0


def category_group(name: str, count: int = 0) -> Group:
    name = name.strip()
    return Group(name=name, path=f"/category/{name or UNCATEGORIZED}", count=count)


def tag_group(name: str, count: int = 0) -> Group:
    name = name.strip()
    return Group(name=name, path=f"/tag/{name}", count=count)


def group_categories(posts: Iterable[Post]) -> list[Group]:
    """Count posts per trimmed category, the empty category included."""
    counts = Counter(post.category.strip() for post in posts)
    return sorted(
        (category_group(name, n) for name, n in counts.items()),
        key=lambda g: g.name,
    )


def group_tags(posts: Iterable[Post]) -> list[Group]:
    """Count posts per trimmed tag, ignoring empty tags."""
    counts: Counter[str] = Counter()
    for post in posts:
        for tag in {t.strip() for t in post.tags}:
            if tag:
                counts[tag] += 1
    return sorted(
        (tag_group(name, n) for name, n in counts.items()),
        key=lambda g: g.name,
    )


def sort_posts(posts: Iterable[Post]) -> list[Post]:
    """Sort posts by update time, newest first.

    The sort is stable: posts sharing a timestamp keep their input order.
    """
    return sorted(posts, key=lambda p: p.updated, reverse=True)


def sort_pages(pages: Iterable[Page]) -> list[Page]:
    return sorted(pages, key=lambda p: p.title)


def page_count(length: int, page_size: int) -> int:
    """Number of pages needed to show ``length`` items, ``page_size`` at a time."""
    if page_size < 1:
        raise ValueError("page size must be at least 1")
    return math.ceil(length / page_size)


def paginate(items: Sequence[T], page_number: int, page_size: int) -> list[T]:
    """Return the items on a 1-indexed page.

    Page numbers below 1 are clamped to 1. A page past the end is empty, which
    callers treat as "no more pages".
    """
    if page_size < 1:
        raise ValueError("page size must be at least 1")
    start = (max(page_number, 1) - 1) * page_size
    return list(items[start : start + page_size])


class Paginator:
    """Fixed-size pages over an ordered sequence."""

    def __init__(self, items: Sequence[T], page_size: int):
        if page_size < 1:
            raise ValueError("page size must be at least 1")
        self.items = items
        self.page_size = page_size

    @property
    def count(self) -> int:
        return page_count(len(self.items), self.page_size)

    def page(self, number: int) -> list[T]:
        return paginate(self.items, number, self.page_size)

    def pages(self) -> Iterator[tuple[int, list[T]]]:
        """Yield ``(number, items)`` until the first empty page.

        Page 1 is always yielded, even for an empty sequence.
        """
        number = 1
        while True:
            items = self.page(number)
            if not items and number > 1:
                return
            yield number, items
            number += 1


class PostCollection(Sequence["Post"]):
    """Lightweight helper for working with lists of Posts in templates and code."""

    def __init__(self, posts: Iterable[Post]):
        self._posts = list(posts)

    def __iter__(self) -> Iterator[Post]:
        return iter(self._posts)

    def __len__(self) -> int:
        return len(self._posts)

    def __getitem__(self, item):
        return self._posts[item]

    def in_category(self, name: str) -> PostCollection:
        """Posts whose category is ``name``; ``uncategorized`` selects the empty category."""
        if name == UNCATEGORIZED:
            name = ""
        return PostCollection(p for p in self._posts if p.category == name)

    def with_tag(self, tag: str) -> PostCollection:
        return PostCollection(p for p in self._posts if tag in p.tags)

    def find(self, path: str) -> Post | None:
        return next((p for p in self._posts if p.path == path), None)

    def neighbours(self, post: Post) -> tuple[Post | None, Post | None]:
        """Return the ``(older, newer)`` posts around ``post`` in this ordering."""
        index = self._posts.index(post)
        newer = self._posts[index - 1] if index > 0 else None
        older = self._posts[index + 1] if index + 1 < len(self._posts) else None
        return older, newer

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PostCollection({len(self._posts)} posts)"
