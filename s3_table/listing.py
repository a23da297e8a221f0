from __future__ import annotations
"""Pure search, sort and pagination helpers over object metadata."""
import math
from typing import Iterable, Sequence

from .models import (
    SORT_BY_KEY,
    SORT_BY_LAST_MODIFIED,
    SORT_BY_SIZE,
    SORT_DESCENDING,
    SORT_DIRECTIONS,
    SORT_KEYS,
    ObjectMeta,
)

PAGE_SIZE = 300

_SORT_ATTRIBUTES = {
    SORT_BY_KEY: lambda obj: obj.key,
    SORT_BY_SIZE: lambda obj: obj.size,
    SORT_BY_LAST_MODIFIED: lambda obj: obj.last_modified,
}


def filter_objects(objects: Iterable[ObjectMeta], term: str) -> tuple[ObjectMeta, ...]:
    """Return the objects whose key contains ``term``, ignoring case.

    Only the key is searched. An empty term keeps every object.
    """

    if not term:
        return tuple(objects)
    needle = term.casefold()
    return tuple(obj for obj in objects if needle in obj.key.casefold())


def sort_objects(
    objects: Iterable[ObjectMeta],
    sort_key: str,
    direction: str,
) -> tuple[ObjectMeta, ...]:
    """Return a new tuple ordered by ``sort_key``.

    The sort is stable in both directions: objects that compare equal keep
    the order they had in ``objects``.
    """

    if sort_key not in SORT_KEYS:
        raise ValueError(f"sort_key must be one of {', '.join(SORT_KEYS)}")
    if direction not in SORT_DIRECTIONS:
        raise ValueError(f"direction must be one of {', '.join(SORT_DIRECTIONS)}")
    return tuple(
        sorted(
            objects,
            key=_SORT_ATTRIBUTES[sort_key],
            reverse=direction == SORT_DESCENDING,
        )
    )


def page_count(total: int, page_size: int = PAGE_SIZE) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be greater than zero")
    return max(1, math.ceil(total / page_size))


def clamp_page(page: int, total: int, page_size: int = PAGE_SIZE) -> int:
    return min(max(int(page), 1), page_count(total, page_size))


def paginate(
    objects: Sequence[ObjectMeta],
    page_number: int,
    page_size: int = PAGE_SIZE,
) -> tuple[ObjectMeta, ...]:
    """Slice one 1-indexed page out of ``objects``.

    Out-of-range pages are not clamped here and simply come back empty.
    """

    if page_size <= 0:
        raise ValueError("page_size must be greater than zero")
    if page_number < 1:
        raise ValueError("page_number must be 1 or greater")
    start = (page_number - 1) * page_size
    return tuple(objects[start:start + page_size])
