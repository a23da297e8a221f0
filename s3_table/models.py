from __future__ import annotations
"""Data models representing bucket inventories and table views."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

SORT_BY_KEY = "key"
SORT_BY_SIZE = "size"
SORT_BY_LAST_MODIFIED = "last_modified"
SORT_KEYS = (SORT_BY_KEY, SORT_BY_SIZE, SORT_BY_LAST_MODIFIED)

SORT_ASCENDING = "asc"
SORT_DESCENDING = "desc"
SORT_DIRECTIONS = (SORT_ASCENDING, SORT_DESCENDING)

STATE_IDLE = "idle"
STATE_LOADING = "loading"
STATE_READY = "ready"
STATE_ERROR = "error"


@dataclass(frozen=True)
class ObjectMeta:
    """Normalized metadata for a single object in a bucket."""

    key: str
    size: int
    last_modified: datetime


@dataclass(frozen=True)
class Inventory:
    """Every object listed for one bucket, in the order the service returned them."""

    bucket: str
    objects: tuple[ObjectMeta, ...] = ()
    truncated: bool = False

    def __len__(self) -> int:
        return len(self.objects)


@dataclass(frozen=True)
class ViewState:
    """User-controlled browsing state owned by the controller."""

    sort_key: str = SORT_BY_KEY
    sort_direction: str = SORT_ASCENDING
    search_term: str = ""
    current_page: int = 1
    selected_bucket: Optional[str] = None
    is_loading: bool = False


@dataclass(frozen=True)
class TableView:
    """Snapshot handed to the presentation layer."""

    page: tuple[ObjectMeta, ...]
    page_count: int
    current_page: int
    total_filtered: int
    total_objects: int
    is_loading: bool
    state: str
    bucket: Optional[str] = None
    inventory_bucket: Optional[str] = None
    error: Optional[str] = None
    stale: bool = False
    truncated: bool = False
    sort_key: str = SORT_BY_KEY
    sort_direction: str = SORT_ASCENDING
    search_term: str = ""
