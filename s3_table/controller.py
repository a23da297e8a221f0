from __future__ import annotations
"""Controller holding the browsing state for one bucket at a time."""

from dataclasses import replace
import logging

from .listing import PAGE_SIZE, clamp_page, filter_objects, page_count, paginate, sort_objects
from .models import (
    SORT_ASCENDING,
    SORT_DESCENDING,
    SORT_DIRECTIONS,
    SORT_KEYS,
    STATE_ERROR,
    STATE_IDLE,
    STATE_LOADING,
    STATE_READY,
    Inventory,
    ObjectMeta,
    TableView,
    ViewState,
)
from .services import URL_EXPIRY_SECONDS, S3TableService
from .settings import AppSettings

LOGGER = logging.getLogger(__name__)


class NoBucketSelectedError(RuntimeError):
    """Raised when an object operation is attempted with no inventory loaded."""


class S3TableController:
    """Coordinates bucket selection, derived views and URL signing.

    The controller is the only writer of the inventory and view state. Fetch
    results are tagged with the request id handed out by :meth:`select_bucket`
    and only the latest request may change the state.
    """

    def __init__(self, service: S3TableService | None = None, *, page_size: int = PAGE_SIZE):
        if page_size <= 0:
            raise ValueError("page_size must be greater than zero")
        self._service = service or S3TableService()
        self._page_size = page_size
        self._inventory: Inventory | None = None
        self._view_state = ViewState()
        self._state = STATE_IDLE
        self._error: str | None = None
        self._request_seq = 0
        self._active_request: int | None = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def view_state(self) -> ViewState:
        return self._view_state

    @property
    def selected_bucket(self) -> str | None:
        return self._view_state.selected_bucket

    @property
    def inventory(self) -> Inventory | None:
        return self._inventory

    @property
    def page_size(self) -> int:
        return self._page_size

    def configure_service(self, settings: AppSettings) -> None:
        self._service.configure(settings)

    def select_bucket(self, bucket_name: str) -> int | None:
        """Start loading ``bucket_name`` and return the request id to resolve.

        Selecting the bucket that is already shown forces a refresh. A blank
        name clears the selection and returns ``None``.
        """

        name = (bucket_name or "").strip()
        if not name:
            self.clear_selection()
            return None
        self._request_seq += 1
        self._active_request = self._request_seq
        self._view_state = ViewState(selected_bucket=name, is_loading=True)
        self._state = STATE_LOADING
        self._error = None
        LOGGER.debug("Request %d: loading bucket '%s'", self._active_request, name)
        return self._active_request

    def refresh(self) -> int | None:
        bucket = self._view_state.selected_bucket
        if not bucket:
            raise NoBucketSelectedError("No bucket selected")
        return self.select_bucket(bucket)

    def clear_selection(self) -> None:
        self._request_seq += 1
        self._active_request = None
        self._inventory = None
        self._view_state = ViewState()
        self._state = STATE_IDLE
        self._error = None

    def is_current_request(self, request_id: int | None) -> bool:
        return request_id is not None and request_id == self._active_request

    def fetch_inventory(self, bucket_name: str) -> Inventory:
        """Run the remote listing; does not touch controller state."""

        return self._service.fetch_inventory(bucket_name)

    def complete_fetch(self, request_id: int, inventory: Inventory) -> bool:
        if not self.is_current_request(request_id):
            LOGGER.debug("Discarding superseded listing for '%s' (request %s)", inventory.bucket, request_id)
            return False
        self._inventory = inventory
        self._view_state = ViewState(selected_bucket=self._view_state.selected_bucket)
        self._state = STATE_READY
        self._error = None
        self._active_request = None
        return True

    def fail_fetch(self, request_id: int, message: str) -> bool:
        if not self.is_current_request(request_id):
            LOGGER.debug("Discarding superseded listing error (request %s): %s", request_id, message)
            return False
        self._state = STATE_ERROR
        self._error = message or "Unknown error"
        self._active_request = None
        self._view_state = replace(self._view_state, is_loading=False)
        self.set_page(self._view_state.current_page)
        return True

    def set_search(self, term: str) -> None:
        self._view_state = replace(self._view_state, search_term=term or "", current_page=1)

    def set_sort(self, sort_key: str, direction: str = SORT_ASCENDING) -> None:
        if sort_key not in SORT_KEYS:
            raise ValueError(f"sort_key must be one of {', '.join(SORT_KEYS)}")
        if direction not in SORT_DIRECTIONS:
            raise ValueError(f"direction must be one of {', '.join(SORT_DIRECTIONS)}")
        self._view_state = replace(self._view_state, sort_key=sort_key, sort_direction=direction)

    def toggle_sort(self, sort_key: str) -> None:
        """Apply a column-header click: flip the active column, start others ascending."""

        current = self._view_state
        if current.sort_key == sort_key and current.sort_direction == SORT_ASCENDING:
            self.set_sort(sort_key, SORT_DESCENDING)
        else:
            self.set_sort(sort_key, SORT_ASCENDING)

    def set_page(self, page_number: int) -> int:
        page = self._clamped(page_number)
        self._view_state = replace(self._view_state, current_page=page)
        return page

    def view(self) -> TableView:
        view_state = self._view_state
        inventory = self._inventory
        if view_state.is_loading or inventory is None:
            return TableView(
                page=(),
                page_count=1,
                current_page=1,
                total_filtered=0,
                total_objects=0,
                is_loading=view_state.is_loading,
                state=self._state,
                bucket=view_state.selected_bucket,
                inventory_bucket=None,
                error=self._error,
                sort_key=view_state.sort_key,
                sort_direction=view_state.sort_direction,
                search_term=view_state.search_term,
            )

        ordered = self._ordered_objects()
        current_page = clamp_page(view_state.current_page, len(ordered), self._page_size)
        return TableView(
            page=paginate(ordered, current_page, self._page_size),
            page_count=page_count(len(ordered), self._page_size),
            current_page=current_page,
            total_filtered=len(ordered),
            total_objects=len(inventory),
            is_loading=False,
            state=self._state,
            bucket=view_state.selected_bucket,
            inventory_bucket=inventory.bucket,
            error=self._error,
            stale=self._state == STATE_ERROR,
            truncated=inventory.truncated,
            sort_key=view_state.sort_key,
            sort_direction=view_state.sort_direction,
            search_term=view_state.search_term,
        )

    @property
    def displayed_bucket(self) -> str | None:
        """Bucket whose inventory is currently shown, stale or not."""

        return self._inventory.bucket if self._inventory is not None else None

    def request_access_url(
        self,
        key: str,
        *,
        bucket_name: str | None = None,
        expires_in: int = URL_EXPIRY_SECONDS,
    ) -> str:
        """Sign ``key`` in ``bucket_name``, or in the bucket whose inventory is displayed."""

        bucket = bucket_name or self.displayed_bucket
        if not bucket:
            raise NoBucketSelectedError("No bucket loaded")
        return self._service.generate_presigned_url(
            bucket_name=bucket,
            key=key,
            expires_in=expires_in,
        )

    def _ordered_objects(self) -> tuple[ObjectMeta, ...]:
        if self._inventory is None:
            return ()
        working_set = filter_objects(self._inventory.objects, self._view_state.search_term)
        return sort_objects(working_set, self._view_state.sort_key, self._view_state.sort_direction)

    def _clamped(self, page_number: int) -> int:
        if self._inventory is None or self._view_state.is_loading:
            return 1
        total = len(filter_objects(self._inventory.objects, self._view_state.search_term))
        return clamp_page(page_number, total, self._page_size)
