from __future__ import annotations
"""View-agnostic presenter that runs remote calls off the UI thread."""
from dataclasses import replace
import logging
import threading
from typing import Callable

from .controller import NoBucketSelectedError, S3TableController
from .models import TableView
from .services import FetchError, S3TableService, SignError
from .settings import AppSettings, SettingsStorage, apply_environment
from .ui_utils import PackageInfo, load_package_info


DispatchFn = Callable[[Callable[[], None]], None]
RunnerFn = Callable[[Callable[[], None]], None]
ViewFn = Callable[[TableView], None]
ErrorFn = Callable[[str], None]
DoneFn = Callable[[], None]

LOGGER = logging.getLogger(__name__)


def _format_error(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


def _start_thread(task: Callable[[], None]) -> None:
    threading.Thread(target=task, daemon=True).start()


class S3TablePresenter:
    """Runs background operations and returns results via callbacks.

    ``dispatch`` moves callbacks onto the thread that owns the controller;
    ``runner`` starts background work (a daemon thread by default).
    """

    def __init__(
        self,
        *,
        controller: S3TableController | None = None,
        settings_storage: SettingsStorage | None = None,
        dispatch: DispatchFn | None = None,
        runner: RunnerFn | None = None,
    ) -> None:
        self._settings_storage = settings_storage or SettingsStorage()
        self._settings = self._settings_storage.load()
        if controller is None:
            controller = S3TableController(
                service=S3TableService(settings=apply_environment(self._settings)),
            )
        self._controller = controller
        self._dispatch = dispatch or (lambda func: func())
        self._runner = runner or _start_thread
        self._package_info = load_package_info()

    @property
    def settings(self) -> AppSettings:
        return replace(self._settings)

    @property
    def package_info(self) -> PackageInfo:
        return self._package_info

    @property
    def selected_bucket(self) -> str | None:
        return self._controller.selected_bucket

    def save_settings(self, settings: AppSettings) -> None:
        self._settings = settings
        self._settings_storage.save(settings)
        self._controller.configure_service(apply_environment(settings))

    def view(self) -> TableView:
        return self._controller.view()

    def select_bucket(
        self,
        bucket_name: str,
        *,
        on_update: ViewFn,
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        """Select a bucket and load its inventory in the background.

        ``on_update`` is called at once with the loading view, then again with
        the loaded view. Results of a superseded selection are dropped without
        any callback other than ``on_done``.
        """

        request_id = self._controller.select_bucket(bucket_name)
        on_update(self._controller.view())
        if request_id is None:
            if on_done:
                on_done()
            return
        self._start_fetch(request_id, self._controller.selected_bucket, on_update, on_error, on_done)

    def refresh(
        self,
        *,
        on_update: ViewFn,
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        bucket = self._controller.selected_bucket
        if not bucket:
            on_error("No bucket selected")
            if on_done:
                on_done()
            return
        self.select_bucket(bucket, on_update=on_update, on_error=on_error, on_done=on_done)

    def search(self, term: str) -> TableView:
        self._controller.set_search(term)
        return self._controller.view()

    def sort_by(self, sort_key: str, direction: str) -> TableView:
        self._controller.set_sort(sort_key, direction)
        return self._controller.view()

    def toggle_sort(self, sort_key: str) -> TableView:
        self._controller.toggle_sort(sort_key)
        return self._controller.view()

    def change_page(self, page_number: int) -> TableView:
        self._controller.set_page(page_number)
        return self._controller.view()

    def request_access_url(
        self,
        key: str,
        *,
        on_success: Callable[[str, str], None],
        on_error: Callable[[str, str], None],
    ) -> None:
        """Sign one object; callbacks receive the key so errors stay per row."""

        bucket_name = self._controller.displayed_bucket
        LOGGER.debug("Requesting signed URL for '%s' in '%s'", key, bucket_name)

        def task() -> None:
            try:
                if not bucket_name:
                    raise NoBucketSelectedError("No bucket loaded")
                url = self._controller.request_access_url(key, bucket_name=bucket_name)
            except (SignError, NoBucketSelectedError) as exc:
                LOGGER.warning("Signed URL error for '%s': %s", key, exc)
                message = _format_error(exc)
                self._dispatch(lambda: on_error(key, message))
            except Exception as exc:
                LOGGER.exception("Unexpected signed URL error for '%s'", key)
                message = _format_error(exc)
                self._dispatch(lambda: on_error(key, message))
            else:
                self._dispatch(lambda: on_success(key, url))

        self._runner(task)

    def _start_fetch(
        self,
        request_id: int,
        bucket_name: str,
        on_update: ViewFn,
        on_error: ErrorFn,
        on_done: DoneFn | None,
    ) -> None:
        LOGGER.debug("Listing objects for bucket '%s'", bucket_name)

        def resolve_success(inventory) -> None:
            if self._controller.complete_fetch(request_id, inventory):
                on_update(self._controller.view())

        def resolve_error(message: str) -> None:
            if self._controller.fail_fetch(request_id, message):
                on_update(self._controller.view())
                on_error(message)

        def task() -> None:
            try:
                inventory = self._controller.fetch_inventory(bucket_name)
            except FetchError as exc:
                LOGGER.exception("List objects error for bucket '%s'", bucket_name)
                message = _format_error(exc)
                self._dispatch(lambda: resolve_error(message))
            except Exception as exc:
                LOGGER.exception("Unexpected list objects error for bucket '%s'", bucket_name)
                message = _format_error(exc)
                self._dispatch(lambda: resolve_error(message))
            else:
                LOGGER.debug("Listed %d object(s) for bucket '%s'", len(inventory), bucket_name)
                self._dispatch(lambda: resolve_success(inventory))
            finally:
                if on_done:
                    self._dispatch(on_done)

        self._runner(task)
