from __future__ import annotations
"""PySide6-based UI for the S3 table browser."""
import logging
from typing import Callable

from PySide6 import QtCore, QtGui, QtWidgets

from .models import TableView
from .presenter import S3TablePresenter
from .settings import AppSettings
from .ui_utils import (
    COLUMN_SORT_KEYS,
    COLUMN_TITLES,
    PackageInfo,
    build_signed_url_commands,
    describe_count,
    format_last_modified,
    format_size,
    sort_indicator,
    suggest_command_filename,
)

OBJECT_KEY_ROLE = QtCore.Qt.UserRole + 1
ACCESS_COLUMN = 3
LOGGER = logging.getLogger(__name__)


class _DispatchBridge(QtCore.QObject):
    run = QtCore.Signal(object)


class S3TableWindow(QtWidgets.QMainWindow):
    """Main window listing one bucket as a searchable, sortable table."""

    def __init__(self, presenter: S3TablePresenter | None = None):
        super().__init__()
        self.setWindowTitle("S3 Table Browser")
        self.resize(1000, 800)
        self.setMinimumSize(640, 480)

        self._dispatch_bridge = _DispatchBridge()
        self._dispatch_bridge.run.connect(lambda func: func())
        self.presenter = presenter or S3TablePresenter(dispatch=self._dispatch)
        self._package_info = self.presenter.package_info
        self._access_status: dict[str, str] = {}
        self._pending_fetches = 0

        self._create_menu()
        self._create_widgets()
        self._render(self.presenter.view())

    def _dispatch(self, func: Callable[[], None]) -> None:
        self._dispatch_bridge.run.emit(func)

    def _create_menu(self) -> None:
        menubar = self.menuBar()

        file_menu = menubar.addMenu("File")
        exit_action = file_menu.addAction("Exit")
        exit_action.triggered.connect(self.close)

        self.objects_menu = menubar.addMenu("Objects")
        self.refresh_action = self.objects_menu.addAction("Refresh")
        self.refresh_action.triggered.connect(self.refresh)
        self.open_url_action = self.objects_menu.addAction("Open Signed URL")
        self.open_url_action.triggered.connect(self._open_selected_object)
        self.copy_url_action = self.objects_menu.addAction("Copy Signed URL...")
        self.copy_url_action.triggered.connect(self._show_selected_object_url)

        options_menu = menubar.addMenu("Options")
        settings_action = options_menu.addAction("Settings")
        settings_action.triggered.connect(self.open_settings_dialog)

        help_menu = menubar.addMenu("Help")
        about_action = help_menu.addAction("About")
        about_action.triggered.connect(self.show_about_dialog)

    def _create_widgets(self) -> None:
        central = QtWidgets.QWidget(self)
        layout = QtWidgets.QVBoxLayout(central)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(12)

        bucket_row = QtWidgets.QHBoxLayout()
        bucket_row.addWidget(QtWidgets.QLabel("S3 Bucket:"))
        self.bucket_input = QtWidgets.QLineEdit(self)
        self.bucket_input.setPlaceholderText("bucket-name")
        self.bucket_input.editingFinished.connect(self._on_bucket_entered)
        bucket_row.addWidget(self.bucket_input, stretch=1)
        self.refresh_button = QtWidgets.QPushButton("Refresh")
        self.refresh_button.clicked.connect(self.refresh)
        bucket_row.addWidget(self.refresh_button)
        layout.addLayout(bucket_row)

        self.search_input = QtWidgets.QLineEdit(self)
        self.search_input.setPlaceholderText("Search")
        self.search_input.setClearButtonEnabled(True)
        self.search_input.textChanged.connect(self._on_search_changed)
        layout.addWidget(self.search_input)

        nav_row = QtWidgets.QHBoxLayout()
        self.count_label = QtWidgets.QLabel("")
        nav_row.addWidget(self.count_label, stretch=1)
        self.prev_button = QtWidgets.QPushButton("Previous")
        self.prev_button.clicked.connect(lambda: self._step_page(-1))
        nav_row.addWidget(self.prev_button)
        self.page_spin = QtWidgets.QSpinBox(self)
        self.page_spin.setMinimum(1)
        self.page_spin.valueChanged.connect(self._on_page_changed)
        nav_row.addWidget(self.page_spin)
        self.page_total_label = QtWidgets.QLabel("of 1")
        nav_row.addWidget(self.page_total_label)
        self.next_button = QtWidgets.QPushButton("Next")
        self.next_button.clicked.connect(lambda: self._step_page(1))
        nav_row.addWidget(self.next_button)
        layout.addLayout(nav_row)

        self._model = QtGui.QStandardItemModel(0, len(COLUMN_TITLES), self)
        self.table = QtWidgets.QTableView(self)
        self.table.setModel(self._model)
        self.table.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
        self.table.setSelectionBehavior(QtWidgets.QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QtWidgets.QAbstractItemView.SingleSelection)
        self.table.verticalHeader().setVisible(False)
        header = self.table.horizontalHeader()
        header.setSectionResizeMode(0, QtWidgets.QHeaderView.Stretch)
        header.setSectionsClickable(True)
        header.sectionClicked.connect(self._on_header_clicked)
        self.table.doubleClicked.connect(self._on_row_double_clicked)
        layout.addWidget(self.table, stretch=1)

        self.progress = QtWidgets.QProgressBar(self)
        self.progress.setRange(0, 1)
        self.progress.setValue(0)
        self.progress.setVisible(False)
        layout.addWidget(self.progress)

        self.status_label = QtWidgets.QLabel("Enter a bucket name to begin")
        layout.addWidget(self.status_label)

        self.setCentralWidget(central)

    def show_about_dialog(self, *_: object) -> None:
        dialog = AboutDialog(self, package_info=self._package_info)
        dialog.exec()

    def open_settings_dialog(self, *_: object) -> None:
        dialog = SettingsDialog(self, settings=self.presenter.settings)
        if dialog.exec() != QtWidgets.QDialog.Accepted:
            return
        new_settings = dialog.result_settings
        if not new_settings:
            return
        self.presenter.save_settings(new_settings)
        if self.presenter.selected_bucket:
            self.refresh()

    def select_bucket(self, bucket_name: str) -> None:
        LOGGER.debug("Bucket entered: '%s'", bucket_name)
        self._access_status.clear()
        self._start_operation()
        self.presenter.select_bucket(
            bucket_name,
            on_update=self._render,
            on_error=lambda msg: self._show_error("List Error", f"Error fetching objects from S3 bucket: {msg}"),
            on_done=self._end_operation,
        )

    def refresh(self, *_: object) -> None:
        bucket = self.presenter.selected_bucket
        if not bucket:
            self._show_error("Error", "Please enter a bucket name")
            return
        self.select_bucket(bucket)

    def _on_bucket_entered(self) -> None:
        self.select_bucket(self.bucket_input.text())

    def _on_search_changed(self, text: str) -> None:
        self._render(self.presenter.search(text))

    def _on_header_clicked(self, section: int) -> None:
        if section >= len(COLUMN_SORT_KEYS):
            return
        self._render(self.presenter.toggle_sort(COLUMN_SORT_KEYS[section]))

    def _on_page_changed(self, value: int) -> None:
        self._render(self.presenter.change_page(value))

    def _step_page(self, delta: int) -> None:
        current = self.presenter.view().current_page
        self._render(self.presenter.change_page(current + delta))

    def _on_row_double_clicked(self, index: QtCore.QModelIndex) -> None:
        key = self._key_for_row(index.row())
        if key:
            self._request_url(key, open_browser=True)

    def _open_selected_object(self, *_: object) -> None:
        key = self._selected_key()
        if key:
            self._request_url(key, open_browser=True)

    def _show_selected_object_url(self, *_: object) -> None:
        key = self._selected_key()
        if key:
            self._request_url(key, open_browser=False)

    def _request_url(self, key: str, *, open_browser: bool) -> None:
        self._set_access_status(key, "Signing...")

        def handle_success(signed_key: str, url: str) -> None:
            if open_browser:
                QtGui.QDesktopServices.openUrl(QtCore.QUrl(url))
                self._set_access_status(signed_key, "Opened")
            else:
                self._set_access_status(signed_key, "Signed")
                SignedUrlDialog(self, key=signed_key, url=url).exec()

        def handle_error(failed_key: str, message: str) -> None:
            self._set_access_status(failed_key, f"Error: {message}")
            self._set_status(f"Could not sign '{failed_key}': {message}")

        self.presenter.request_access_url(key, on_success=handle_success, on_error=handle_error)

    def _selected_key(self) -> str | None:
        rows = self.table.selectionModel().selectedRows()
        if not rows:
            self._show_error("Error", "Please select an object")
            return None
        return self._key_for_row(rows[0].row())

    def _key_for_row(self, row: int) -> str | None:
        item = self._model.item(row, 0)
        if item is None:
            return None
        return item.data(OBJECT_KEY_ROLE)

    def _set_access_status(self, key: str, text: str) -> None:
        self._access_status[key] = text
        for row in range(self._model.rowCount()):
            if self._key_for_row(row) == key:
                self._model.setItem(row, ACCESS_COLUMN, QtGui.QStandardItem(text))
                break

    def _render(self, view: TableView) -> None:
        self._model.setHorizontalHeaderLabels(
            [
                title + sort_indicator(column_key, view.sort_key, view.sort_direction)
                for title, column_key in zip(COLUMN_TITLES, COLUMN_SORT_KEYS + ("",))
            ]
        )
        self._model.removeRows(0, self._model.rowCount())
        for obj in view.page:
            name_item = QtGui.QStandardItem(obj.key)
            name_item.setData(obj.key, OBJECT_KEY_ROLE)
            name_item.setToolTip("Double-click to open a signed URL")
            size_item = QtGui.QStandardItem(format_size(obj.size))
            size_item.setToolTip(f"{obj.size} bytes")
            size_item.setTextAlignment(QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter)
            modified_item = QtGui.QStandardItem(format_last_modified(obj.last_modified))
            access_item = QtGui.QStandardItem(self._access_status.get(obj.key, ""))
            self._model.appendRow([name_item, size_item, modified_item, access_item])

        has_bucket = bool(view.bucket)
        self.search_input.setEnabled(has_bucket)
        if self.search_input.text() != view.search_term:
            self.search_input.blockSignals(True)
            self.search_input.setText(view.search_term)
            self.search_input.blockSignals(False)

        self.page_spin.blockSignals(True)
        self.page_spin.setMaximum(view.page_count)
        self.page_spin.setValue(view.current_page)
        self.page_spin.blockSignals(False)
        self.page_total_label.setText(f"of {view.page_count}")
        self.prev_button.setEnabled(not view.is_loading and view.current_page > 1)
        self.next_button.setEnabled(not view.is_loading and view.current_page < view.page_count)
        self.page_spin.setEnabled(not view.is_loading and view.page_count > 1)

        self.table.setVisible(not view.is_loading)
        self.count_label.setText(
            "" if view.is_loading or view.inventory_bucket is None
            else describe_count(view.total_filtered, view.total_objects, view.search_term)
        )
        self.refresh_button.setEnabled(has_bucket)
        self.refresh_action.setEnabled(has_bucket)
        self.open_url_action.setEnabled(bool(view.page))
        self.copy_url_action.setEnabled(bool(view.page))
        self._set_status(self._describe_state(view))

    def _describe_state(self, view: TableView) -> str:
        if not view.bucket:
            return "Enter a bucket name to begin"
        if view.is_loading:
            return f"Loading objects from '{view.bucket}'..."
        if view.stale and view.inventory_bucket:
            return f"Showing stale results for '{view.inventory_bucket}': {view.error}"
        if view.error:
            return f"Error: {view.error}"
        message = f"Loaded {view.total_objects} object(s) from '{view.inventory_bucket}'"
        if view.truncated:
            message += " (listing truncated)"
        return message

    def _start_operation(self) -> None:
        self._pending_fetches += 1
        self.progress.setRange(0, 0)
        self.progress.setVisible(True)

    def _end_operation(self) -> None:
        self._pending_fetches = max(self._pending_fetches - 1, 0)
        if self._pending_fetches:
            return
        self.progress.setVisible(False)
        self.progress.setRange(0, 1)

    def _set_status(self, message: str) -> None:
        self.status_label.setText(message)

    def _show_error(self, title: str, message: str) -> None:
        QtWidgets.QMessageBox.critical(self, title, message)
        self._set_status(message)


class SignedUrlDialog(QtWidgets.QDialog):
    """Shows a signed URL together with ready-to-run download commands."""

    def __init__(self, parent: QtWidgets.QWidget, *, key: str, url: str) -> None:
        super().__init__(parent)
        self.setWindowTitle("Signed URL")
        self.setModal(True)
        self.resize(700, 280)
        self._url = url

        layout = QtWidgets.QVBoxLayout(self)
        layout.addWidget(QtWidgets.QLabel(f"Object: {key}"))
        layout.addWidget(QtWidgets.QLabel("Valid for one hour."))

        url_field = QtWidgets.QPlainTextEdit(url, self)
        url_field.setReadOnly(True)
        layout.addWidget(url_field)

        wget_cmd, curl_cmd = build_signed_url_commands(url=url, filename=suggest_command_filename(key))
        commands = QtWidgets.QPlainTextEdit(f"{wget_cmd}\n\n{curl_cmd}", self)
        commands.setReadOnly(True)
        layout.addWidget(commands)

        buttons = QtWidgets.QHBoxLayout()
        copy_button = QtWidgets.QPushButton("Copy URL")
        copy_button.clicked.connect(self._copy_url)
        buttons.addWidget(copy_button)
        close_button = QtWidgets.QPushButton("Close")
        close_button.clicked.connect(self.accept)
        buttons.addWidget(close_button)
        layout.addLayout(buttons)

    def _copy_url(self) -> None:
        QtWidgets.QApplication.clipboard().setText(self._url)


class SettingsDialog(QtWidgets.QDialog):
    """Edits the connection settings."""

    def __init__(self, parent: QtWidgets.QWidget, *, settings: AppSettings) -> None:
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setModal(True)
        self.result_settings: AppSettings | None = None

        layout = QtWidgets.QFormLayout(self)
        self.region_input = QtWidgets.QLineEdit(settings.region, self)
        layout.addRow("Region:", self.region_input)
        self.endpoint_input = QtWidgets.QLineEdit(settings.endpoint_url, self)
        self.endpoint_input.setPlaceholderText("Default AWS endpoint")
        layout.addRow("Endpoint URL:", self.endpoint_input)
        self.max_pages_input = QtWidgets.QSpinBox(self)
        self.max_pages_input.setRange(0, 1_000_000)
        self.max_pages_input.setSpecialValueText("Unlimited")
        self.max_pages_input.setValue(settings.max_listing_pages)
        layout.addRow("Max listing requests:", self.max_pages_input)

        buttons = QtWidgets.QDialogButtonBox(
            QtWidgets.QDialogButtonBox.Save | QtWidgets.QDialogButtonBox.Cancel,
            parent=self,
        )
        buttons.accepted.connect(self._on_save)
        buttons.rejected.connect(self.reject)
        layout.addRow(buttons)

    def _on_save(self) -> None:
        region = self.region_input.text().strip()
        if not region:
            QtWidgets.QMessageBox.warning(self, "Invalid Region", "Region cannot be empty")
            return
        self.result_settings = AppSettings(
            region=region,
            endpoint_url=self.endpoint_input.text().strip(),
            max_listing_pages=self.max_pages_input.value(),
        )
        self.accept()


class AboutDialog(QtWidgets.QDialog):
    """Dialog displaying package metadata."""

    def __init__(self, parent: QtWidgets.QWidget, *, package_info: PackageInfo) -> None:
        super().__init__(parent)
        self.setWindowTitle("About")
        self.setModal(True)

        layout = QtWidgets.QVBoxLayout(self)
        title = QtWidgets.QLabel(f"{package_info.name} {package_info.version}".strip())
        title_font = title.font()
        title_font.setPointSize(14)
        title_font.setBold(True)
        title.setFont(title_font)
        title.setAlignment(QtCore.Qt.AlignCenter)
        layout.addWidget(title)

        summary = QtWidgets.QLabel(package_info.summary or "")
        summary.setAlignment(QtCore.Qt.AlignCenter)
        summary.setWordWrap(True)
        layout.addWidget(summary)

        for label, value in (
            ("Author", package_info.author),
            ("Homepage", package_info.homepage),
            ("Repository", package_info.repository),
        ):
            if value:
                line = QtWidgets.QLabel(f"{label}: {value}")
                line.setAlignment(QtCore.Qt.AlignCenter)
                layout.addWidget(line)

        close_button = QtWidgets.QPushButton("Close")
        close_button.clicked.connect(self.accept)
        layout.addWidget(close_button, alignment=QtCore.Qt.AlignCenter)
