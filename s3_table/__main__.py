"""Module entry point for the S3 table browser application."""
import logging
import os
import sys

from PySide6 import QtWidgets

from .qt_view import S3TableWindow


def _log_level() -> int:
    level = logging.getLevelName(os.environ.get("PYS3T_LOG_LEVEL", "WARNING").strip().upper())
    return level if isinstance(level, int) else logging.WARNING


def main() -> None:
    logging.basicConfig(
        level=_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = QtWidgets.QApplication(sys.argv)
    window = S3TableWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
