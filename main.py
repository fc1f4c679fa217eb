"""Entry point for the ClockWise time tracker.

This script sets up logging next to the database, makes sure the schema
exists and launches the ``ClockWiseApp`` window defined in ``clockwise.ui``.
"""
from __future__ import annotations

import logging
import os
import sys

from clockwise import data

LOGGER = logging.getLogger("clockwise")


def setup_logging(log_path: str) -> None:
    level = getattr(logging, os.environ.get("CLOCKWISE_LOG_LEVEL", "INFO").upper(), logging.INFO)
    LOGGER.setLevel(level)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
    handler.setFormatter(formatter)
    LOGGER.addHandler(handler)
    LOGGER.propagate = False


def log_unhandled_exception(exc_type, exc, tb) -> None:
    LOGGER.error("Unhandled exception", exc_info=(exc_type, exc, tb))


def main() -> None:
    setup_logging(os.path.join(os.path.dirname(data.db_path()), "clockwise.log"))
    sys.excepthook = log_unhandled_exception
    data.init_db()

    # Imported late so the database is ready before any window queries it
    from clockwise.ui import ClockWiseApp

    app = ClockWiseApp()
    app.report_callback_exception = log_unhandled_exception
    app.mainloop()


if __name__ == "__main__":
    main()
