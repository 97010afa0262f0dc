"""
Logging for the converter.

``configure_logging`` installs a rich console handler and, optionally, a
plain-text file handler on the root logger. Each handler carries a
``ContextFilter`` that stamps records with the timesheet being converted,
set per worker through ``log_context(source=...)``.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(source)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

LOG_SOURCE: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("log_source", default=None)


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.source = LOG_SOURCE.get() or "-"
        return True


@contextmanager
def log_context(source: Union[str, Path, None] = None) -> Iterator[None]:
    token = LOG_SOURCE.set(str(source)) if source is not None else None
    try:
        yield
    finally:
        if token is not None:
            LOG_SOURCE.reset(token)


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Union[str, Path, None] = None,
    enable_console: bool = True,
    force: bool = False,
) -> logging.Logger:
    root = logging.getLogger()
    if getattr(root, "_xdts2sts_logging_configured", False) and not force:
        return root

    if force:
        for handler in list(root.handlers):
            root.removeHandler(handler)

    context_filter = ContextFilter()

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)

    if enable_console:
        console = RichHandler(show_path=False, markup=False)
        console.setFormatter(logging.Formatter("%(message)s"))
        console.addFilter(context_filter)
        root.addHandler(console)

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    logging.captureWarnings(True)
    root._xdts2sts_logging_configured = True
    return root
