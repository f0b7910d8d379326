"""Logging for the link tools.

Console output goes to stderr at a level the caller picks. Everything down to
DEBUG is also kept in a small rotating file under the XDG state directory, so
``link_cli export-logs`` can bundle correlator and trust history into a bug
report.
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, TextIO

from .paths import log_path

LOG_FILE = log_path()
CONSOLE_FORMAT = "[%(name)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
MAX_BYTES = 512_000
BACKUP_COUNT = 3

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Handlers installed by configure_logging(), removed again by reset_logging()
_installed: list[logging.Handler] = []


def resolve_level(requested: str | None) -> int:
    """``LOG_LEVEL`` from the environment wins, then *requested*, then WARNING."""
    for candidate in (os.environ.get("LOG_LEVEL"), requested):
        if candidate and candidate.upper() in LEVELS:
            return getattr(logging, candidate.upper())
    return logging.WARNING


def configure_logging(
    console_level: str | None = None, log_file: str | Path | None = None
) -> Path:
    """Attach the stderr and rotating file handlers to the root logger.

    Calling again replaces the handlers from the previous call rather than
    stacking new ones. Returns the path of the log file in use.
    """
    reset_logging()

    path = Path(log_file) if log_file is not None else LOG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(resolve_level(console_level))
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    rotating = RotatingFileHandler(
        path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
    )
    rotating.setLevel(logging.DEBUG)
    rotating.setFormatter(logging.Formatter(FILE_FORMAT))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in (console, rotating):
        root.addHandler(handler)
        _installed.append(handler)
    return path


def reset_logging() -> None:
    """Detach and close whatever :func:`configure_logging` installed."""
    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()


def iter_log_files(log_file: str | Path | None = None) -> Iterator[Path]:
    """Yield the log file and its rotated backups, oldest first."""
    path = Path(log_file) if log_file is not None else LOG_FILE
    for index in range(BACKUP_COUNT, 0, -1):
        backup = path.with_name(f"{path.name}.{index}")
        if backup.exists():
            yield backup
    if path.exists():
        yield path


def export_logs(dest: TextIO, log_file: str | Path | None = None) -> int:
    """Copy every log file into *dest*, oldest first. Returns how many were copied."""
    copied = 0
    for source in iter_log_files(log_file):
        with source.open(encoding="utf-8", errors="replace") as f:
            shutil.copyfileobj(f, dest)
        copied += 1
    return copied
