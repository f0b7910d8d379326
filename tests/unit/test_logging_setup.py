from __future__ import annotations

import io
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

import meshtastic_link.link.logging_setup as log_mod


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(log_mod, "LOG_FILE", tmp_path / "state" / "link.log")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    yield
    log_mod.reset_logging()


def _ours() -> list[logging.Handler]:
    return [h for h in logging.getLogger().handlers if h in log_mod._installed]


def test_configure_logging_creates_handlers(tmp_path: Path) -> None:
    path = log_mod.configure_logging()

    assert path == tmp_path / "state" / "link.log"
    assert path.exists()
    kinds = sorted(type(h).__name__ for h in _ours())
    assert kinds == ["RotatingFileHandler", "StreamHandler"]


def test_default_console_level_is_warning() -> None:
    log_mod.configure_logging()

    console = next(h for h in _ours() if not isinstance(h, RotatingFileHandler))
    assert console.level == logging.WARNING


def test_log_level_env_takes_precedence(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "error")

    assert log_mod.resolve_level("DEBUG") == logging.ERROR


def test_unknown_level_names_are_ignored(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    assert log_mod.resolve_level("info") == logging.INFO
    assert log_mod.resolve_level("bogus") == logging.WARNING


def test_reconfiguring_replaces_handlers(tmp_path: Path) -> None:
    log_mod.configure_logging("INFO")
    log_mod.configure_logging("DEBUG", log_file=tmp_path / "other.log")

    handlers = _ours()
    assert len(handlers) == 2
    rotating = next(h for h in handlers if isinstance(h, RotatingFileHandler))
    assert Path(rotating.baseFilename) == tmp_path / "other.log"


def test_file_keeps_debug_records(tmp_path: Path) -> None:
    path = log_mod.configure_logging("ERROR")

    logging.getLogger("meshtastic_link.link.admin").debug("request %d parked", 7)

    assert "request 7 parked" in path.read_text()


def test_reset_detaches_handlers() -> None:
    log_mod.configure_logging()
    log_mod.reset_logging()

    assert _ours() == []
    assert log_mod._installed == []


def test_export_logs_concatenates_oldest_first(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "link.log"
    log_file.parent.mkdir()
    (log_file.parent / "link.log.2").write_text("line-from-backup-2\n")
    (log_file.parent / "link.log.1").write_text("line-from-backup-1\n")
    log_file.write_text("line-from-current\n")

    out = io.StringIO()
    copied = log_mod.export_logs(out, log_file=log_file)

    assert copied == 3
    assert out.getvalue().splitlines() == [
        "line-from-backup-2",
        "line-from-backup-1",
        "line-from-current",
    ]


def test_export_with_no_logs_writes_nothing() -> None:
    out = io.StringIO()

    assert log_mod.export_logs(out) == 0
    assert out.getvalue() == ""
