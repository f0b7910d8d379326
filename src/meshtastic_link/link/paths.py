from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "meshtastic-link"


def xdg_state_home() -> Path:
    """Return XDG_STATE_HOME or default ~/.local/state"""
    return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))


def state_dir() -> Path:
    """Return the app state directory (XDG_STATE_HOME/meshtastic-link)"""
    return xdg_state_home() / APP_NAME


def log_path() -> Path:
    """Return the path to the rotating application log."""
    return state_dir() / "link.log"
