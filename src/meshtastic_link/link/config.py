from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from meshtastic_link.core.enums import ModemPreset

from .settings import DEFAULT_ADMIN_TIMEOUT, LinkSettings

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LinkConfig:
    """Runtime values handed to the signal model and the correlator at call time."""

    modem_preset: ModemPreset = ModemPreset.LONG_FAST
    admin_timeout: float = DEFAULT_ADMIN_TIMEOUT
    node_num: int = 0
    admin_index: int = 0

    def to_log_string(self) -> str:
        return (
            f"modem_preset={self.modem_preset.name} admin_timeout={self.admin_timeout} "
            f"node_num={self.node_num} admin_index={self.admin_index}"
        )


def load_link_config() -> LinkConfig:
    return LinkConfig(
        modem_preset=_env_preset("MESHTASTIC_LINK_MODEM_PRESET", ModemPreset.LONG_FAST),
        admin_timeout=_env_float("MESHTASTIC_LINK_ADMIN_TIMEOUT", DEFAULT_ADMIN_TIMEOUT),
        node_num=_env_int("MESHTASTIC_LINK_NODE_NUM", 0),
        admin_index=_env_int("MESHTASTIC_LINK_ADMIN_INDEX", 0),
    )


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        # Accept decimal, 0x-hex, and the "!1a2b3c4d" user id form
        text = value.strip()
        if text.startswith("!"):
            return int(text[1:], 16)
        return int(text, 0)
    except ValueError:
        logger.warning("ignoring invalid %s=%r", name, value)
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning("ignoring invalid %s=%r", name, value)
        return default
    if parsed <= 0:
        logger.warning("ignoring non-positive %s=%r", name, value)
        return default
    return parsed


def _env_preset(name: str, default: ModemPreset) -> ModemPreset:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return ModemPreset.from_name(value)
    except ValueError:
        logger.warning("ignoring unknown %s=%r", name, value)
        return default


def link_config_from_settings(settings: LinkSettings) -> LinkConfig:
    return LinkConfig(
        modem_preset=settings.modem_preset,
        admin_timeout=settings.admin_timeout,
        node_num=settings.node_num,
        admin_index=settings.admin_index,
    )
