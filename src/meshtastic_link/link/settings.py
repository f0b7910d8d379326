from __future__ import annotations

from dataclasses import dataclass, replace

from meshtastic_link.core.enums import ModemPreset

DEFAULT_ADMIN_TIMEOUT = 30.0  # seconds


@dataclass(slots=True)
class LinkSettings:
    # Identity of the node this app is connected to
    node_num: int = 0
    admin_index: int = 0

    # Radio
    modem_preset: ModemPreset = ModemPreset.LONG_FAST
    bandwidth: int = 250_000
    spreading_factor: int = 11
    coding_rate: int = 5

    # Admin commands
    admin_timeout: float = DEFAULT_ADMIN_TIMEOUT

    def clone(self) -> "LinkSettings":
        return replace(self)


MODEM_PRESETS: dict[ModemPreset, dict[str, int]] = {
    ModemPreset.SHORT_TURBO: {"bandwidth": 500_000, "spreading_factor": 7, "coding_rate": 5},
    ModemPreset.SHORT_FAST: {"bandwidth": 250_000, "spreading_factor": 7, "coding_rate": 5},
    ModemPreset.SHORT_SLOW: {"bandwidth": 250_000, "spreading_factor": 8, "coding_rate": 5},
    ModemPreset.MEDIUM_FAST: {"bandwidth": 250_000, "spreading_factor": 9, "coding_rate": 5},
    ModemPreset.MEDIUM_SLOW: {"bandwidth": 250_000, "spreading_factor": 10, "coding_rate": 5},
    ModemPreset.LONG_FAST: {"bandwidth": 250_000, "spreading_factor": 11, "coding_rate": 5},
    ModemPreset.LONG_MODERATE: {"bandwidth": 125_000, "spreading_factor": 11, "coding_rate": 8},
    ModemPreset.LONG_SLOW: {"bandwidth": 125_000, "spreading_factor": 12, "coding_rate": 8},
    ModemPreset.VERY_LONG_SLOW: {"bandwidth": 62_500, "spreading_factor": 12, "coding_rate": 8},
}


def apply_preset(settings: LinkSettings, preset: ModemPreset) -> LinkSettings:
    updated = settings.clone()
    updated.modem_preset = preset
    for key, value in MODEM_PRESETS[preset].items():
        setattr(updated, key, value)
    return updated
