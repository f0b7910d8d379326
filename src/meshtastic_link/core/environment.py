"""Derived environmental measurements for telemetry display."""

from __future__ import annotations

import math

# Magnus formula coefficients (Celsius)
MAGNUS_A = 17.27
MAGNUS_B = 237.7

_CARDINAL_8 = (
    "North",
    "North East",
    "East",
    "South East",
    "South",
    "South West",
    "West",
    "North West",
)

_CARDINAL_16 = (
    "North",
    "North North East",
    "North East",
    "East North East",
    "East",
    "East South East",
    "South East",
    "South South East",
    "South",
    "South South West",
    "South West",
    "West South West",
    "West",
    "West North West",
    "North West",
    "North North West",
)


def dew_point(temperature_c: float, relative_humidity: float) -> float:
    """Approximate the dew point (Celsius) from temperature and relative humidity (%).

    Valid for normal atmospheric ranges; inputs are not checked. A relative
    humidity of zero has no dew point and raises ``ValueError`` from ``math.log``.
    """
    alpha = (MAGNUS_A * temperature_c) / (MAGNUS_B + temperature_c) + math.log(
        relative_humidity / 100.0
    )
    return (MAGNUS_B * alpha) / (MAGNUS_A - alpha)


def cardinal_direction(heading: float, points: int = 8) -> str:
    """Map a compass heading in degrees to an 8- or 16-point direction name.

    Headings wrap around, so 360 and 0 are both North. Each sector is centered
    on its direction: with 8 points North covers [337.5, 22.5).
    """
    if points == 8:
        names = _CARDINAL_8
    elif points == 16:
        names = _CARDINAL_16
    else:
        raise ValueError(f"points must be 8 or 16, got {points}")
    sector = 360.0 / len(names)
    normalized = heading % 360.0
    index = int((normalized + sector / 2) // sector) % len(names)
    return names[index]
