"""Radio signal utilities for SNR and RSSI interpretation.

SNR and RSSI of a packet only describe the last radio hop. A rating is
therefore only produced for packets heard directly (zero hops, not relayed
through MQTT or another bridge); everything else rates NONE.

Breakpoints are lower bounds: a value belongs to a band when
``lower <= value < next_lower``. The top band is unbounded above and the
bottom band (BAD / WEAK) is unbounded below, so every input has a rating.
"""

from __future__ import annotations

from dataclasses import dataclass

from meshtastic_link.core.enums import ModemPreset, RssiRating, SignalColor, SignalRating
from meshtastic_link.core.models import SignalSample


@dataclass(slots=True, frozen=True)
class SnrBreakpoints:
    """Lower SNR bounds (dB) of the GREAT, GOOD, FAIR and POOR bands."""

    great: float
    good: float
    fair: float
    poor: float

    def __post_init__(self) -> None:
        if not self.great > self.good > self.fair > self.poor:
            raise ValueError(f"SNR breakpoints must be strictly descending: {self}")


@dataclass(slots=True, frozen=True)
class RssiBreakpoints:
    """Lower RSSI bounds (dBm) of the STRONG and FAIR buckets."""

    strong: int
    fair: int

    def __post_init__(self) -> None:
        if not self.strong > self.fair:
            raise ValueError(f"RSSI breakpoints must be strictly descending: {self}")


# Fast, wide presets keep a GOOD rating down to a lower SNR than the narrow
# long-range presets.
PRESET_SNR_BREAKPOINTS: dict[ModemPreset, SnrBreakpoints] = {
    ModemPreset.SHORT_TURBO: SnrBreakpoints(great=2.0, good=-3.0, fair=-8.0, poor=-13.0),
    ModemPreset.SHORT_FAST: SnrBreakpoints(great=3.0, good=-2.0, fair=-7.0, poor=-12.0),
    ModemPreset.SHORT_SLOW: SnrBreakpoints(great=4.0, good=-1.0, fair=-6.0, poor=-11.0),
    ModemPreset.MEDIUM_FAST: SnrBreakpoints(great=5.0, good=0.0, fair=-5.0, poor=-10.0),
    ModemPreset.MEDIUM_SLOW: SnrBreakpoints(great=6.0, good=1.0, fair=-4.0, poor=-9.0),
    ModemPreset.LONG_FAST: SnrBreakpoints(great=7.0, good=2.0, fair=-3.0, poor=-8.0),
    ModemPreset.LONG_MODERATE: SnrBreakpoints(great=8.0, good=3.0, fair=-2.0, poor=-7.0),
    ModemPreset.LONG_SLOW: SnrBreakpoints(great=9.0, good=4.0, fair=-1.0, poor=-6.0),
    ModemPreset.VERY_LONG_SLOW: SnrBreakpoints(great=10.0, good=5.0, fair=0.0, poor=-5.0),
}

# Receiver sensitivity improves roughly 3 dB per step towards the slow presets.
PRESET_RSSI_BREAKPOINTS: dict[ModemPreset, RssiBreakpoints] = {
    ModemPreset.SHORT_TURBO: RssiBreakpoints(strong=-100, fair=-111),
    ModemPreset.SHORT_FAST: RssiBreakpoints(strong=-103, fair=-114),
    ModemPreset.SHORT_SLOW: RssiBreakpoints(strong=-106, fair=-117),
    ModemPreset.MEDIUM_FAST: RssiBreakpoints(strong=-109, fair=-120),
    ModemPreset.MEDIUM_SLOW: RssiBreakpoints(strong=-112, fair=-123),
    ModemPreset.LONG_FAST: RssiBreakpoints(strong=-115, fair=-126),
    ModemPreset.LONG_MODERATE: RssiBreakpoints(strong=-118, fair=-129),
    ModemPreset.LONG_SLOW: RssiBreakpoints(strong=-121, fair=-132),
    ModemPreset.VERY_LONG_SLOW: RssiBreakpoints(strong=-124, fair=-135),
}

_SNR_COLORS: dict[SignalRating, SignalColor] = {
    SignalRating.GREAT: SignalColor.GREEN,
    SignalRating.GOOD: SignalColor.GREEN,
    SignalRating.FAIR: SignalColor.YELLOW,
    SignalRating.POOR: SignalColor.ORANGE,
    SignalRating.BAD: SignalColor.RED,
}


@dataclass(slots=True, frozen=True)
class SignalReport:
    rating: SignalRating
    snr_color: SignalColor | None
    rssi_rating: RssiRating

    @property
    def rssi_color(self) -> SignalColor | None:
        return self.rssi_rating.color


def is_direct_link(sample: SignalSample) -> bool:
    """True when the packet was heard over RF with no intermediate hops."""
    return sample.hop_count == 0 and not sample.via_relay


def classify(sample: SignalSample) -> SignalRating:
    """Rate the SNR of a directly heard packet against its modem preset.

    A sample without an SNR reading is not rated.
    """
    snr = sample.snr
    if snr is None or not is_direct_link(sample):
        return SignalRating.NONE
    bands = PRESET_SNR_BREAKPOINTS[sample.modem_preset]
    if snr >= bands.great:
        return SignalRating.GREAT
    if snr >= bands.good:
        return SignalRating.GOOD
    if snr >= bands.fair:
        return SignalRating.FAIR
    if snr >= bands.poor:
        return SignalRating.POOR
    return SignalRating.BAD


def classify_rssi(sample: SignalSample) -> RssiRating:
    """Bucket the RSSI of a directly heard packet; a secondary indicator only."""
    if not is_direct_link(sample):
        return RssiRating.NONE
    bands = PRESET_RSSI_BREAKPOINTS[sample.modem_preset]
    if sample.rssi >= bands.strong:
        return RssiRating.STRONG
    if sample.rssi >= bands.fair:
        return RssiRating.FAIR
    return RssiRating.WEAK


def snr_color(sample: SignalSample) -> SignalColor | None:
    return _SNR_COLORS.get(classify(sample))


def assess(sample: SignalSample) -> SignalReport:
    """Bundle the SNR rating, its color and the RSSI bucket for display."""
    rating = classify(sample)
    return SignalReport(
        rating=rating,
        snr_color=_SNR_COLORS.get(rating),
        rssi_rating=classify_rssi(sample),
    )


def rssi_to_signal_percent(rssi: int) -> int:
    """Convert RSSI (dBm) to 0-100 signal percentage.

    Maps typical LoRa RSSI range (-120 to -40 dBm) to 0-100%.
    """
    return max(0, min(100, (rssi + 120) * 100 // 80))


def format_snr(snr: float) -> str:
    return f"{snr:.2f} dB"


def format_rssi(rssi: int) -> str:
    return f"{rssi} dBm"
