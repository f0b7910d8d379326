import pytest

from meshtastic_link.core.enums import ModemPreset, RssiRating, SignalColor, SignalRating
from meshtastic_link.core.models import SignalSample
from meshtastic_link.core.radio import (
    PRESET_RSSI_BREAKPOINTS,
    PRESET_SNR_BREAKPOINTS,
    RssiBreakpoints,
    SnrBreakpoints,
    assess,
    classify,
    classify_rssi,
    format_rssi,
    format_snr,
    rssi_to_signal_percent,
    snr_color,
)


def _snr_sweep() -> list[float]:
    return [x / 4 for x in range(-120, 81)]  # -30 dB to +20 dB


def test_every_preset_has_breakpoints() -> None:
    assert set(PRESET_SNR_BREAKPOINTS) == set(ModemPreset)
    assert set(PRESET_RSSI_BREAKPOINTS) == set(ModemPreset)


@pytest.mark.parametrize("preset", list(ModemPreset))
def test_rating_is_monotonic_in_snr(preset: ModemPreset) -> None:
    ratings = [
        classify(SignalSample(snr=snr, rssi=-100, modem_preset=preset)) for snr in _snr_sweep()
    ]
    assert ratings == sorted(ratings)
    assert ratings[0] is SignalRating.BAD
    assert ratings[-1] is SignalRating.GREAT


@pytest.mark.parametrize("preset", list(ModemPreset))
def test_rssi_bucket_is_monotonic(preset: ModemPreset) -> None:
    buckets = [
        classify_rssi(SignalSample(snr=0.0, rssi=rssi, modem_preset=preset))
        for rssi in range(-160, -40)
    ]
    assert buckets == sorted(buckets)


def test_fast_presets_tolerate_lower_snr() -> None:
    for snr in _snr_sweep():
        fast = classify(SignalSample(snr=snr, rssi=-100, modem_preset=ModemPreset.SHORT_FAST))
        slow = classify(SignalSample(snr=snr, rssi=-100, modem_preset=ModemPreset.LONG_SLOW))
        assert fast >= slow
    assert (
        PRESET_SNR_BREAKPOINTS[ModemPreset.SHORT_FAST].good
        < PRESET_SNR_BREAKPOINTS[ModemPreset.LONG_SLOW].good
    )


def test_weak_direct_packet_on_long_slow_is_poor() -> None:
    sample = SignalSample(snr=-5.0, rssi=-110, hop_count=0, modem_preset=ModemPreset.LONG_SLOW)

    rating = classify(sample)

    assert rating <= SignalRating.POOR
    assert rating is not SignalRating.NONE
    assert rating is SignalRating.POOR


def test_lower_breakpoint_is_inclusive() -> None:
    bands = PRESET_SNR_BREAKPOINTS[ModemPreset.LONG_FAST]

    def rate(snr: float) -> SignalRating:
        return classify(SignalSample(snr=snr, rssi=-100))

    assert rate(bands.great) is SignalRating.GREAT
    assert rate(bands.good) is SignalRating.GOOD
    assert rate(bands.good - 0.01) is SignalRating.FAIR
    assert rate(bands.poor) is SignalRating.POOR
    assert rate(bands.poor - 0.01) is SignalRating.BAD
    assert rate(1000.0) is SignalRating.GREAT
    assert rate(-1000.0) is SignalRating.BAD


@pytest.mark.parametrize(
    "sample",
    [
        SignalSample(snr=10.0, rssi=-60, hop_count=1),
        SignalSample(snr=10.0, rssi=-60, hop_count=3),
        SignalSample(snr=10.0, rssi=-60, via_relay=True),
    ],
)
def test_indirect_packets_have_no_rating(sample: SignalSample) -> None:
    assert classify(sample) is SignalRating.NONE
    assert classify_rssi(sample) is RssiRating.NONE
    assert snr_color(sample) is None
    report = assess(sample)
    assert report.rating is SignalRating.NONE
    assert report.snr_color is None
    assert report.rssi_color is None


def test_missing_snr_reading_has_no_rating() -> None:
    sample = SignalSample(snr=None, rssi=-90)

    assert classify(sample) is SignalRating.NONE
    assert snr_color(sample) is None
    # RSSI is still bucketed on its own
    assert classify_rssi(sample) is RssiRating.STRONG


def test_zero_snr_is_a_real_reading() -> None:
    sample = SignalSample(snr=0.0, rssi=-90)
    assert classify(sample) is not SignalRating.NONE


def test_rssi_buckets_long_fast() -> None:
    def bucket(rssi: int) -> RssiRating:
        return classify_rssi(SignalSample(snr=0.0, rssi=rssi))

    assert bucket(-90) is RssiRating.STRONG
    assert bucket(-115) is RssiRating.STRONG
    assert bucket(-116) is RssiRating.FAIR
    assert bucket(-126) is RssiRating.FAIR
    assert bucket(-127) is RssiRating.WEAK


def test_colors() -> None:
    assert snr_color(SignalSample(snr=12.0, rssi=-90)) is SignalColor.GREEN
    assert snr_color(SignalSample(snr=3.0, rssi=-90)) is SignalColor.GREEN
    assert snr_color(SignalSample(snr=0.0, rssi=-90)) is SignalColor.YELLOW
    assert snr_color(SignalSample(snr=-5.0, rssi=-90)) is SignalColor.ORANGE
    assert snr_color(SignalSample(snr=-20.0, rssi=-90)) is SignalColor.RED
    assert RssiRating.STRONG.color is SignalColor.GREEN
    assert RssiRating.FAIR.color is SignalColor.YELLOW
    assert RssiRating.WEAK.color is SignalColor.RED
    assert RssiRating.NONE.color is None


def test_assess_bundles_both_indicators() -> None:
    report = assess(SignalSample(snr=8.0, rssi=-130))
    assert report.rating is SignalRating.GREAT
    assert report.snr_color is SignalColor.GREEN
    assert report.rssi_rating is RssiRating.WEAK
    assert report.rssi_color is SignalColor.RED


def test_breakpoints_must_descend() -> None:
    with pytest.raises(ValueError):
        SnrBreakpoints(great=1.0, good=2.0, fair=-3.0, poor=-8.0)
    with pytest.raises(ValueError):
        RssiBreakpoints(strong=-120, fair=-110)


def test_rssi_to_signal_percent() -> None:
    assert rssi_to_signal_percent(-120) == 0
    assert rssi_to_signal_percent(-130) == 0
    assert rssi_to_signal_percent(-80) == 50
    assert rssi_to_signal_percent(-40) == 100
    assert rssi_to_signal_percent(-20) == 100


def test_format_helpers() -> None:
    assert format_snr(-7.25) == "-7.25 dB"
    assert format_rssi(-101) == "-101 dBm"
