"""Enums for modem presets, signal ratings, trust outcomes and admin requests."""

from enum import IntEnum, StrEnum


class ModemPreset(IntEnum):
    """LoRa modem presets, numbered as the device firmware numbers them.

    Each preset trades bandwidth and spreading factor against range:
        0: LONG_FAST       - SF11, 250 kHz
        1: LONG_SLOW       - SF12, 125 kHz
        2: VERY_LONG_SLOW  - SF12, 62.5 kHz
        3: MEDIUM_SLOW     - SF10, 250 kHz
        4: MEDIUM_FAST     - SF9, 250 kHz
        5: SHORT_SLOW      - SF8, 250 kHz
        6: SHORT_FAST      - SF7, 250 kHz
        7: LONG_MODERATE   - SF11, 125 kHz
        8: SHORT_TURBO     - SF7, 500 kHz
    """

    LONG_FAST = 0
    LONG_SLOW = 1
    VERY_LONG_SLOW = 2
    MEDIUM_SLOW = 3
    MEDIUM_FAST = 4
    SHORT_SLOW = 5
    SHORT_FAST = 6
    LONG_MODERATE = 7
    SHORT_TURBO = 8

    @property
    def display_name(self) -> str:
        return self.name.replace("_", " ").title()

    @classmethod
    def from_name(cls, name: str) -> "ModemPreset":
        """Parse ``LONG_FAST``, ``long-fast`` or ``Long Fast``."""
        key = name.strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown modem preset: {name!r}") from None


class SignalRating(IntEnum):
    """Ordinal link quality derived from SNR.

    NONE means no rating applies (multi-hop or relayed packet).
    """

    NONE = 0
    BAD = 1
    POOR = 2
    FAIR = 3
    GOOD = 4
    GREAT = 5


class SignalColor(StrEnum):
    """Advisory color shown next to a raw SNR or RSSI value."""

    GREEN = "green"
    YELLOW = "yellow"
    ORANGE = "orange"
    RED = "red"


class RssiRating(IntEnum):
    """Coarse three-level RSSI bucket, plus NONE for indirect packets."""

    NONE = 0
    WEAK = 1
    FAIR = 2
    STRONG = 3

    @property
    def color(self) -> SignalColor | None:
        return _RSSI_COLORS.get(self)


_RSSI_COLORS = {
    RssiRating.WEAK: SignalColor.RED,
    RssiRating.FAIR: SignalColor.YELLOW,
    RssiRating.STRONG: SignalColor.GREEN,
}


class TransportKind(StrEnum):
    WIFI = "wifi"
    ETHERNET = "ethernet"
    BLUETOOTH = "bluetooth"
    SERIAL = "serial"


class TrustOutcome(StrEnum):
    TRUSTED = "trusted"
    FIRST_SEEN = "first_seen"
    MISMATCH = "mismatch"


class AdminKind(StrEnum):
    METADATA_REFRESH = "metadata_refresh"
    SHUTDOWN = "shutdown"
    REBOOT = "reboot"
    POSITION_EXCHANGE = "position_exchange"
    TRACE_ROUTE = "trace_route"
    HISTORY_FETCH = "history_fetch"

    @property
    def is_destructive(self) -> bool:
        return self in (AdminKind.SHUTDOWN, AdminKind.REBOOT)

    @property
    def requires_remote_target(self) -> bool:
        """Kinds that only make sense between two different nodes."""
        return self in (
            AdminKind.POSITION_EXCHANGE,
            AdminKind.TRACE_ROUTE,
            AdminKind.HISTORY_FETCH,
        )


class RequestState(StrEnum):
    """Lifecycle of an admin request.

    CREATED -> SENT -> one of ACKED, FAILED, TIMED_OUT, CANCELED.
    """

    CREATED = "created"
    SENT = "sent"
    ACKED = "acked"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self not in (RequestState.CREATED, RequestState.SENT)


class ResponseOutcome(StrEnum):
    ACK = "ack"
    NAK = "nak"


class EventType(StrEnum):
    """Event types emitted to observers of the link layer."""

    # Admin request lifecycle
    ADMIN_REQUEST_SENT = "admin.request.sent"
    ADMIN_REQUEST_ACKED = "admin.request.acked"
    ADMIN_REQUEST_FAILED = "admin.request.failed"
    ADMIN_REQUEST_TIMED_OUT = "admin.request.timed_out"
    ADMIN_REQUEST_CANCELED = "admin.request.canceled"

    # Node identity
    TRUST_FIRST_SEEN = "trust.first_seen"
    TRUST_MISMATCH = "trust.mismatch"
    TRUST_KEY_REPLACED = "trust.key_replaced"
