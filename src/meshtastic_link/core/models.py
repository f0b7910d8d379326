from dataclasses import dataclass, field
from datetime import UTC, datetime

from meshtastic_link.core.enums import AdminKind, ModemPreset, RequestState

BROADCAST_NUM = 0xFFFFFFFF


def node_id_hex(num: int) -> str:
    """Format a node number as the user id shown by the firmware (``!1a2b3c4d``)."""
    return f"!{num & 0xFFFFFFFF:08x}"


@dataclass(slots=True, frozen=True)
class SignalSample:
    snr: float | None  # None when the packet carried no SNR reading
    rssi: int
    hop_count: int = 0
    via_relay: bool = False  # Arrived through MQTT or another bridge
    modem_preset: ModemPreset = ModemPreset.LONG_FAST


@dataclass(slots=True)
class TrustState:
    node_id: int
    recorded_public_key: bytes
    current_public_key: bytes
    trusted: bool


@dataclass(slots=True)
class AdminRequest:
    request_id: int
    from_node: int
    to_node: int
    admin_index: int
    kind: AdminKind
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    state: RequestState = RequestState.CREATED

    @property
    def target(self) -> "TargetTuple":
        return TargetTuple(self.from_node, self.to_node, self.admin_index)

    def to_event_data(self) -> dict:
        return {
            "request_id": self.request_id,
            "from_node": node_id_hex(self.from_node),
            "to_node": node_id_hex(self.to_node),
            "admin_index": self.admin_index,
            "kind": str(self.kind),
            "state": str(self.state),
            "issued_at": self.issued_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class TargetTuple:
    """Correlation key for responses that do not echo the request id."""

    from_node: int
    to_node: int
    admin_index: int


@dataclass(slots=True)
class NodeSummary:
    """What the link layer needs to know about a node to offer admin commands."""

    num: int
    has_admin: bool = False
    admin_index: int = 0
    can_shutdown: bool = False
    is_store_forward_router: bool = False
