from .enums import (
    AdminKind,
    EventType,
    ModemPreset,
    RequestState,
    ResponseOutcome,
    RssiRating,
    SignalColor,
    SignalRating,
    TransportKind,
    TrustOutcome,
)
from .errors import (
    AdminCommandError,
    DecodeError,
    DuplicateInFlightError,
    InvalidTargetError,
    MalformedError,
    TransportError,
    TruncatedError,
)
from .models import AdminRequest, NodeSummary, SignalSample, TargetTuple, TrustState, node_id_hex
from .radio import assess, classify, classify_rssi, is_direct_link, snr_color
from .types import (
    AdminTransportProtocol,
    EmitCallback,
    KeyStoreProtocol,
    LinkEventDict,
    TimerServiceProtocol,
)

__all__ = [
    "AdminCommandError",
    "AdminKind",
    "AdminRequest",
    "AdminTransportProtocol",
    "DecodeError",
    "DuplicateInFlightError",
    "EmitCallback",
    "EventType",
    "InvalidTargetError",
    "KeyStoreProtocol",
    "LinkEventDict",
    "MalformedError",
    "ModemPreset",
    "NodeSummary",
    "RequestState",
    "ResponseOutcome",
    "RssiRating",
    "SignalColor",
    "SignalRating",
    "SignalSample",
    "TargetTuple",
    "TimerServiceProtocol",
    "TransportError",
    "TransportKind",
    "TruncatedError",
    "TrustOutcome",
    "TrustState",
    "assess",
    "classify",
    "classify_rssi",
    "is_direct_link",
    "node_id_hex",
    "snr_color",
]
