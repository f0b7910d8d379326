from .admin import AdminCommandCorrelator, PendingRequest, available_commands, validate_target
from .canned_messages import CannedMessageConfig, decode_canned_messages, encode_canned_messages
from .config import LinkConfig, link_config_from_settings, load_link_config
from .connection_status import (
    BluetoothStatus,
    ConnectionStatus,
    EthernetStatus,
    NetworkStatus,
    SerialStatus,
    WifiStatus,
    decode_connection_status,
    encode_connection_status,
)
from .settings import MODEM_PRESETS, LinkSettings, apply_preset
from .timers import AsyncioTimerService, ManualTimerService, ThreadingTimerService
from .trust import InMemoryKeyStore, NodeTrustTracker, key_fingerprint

__all__ = [
    "AdminCommandCorrelator",
    "AsyncioTimerService",
    "BluetoothStatus",
    "CannedMessageConfig",
    "ConnectionStatus",
    "EthernetStatus",
    "InMemoryKeyStore",
    "LinkConfig",
    "LinkSettings",
    "MODEM_PRESETS",
    "ManualTimerService",
    "NetworkStatus",
    "NodeTrustTracker",
    "PendingRequest",
    "SerialStatus",
    "ThreadingTimerService",
    "WifiStatus",
    "apply_preset",
    "available_commands",
    "decode_canned_messages",
    "decode_connection_status",
    "encode_canned_messages",
    "encode_connection_status",
    "key_fingerprint",
    "link_config_from_settings",
    "load_link_config",
    "validate_target",
]
