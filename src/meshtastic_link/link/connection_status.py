"""Codec for the device's multi-transport connection status report.

The wire format is ``meshtastic.DeviceConnectionStatus`` from the firmware
protobufs; parsing and serialisation go through the generated
``connection_status_pb2`` classes::

    DeviceConnectionStatus    1: wifi  2: ethernet  3: bluetooth  4: serial
    WifiConnectionStatus      1: status (NetworkConnectionStatus)  2: ssid  3: rssi (int32)
    EthernetConnectionStatus  1: status (NetworkConnectionStatus)
    NetworkConnectionStatus   1: ip_address (fixed32)  2: is_connected
                              3: is_mqtt_connected  4: is_syslog_connected
    BluetoothConnectionStatus 1: pin (uint32)  2: rssi (int32)  3: is_connected
    SerialConnectionStatus    1: baud (uint32)  2: is_connected

A sub-report is present only when the device has that transport; ``None``
means "not applicable", never "disconnected". Scalars equal to their
default are omitted on encode and read back as the default on decode.
Fields this version does not know are kept verbatim in ``unknown_fields``
and written back after the known fields.
"""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass
from typing import ClassVar, Iterator

from meshtastic.protobuf import connection_status_pb2

from meshtastic_link.core.enums import TransportKind

from .wire import merge_unknown_fields, parse_message, present, unknown_fields

_UINT32_MASK = 0xFFFFFFFF


@dataclass(slots=True)
class NetworkStatus:
    ip_address: int = 0  # Device byte order, carried unchanged
    is_connected: bool = False
    is_mqtt_connected: bool = False
    is_syslog_connected: bool = False
    unknown_fields: bytes = b""

    @property
    def ip_address_str(self) -> str:
        return str(ipaddress.IPv4Address(struct.pack("<I", self.ip_address)))


@dataclass(slots=True)
class WifiStatus:
    kind: ClassVar[TransportKind] = TransportKind.WIFI

    status: NetworkStatus | None = None
    ssid: str = ""
    rssi: int = 0
    unknown_fields: bytes = b""


@dataclass(slots=True)
class EthernetStatus:
    kind: ClassVar[TransportKind] = TransportKind.ETHERNET

    status: NetworkStatus | None = None
    unknown_fields: bytes = b""


@dataclass(slots=True)
class BluetoothStatus:
    kind: ClassVar[TransportKind] = TransportKind.BLUETOOTH

    pin: int = 0
    rssi: int = 0
    is_connected: bool = False
    unknown_fields: bytes = b""


@dataclass(slots=True)
class SerialStatus:
    kind: ClassVar[TransportKind] = TransportKind.SERIAL

    baud: int = 0
    is_connected: bool = False
    unknown_fields: bytes = b""


TransportReport = WifiStatus | EthernetStatus | BluetoothStatus | SerialStatus


@dataclass(slots=True)
class ConnectionStatus:
    wifi: WifiStatus | None = None
    ethernet: EthernetStatus | None = None
    bluetooth: BluetoothStatus | None = None
    serial: SerialStatus | None = None
    unknown_fields: bytes = b""

    def reports(self) -> Iterator[TransportReport]:
        """Yield the transports the device reported, in field order."""
        for report in (self.wifi, self.ethernet, self.bluetooth, self.serial):
            if report is not None:
                yield report


def ip_address_to_device_int(address: str) -> int:
    """Inverse of :attr:`NetworkStatus.ip_address_str`."""
    return struct.unpack("<I", ipaddress.IPv4Address(address).packed)[0]




# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _fill_network(
    message: connection_status_pb2.NetworkConnectionStatus, status: NetworkStatus
) -> None:
    message.ip_address = status.ip_address & _UINT32_MASK
    message.is_connected = status.is_connected
    message.is_mqtt_connected = status.is_mqtt_connected
    message.is_syslog_connected = status.is_syslog_connected
    merge_unknown_fields(message, status.unknown_fields)


def _fill_wifi(message: connection_status_pb2.WifiConnectionStatus, wifi: WifiStatus) -> None:
    if wifi.status is not None:
        _fill_network(present(message, "status"), wifi.status)
    message.ssid = wifi.ssid
    message.rssi = wifi.rssi
    merge_unknown_fields(message, wifi.unknown_fields)


def _fill_ethernet(
    message: connection_status_pb2.EthernetConnectionStatus, ethernet: EthernetStatus
) -> None:
    if ethernet.status is not None:
        _fill_network(present(message, "status"), ethernet.status)
    merge_unknown_fields(message, ethernet.unknown_fields)


def _fill_bluetooth(
    message: connection_status_pb2.BluetoothConnectionStatus, bluetooth: BluetoothStatus
) -> None:
    message.pin = bluetooth.pin & _UINT32_MASK
    message.rssi = bluetooth.rssi
    message.is_connected = bluetooth.is_connected
    merge_unknown_fields(message, bluetooth.unknown_fields)


def _fill_serial(
    message: connection_status_pb2.SerialConnectionStatus, serial: SerialStatus
) -> None:
    message.baud = serial.baud & _UINT32_MASK
    message.is_connected = serial.is_connected
    merge_unknown_fields(message, serial.unknown_fields)


def to_message(status: ConnectionStatus) -> connection_status_pb2.DeviceConnectionStatus:
    """Build the generated ``DeviceConnectionStatus`` for *status*."""
    message = connection_status_pb2.DeviceConnectionStatus()
    if status.wifi is not None:
        _fill_wifi(present(message, "wifi"), status.wifi)
    if status.ethernet is not None:
        _fill_ethernet(present(message, "ethernet"), status.ethernet)
    if status.bluetooth is not None:
        _fill_bluetooth(present(message, "bluetooth"), status.bluetooth)
    if status.serial is not None:
        _fill_serial(present(message, "serial"), status.serial)
    merge_unknown_fields(message, status.unknown_fields)
    return message


def encode_network_status(status: NetworkStatus) -> bytes:
    message = connection_status_pb2.NetworkConnectionStatus()
    _fill_network(message, status)
    return message.SerializeToString()


def encode_bluetooth_status(bluetooth: BluetoothStatus) -> bytes:
    message = connection_status_pb2.BluetoothConnectionStatus()
    _fill_bluetooth(message, bluetooth)
    return message.SerializeToString()


def encode_serial_status(serial: SerialStatus) -> bytes:
    message = connection_status_pb2.SerialConnectionStatus()
    _fill_serial(message, serial)
    return message.SerializeToString()


def encode_connection_status(status: ConnectionStatus) -> bytes:
    return to_message(status).SerializeToString()


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------
# protobuf keeps a known field number that arrives with an unexpected wire
# type as an unknown field, and merges repeated sub-messages.


def _network_from(message: connection_status_pb2.NetworkConnectionStatus) -> NetworkStatus:
    return NetworkStatus(
        ip_address=message.ip_address,
        is_connected=message.is_connected,
        is_mqtt_connected=message.is_mqtt_connected,
        is_syslog_connected=message.is_syslog_connected,
        unknown_fields=unknown_fields(message),
    )


def _wifi_from(message: connection_status_pb2.WifiConnectionStatus) -> WifiStatus:
    return WifiStatus(
        status=_network_from(message.status) if message.HasField("status") else None,
        ssid=message.ssid,
        rssi=message.rssi,
        unknown_fields=unknown_fields(message),
    )


def _ethernet_from(message: connection_status_pb2.EthernetConnectionStatus) -> EthernetStatus:
    return EthernetStatus(
        status=_network_from(message.status) if message.HasField("status") else None,
        unknown_fields=unknown_fields(message),
    )


def _bluetooth_from(message: connection_status_pb2.BluetoothConnectionStatus) -> BluetoothStatus:
    return BluetoothStatus(
        pin=message.pin,
        rssi=message.rssi,
        is_connected=message.is_connected,
        unknown_fields=unknown_fields(message),
    )


def _serial_from(message: connection_status_pb2.SerialConnectionStatus) -> SerialStatus:
    return SerialStatus(
        baud=message.baud,
        is_connected=message.is_connected,
        unknown_fields=unknown_fields(message),
    )


def from_message(message: connection_status_pb2.DeviceConnectionStatus) -> ConnectionStatus:
    """Convert a generated ``DeviceConnectionStatus`` into a :class:`ConnectionStatus`."""
    status = ConnectionStatus(unknown_fields=unknown_fields(message))
    if message.HasField("wifi"):
        status.wifi = _wifi_from(message.wifi)
    if message.HasField("ethernet"):
        status.ethernet = _ethernet_from(message.ethernet)
    if message.HasField("bluetooth"):
        status.bluetooth = _bluetooth_from(message.bluetooth)
    if message.HasField("serial"):
        status.serial = _serial_from(message.serial)
    return status


def decode_bluetooth_status(data: bytes) -> BluetoothStatus:
    return _bluetooth_from(parse_message(connection_status_pb2.BluetoothConnectionStatus, data))


def decode_serial_status(data: bytes) -> SerialStatus:
    return _serial_from(parse_message(connection_status_pb2.SerialConnectionStatus, data))


def decode_connection_status(data: bytes) -> ConnectionStatus:
    """Decode a ``DeviceConnectionStatus`` message.

    Raises ``TruncatedError`` or ``MalformedError`` (both ``DecodeError``).
    """
    return from_message(parse_message(connection_status_pb2.DeviceConnectionStatus, data))
