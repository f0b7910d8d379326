"""Codec for the canned message module configuration.

``meshtastic.CannedMessageModuleConfig`` carries a single string field
(1: messages) holding the predefined messages separated by ``|``.
"""

from __future__ import annotations

from dataclasses import dataclass

from meshtastic.protobuf import cannedmessages_pb2

from .wire import merge_unknown_fields, parse_message, unknown_fields

SEPARATOR = "|"


@dataclass(slots=True)
class CannedMessageConfig:
    messages: str = ""
    unknown_fields: bytes = b""

    @property
    def entries(self) -> list[str]:
        return [item for item in self.messages.split(SEPARATOR) if item]

    @classmethod
    def from_entries(cls, entries: list[str]) -> "CannedMessageConfig":
        for entry in entries:
            if SEPARATOR in entry:
                raise ValueError(f"canned message may not contain {SEPARATOR!r}: {entry!r}")
        return cls(messages=SEPARATOR.join(entry for entry in entries if entry))


def encode_canned_messages(config: CannedMessageConfig) -> bytes:
    message = cannedmessages_pb2.CannedMessageModuleConfig(messages=config.messages)
    merge_unknown_fields(message, config.unknown_fields)
    return message.SerializeToString()


def decode_canned_messages(data: bytes) -> CannedMessageConfig:
    message = parse_message(cannedmessages_pb2.CannedMessageModuleConfig, data)
    return CannedMessageConfig(messages=message.messages, unknown_fields=unknown_fields(message))
