"""Glue between the link dataclasses and the generated protobuf messages.

Parsing and serialisation are done by ``google.protobuf``. This module adds
the parts the link layer needs on top:

- unknown fields of a message as raw bytes, and putting them back;
- turning a protobuf parse failure into ``TruncatedError`` or
  ``MalformedError`` by walking the input again, field by field.
"""

from __future__ import annotations

import struct
from typing import Iterator, NamedTuple, TypeVar

from google.protobuf.descriptor import Descriptor, FieldDescriptor
from google.protobuf.message import DecodeError as ProtobufDecodeError
from google.protobuf.message import Message

from meshtastic_link.core.errors import DecodeError, MalformedError, TruncatedError

VARINT = 0
FIXED64 = 1
LENGTH_DELIMITED = 2
FIXED32 = 5

MAX_VARINT_BYTES = 10
MAX_FIELD_NUMBER = (1 << 29) - 1

_UINT64_MASK = (1 << 64) - 1

MessageT = TypeVar("MessageT", bound=Message)


class WireField(NamedTuple):
    number: int
    wire_type: int
    value: int | bytes  # bytes for LENGTH_DELIMITED, int otherwise


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a varint at *offset*. Returns ``(value, offset_after)``."""
    result = 0
    shift = 0
    pos = offset
    while True:
        if pos >= len(data):
            raise TruncatedError(f"varint at offset {offset} runs past end of input")
        if pos - offset >= MAX_VARINT_BYTES:
            raise MalformedError(f"varint at offset {offset} is longer than 10 bytes")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result & _UINT64_MASK, pos
        shift += 7


def iter_fields(data: bytes) -> Iterator[WireField]:
    """Walk the top-level fields of an encoded message.

    Group wire types (3, 4) and the reserved ones (6, 7) are malformed here.
    """
    offset = 0
    end = len(data)
    while offset < end:
        start = offset
        key, offset = decode_varint(data, offset)
        number = key >> 3
        wire_type = key & 0x07
        if number == 0 or number > MAX_FIELD_NUMBER:
            raise MalformedError(f"invalid field number {number} at offset {start}")

        value: int | bytes
        if wire_type == VARINT:
            value, offset = decode_varint(data, offset)
        elif wire_type == FIXED32:
            if offset + 4 > end:
                raise TruncatedError(f"fixed32 field {number} at offset {start} is truncated")
            value = struct.unpack_from("<I", data, offset)[0]
            offset += 4
        elif wire_type == FIXED64:
            if offset + 8 > end:
                raise TruncatedError(f"fixed64 field {number} at offset {start} is truncated")
            value = struct.unpack_from("<Q", data, offset)[0]
            offset += 8
        elif wire_type == LENGTH_DELIMITED:
            length, offset = decode_varint(data, offset)
            if length > end - offset:
                raise TruncatedError(
                    f"field {number} declares {length} bytes but only {end - offset} remain"
                )
            value = bytes(data[offset : offset + length])
            offset += length
        else:
            raise MalformedError(f"unsupported wire type {wire_type} for field {number}")

        yield WireField(number, wire_type, value)


def _check_structure(data: bytes, descriptor: Descriptor | None) -> None:
    for field in iter_fields(data):
        if descriptor is None or field.wire_type != LENGTH_DELIMITED:
            continue
        known = descriptor.fields_by_number.get(field.number)
        if known is not None and known.type == FieldDescriptor.TYPE_MESSAGE:
            _check_structure(field.value, known.message_type)


def classify_parse_error(data: bytes, descriptor: Descriptor, cause: Exception) -> DecodeError:
    """Map a failed protobuf parse of *data* onto the link's decode errors.

    Structural problems (short input, bad tag, bad varint) are found by
    walking the bytes again, descending into the sub-messages *descriptor*
    declares. A parse failure the walk does not explain, such as a string
    that is not UTF-8, is malformed.
    """
    try:
        _check_structure(data, descriptor)
    except DecodeError as exc:
        return exc
    return MalformedError(f"invalid {descriptor.name}: {cause}")


def parse_message(message_type: type[MessageT], data: bytes) -> MessageT:
    """Parse *data* as *message_type*, raising the link's ``DecodeError`` subclasses."""
    data = bytes(data)
    message = message_type()
    try:
        message.ParseFromString(data)
    except (ProtobufDecodeError, UnicodeDecodeError) as exc:
        raise classify_parse_error(data, message_type.DESCRIPTOR, exc) from exc
    return message


def unknown_fields(message: Message) -> bytes:
    """Wire bytes of the fields *message* carried that its type does not declare.

    Covers this message only; unknown fields of sub-messages stay with them.
    """
    rest = type(message)()
    rest.CopyFrom(message)
    for field in rest.DESCRIPTOR.fields:
        rest.ClearField(field.name)
    return rest.SerializeToString()


def merge_unknown_fields(message: Message, raw: bytes) -> None:
    """Put bytes from :func:`unknown_fields` back; they serialise after the known fields."""
    if not raw:
        return
    try:
        message.MergeFromString(raw)
    except ProtobufDecodeError as exc:
        raise ValueError(
            f"unknown_fields for {message.DESCRIPTOR.name} do not parse: {exc}"
        ) from exc


def present(parent: Message, name: str) -> Message:
    """Return sub-message *name* of *parent*, marked present even when left empty."""
    child = getattr(parent, name)
    child.SetInParent()
    return child
