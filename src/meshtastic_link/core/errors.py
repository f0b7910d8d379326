"""Exception taxonomy for the link layer.

Decode errors are always surfaced to the caller; the caller decides whether
to discard the frame or read again. Admin command errors are raised before
(or instead of) a request entering the in-flight table and are recoverable
by correcting input or restoring the link.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from meshtastic_link.core.models import AdminRequest


class DecodeError(ValueError):
    """Base class for wire decoding failures."""


class TruncatedError(DecodeError):
    """Input ended before a field's declared length or fixed width."""


class MalformedError(DecodeError):
    """Invalid varint, field number or wire type."""


class AdminCommandError(Exception):
    """Base class for synchronous admin command failures."""

    def __init__(self, message: str, request: AdminRequest | None = None) -> None:
        super().__init__(message)
        self.request = request


class InvalidTargetError(AdminCommandError):
    """Node identities or admin index are not usable for a request."""


class DuplicateInFlightError(AdminCommandError):
    """A request of the same kind is already in flight to the same node."""


class TransportError(AdminCommandError):
    """The transport refused the write (no active link, no admin channel, ...)."""
