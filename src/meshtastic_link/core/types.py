"""Type definitions for meshtastic_link.

This module provides the event dictionary aliases and the Protocol stubs for
the collaborators the link layer talks to (node record store, transport,
timer service). Implementations live outside the core; the in-repo ones are
in ``meshtastic_link.link.timers``, ``meshtastic_link.link.trust`` and
``meshtastic_link.mock``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Protocol

if TYPE_CHECKING:
    from meshtastic_link.core.models import AdminRequest


# =============================================================================
# Event payloads
# =============================================================================


# Events emitted by the trust tracker and the correlator always have
# 'type' (an EventType value) and 'data' keys.
LinkEventDict = dict[str, Any]

# Type alias for emit callback used throughout the codebase
EmitCallback = Callable[[LinkEventDict], None]


# =============================================================================
# Collaborator protocols
# =============================================================================


class KeyStoreProtocol(Protocol):
    """Node record store as seen by the trust tracker."""

    def get_recorded_key(self, node_id: int) -> bytes | None:
        """Return the pinned public key for a node, or None if never recorded."""
        ...

    def set_recorded_key(self, node_id: int, key: bytes) -> None:
        """Pin a public key for a node."""
        ...


class AdminTransportProtocol(Protocol):
    """Outbound half of the device link.

    ``send`` must hand the request off and return immediately. It raises
    ``TransportError`` when the write cannot be attempted at all.
    """

    def send(self, request: AdminRequest) -> None: ...


class CancellableProtocol(Protocol):
    def cancel(self) -> None: ...


class TimerServiceProtocol(Protocol):
    def after(self, delay: float, callback: Callable[[], None]) -> CancellableProtocol:
        """Run *callback* once after *delay* seconds unless cancelled first."""
        ...
