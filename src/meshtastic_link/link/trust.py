"""Public key pinning for node identities.

The first key a node announces is recorded. Later announcements are
compared byte-for-byte against it; a different key is reported as a
mismatch and the recorded key is left alone. Only an explicit
:meth:`NodeTrustTracker.confirm_replacement` (the re-pair action) changes a
recorded key.
"""

from __future__ import annotations

import hashlib
import logging
import threading

from meshtastic_link.core.enums import EventType, TrustOutcome
from meshtastic_link.core.models import TrustState, node_id_hex
from meshtastic_link.core.types import EmitCallback, KeyStoreProtocol, LinkEventDict

logger = logging.getLogger(__name__)


def key_fingerprint(key: bytes) -> str:
    """Short stable fingerprint for logs (SHA-256, 16 hex chars)."""
    if not key:
        return "<none>"
    return hashlib.sha256(key).hexdigest()[:16]


class InMemoryKeyStore:
    """Key store backed by a dict; stands in for the node record store."""

    def __init__(self, keys: dict[int, bytes] | None = None) -> None:
        self._keys: dict[int, bytes] = dict(keys or {})
        self._lock = threading.Lock()

    def get_recorded_key(self, node_id: int) -> bytes | None:
        with self._lock:
            return self._keys.get(node_id)

    def set_recorded_key(self, node_id: int, key: bytes) -> None:
        with self._lock:
            self._keys[node_id] = bytes(key)


class NodeTrustTracker:
    """Evaluates identity announcements against recorded public keys.

    Calls for the same node are serialized; calls for different nodes run
    independently.
    """

    def __init__(self, *, emit: EmitCallback | None = None) -> None:
        self._emit_fn = emit
        self._states: dict[int, TrustState] = {}
        self._node_locks: dict[int, threading.Lock] = {}
        self._table_lock = threading.Lock()
        self._closed = False

    def _lock_for(self, node_id: int) -> threading.Lock:
        with self._table_lock:
            if self._closed:
                raise RuntimeError("NodeTrustTracker is closed.")
            lock = self._node_locks.get(node_id)
            if lock is None:
                lock = self._node_locks[node_id] = threading.Lock()
            return lock

    def _emit(self, event_type: EventType, state: TrustState) -> None:
        if self._emit_fn is None:
            return
        payload: LinkEventDict = {
            "type": str(event_type),
            "data": {
                "node_id": node_id_hex(state.node_id),
                "recorded_fingerprint": key_fingerprint(state.recorded_public_key),
                "current_fingerprint": key_fingerprint(state.current_public_key),
                "trusted": state.trusted,
            },
        }
        try:
            self._emit_fn(payload)
        except Exception:  # noqa: BLE001
            logger.debug("trust event observer failed for %s", event_type, exc_info=True)

    def evaluate(
        self, node_id: int, incoming_key: bytes, store: KeyStoreProtocol
    ) -> TrustOutcome:
        """Compare an announced key with the recorded one.

        A mismatch is sticky: the node keeps evaluating to MISMATCH, whatever
        key it announces next, until :meth:`confirm_replacement` runs or the
        recorded key is removed from the store.
        """
        incoming = bytes(incoming_key)
        with self._lock_for(node_id):
            recorded = store.get_recorded_key(node_id) or b""
            previous = self._states.get(node_id)

            if not recorded:
                state = TrustState(node_id, incoming, incoming, trusted=True)
                self._states[node_id] = state
                if not incoming:
                    # Nothing to pin yet
                    return TrustOutcome.TRUSTED
                store.set_recorded_key(node_id, incoming)
                outcome = TrustOutcome.FIRST_SEEN
            elif incoming == recorded and (previous is None or previous.trusted):
                self._states[node_id] = TrustState(node_id, recorded, incoming, trusted=True)
                return TrustOutcome.TRUSTED
            else:
                state = TrustState(node_id, recorded, incoming, trusted=False)
                self._states[node_id] = state
                outcome = TrustOutcome.MISMATCH

        if outcome is TrustOutcome.FIRST_SEEN:
            logger.info(
                "recorded first public key for %s (%s)",
                node_id_hex(node_id),
                key_fingerprint(incoming),
            )
            self._emit(EventType.TRUST_FIRST_SEEN, state)
        else:
            logger.warning(
                "public key mismatch for %s: recorded %s, received %s; "
                "re-pair the node to trust a new key",
                node_id_hex(node_id),
                key_fingerprint(state.recorded_public_key),
                key_fingerprint(incoming),
            )
            self._emit(EventType.TRUST_MISMATCH, state)
        return outcome

    def confirm_replacement(
        self, node_id: int, key: bytes, store: KeyStoreProtocol
    ) -> TrustState:
        """Replace the recorded key after the operator has re-paired the node.

        Clears a pending mismatch.
        """
        new_key = bytes(key)
        if not new_key:
            raise ValueError("replacement public key must not be empty")
        with self._lock_for(node_id):
            previous = store.get_recorded_key(node_id) or b""
            store.set_recorded_key(node_id, new_key)
            state = TrustState(node_id, new_key, new_key, trusted=True)
            self._states[node_id] = state
        logger.warning(
            "public key for %s replaced by operator: %s -> %s",
            node_id_hex(node_id),
            key_fingerprint(previous),
            key_fingerprint(new_key),
        )
        self._emit(EventType.TRUST_KEY_REPLACED, state)
        return TrustState(node_id, new_key, new_key, trusted=True)

    def state(self, node_id: int) -> TrustState | None:
        with self._lock_for(node_id):
            state = self._states.get(node_id)
            if state is None:
                return None
            return TrustState(
                state.node_id, state.recorded_public_key, state.current_public_key, state.trusted
            )

    def close(self) -> None:
        with self._table_lock:
            self._closed = True
            self._states.clear()
            self._node_locks.clear()
