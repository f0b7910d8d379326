"""Admin command issue and acknowledgment correlation.

Each request is SENT once handed to the transport and then reaches exactly one
terminal state (ACKED, FAILED, TIMED_OUT, CANCELED). A transport that refuses
the write fails the request synchronously and it never becomes in flight.
Everything after SENT is asynchronous: a correlating ack/nak from the
transport's receive path, a timeout from the timer service, or an explicit
cancel. A response that arrives while ``send`` is still running is held and
applied as soon as the write returns.

Only one request per ``(to_node, kind)`` may be in flight. A second one is
rejected with ``DuplicateInFlightError`` rather than queued. Nothing here
retries; the caller decides whether re-issuing is safe.
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
from concurrent.futures import Future
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Callable, Generator

from meshtastic_link.core.enums import AdminKind, EventType, RequestState, ResponseOutcome
from meshtastic_link.core.errors import (
    AdminCommandError,
    DuplicateInFlightError,
    InvalidTargetError,
)
from meshtastic_link.core.models import (
    BROADCAST_NUM,
    AdminRequest,
    NodeSummary,
    TargetTuple,
    node_id_hex,
)
from meshtastic_link.core.types import (
    AdminTransportProtocol,
    CancellableProtocol,
    EmitCallback,
    LinkEventDict,
    TimerServiceProtocol,
)

from .settings import DEFAULT_ADMIN_TIMEOUT

logger = logging.getLogger(__name__)

_UINT32_MAX = 0xFFFFFFFF

_STATE_EVENTS = {
    RequestState.SENT: EventType.ADMIN_REQUEST_SENT,
    RequestState.ACKED: EventType.ADMIN_REQUEST_ACKED,
    RequestState.FAILED: EventType.ADMIN_REQUEST_FAILED,
    RequestState.TIMED_OUT: EventType.ADMIN_REQUEST_TIMED_OUT,
    RequestState.CANCELED: EventType.ADMIN_REQUEST_CANCELED,
}

_RESPONSE_STATES = {
    ResponseOutcome.ACK: RequestState.ACKED,
    ResponseOutcome.NAK: RequestState.FAILED,
}


def validate_target(from_node: int, to_node: int, admin_index: int, kind: AdminKind) -> None:
    """Raise ``InvalidTargetError`` unless the request can be addressed."""
    for label, num in (("from_node", from_node), ("to_node", to_node)):
        if isinstance(num, bool) or not isinstance(num, int):
            raise InvalidTargetError(f"{label} must be an int, got {num!r}")
        if not 0 < num < BROADCAST_NUM:
            raise InvalidTargetError(f"{label} {num} is not a unicast node number")
    if isinstance(admin_index, bool) or not isinstance(admin_index, int):
        raise InvalidTargetError(f"admin_index must be an int, got {admin_index!r}")
    if not 0 <= admin_index <= _UINT32_MAX:
        raise InvalidTargetError(f"admin_index {admin_index} is out of range")
    if kind.requires_remote_target and from_node == to_node:
        raise InvalidTargetError(f"{kind} needs a remote node, got {node_id_hex(to_node)}")


def available_commands(connected: NodeSummary, node: NodeSummary) -> list[AdminKind]:
    """Admin commands the connected node can send to *node*."""
    commands: list[AdminKind] = []
    if connected.has_admin:
        commands.append(AdminKind.METADATA_REFRESH)
        if node.can_shutdown:
            commands.append(AdminKind.SHUTDOWN)
        commands.append(AdminKind.REBOOT)
    if connected.num != node.num:
        commands.append(AdminKind.POSITION_EXCHANGE)
        commands.append(AdminKind.TRACE_ROUTE)
        if node.is_store_forward_router:
            commands.append(AdminKind.HISTORY_FETCH)
    return commands


@dataclass(slots=True)
class _Entry:
    request: AdminRequest
    future: Future
    timer: CancellableProtocol | None = None
    # True while transport.send() runs; a response arriving then is parked in
    # ``deferred`` and applied once the write returns.
    sending: bool = False
    deferred: RequestState | None = None


class PendingRequest:
    """Handle for an in-flight request.

    ``result()`` blocks until the request reaches a terminal state; the
    handle can also be awaited from a coroutine.
    """

    def __init__(self, entry: _Entry, correlator: AdminCommandCorrelator) -> None:
        self._entry = entry
        self._correlator = correlator

    @property
    def request(self) -> AdminRequest:
        return replace(self._entry.request)

    @property
    def request_id(self) -> int:
        return self._entry.request.request_id

    @property
    def state(self) -> RequestState:
        return self._entry.request.state

    def done(self) -> bool:
        return self._entry.future.done()

    def result(self, timeout: float | None = None) -> RequestState:
        return self._entry.future.result(timeout)

    def add_done_callback(self, fn: Callable[[PendingRequest], None]) -> None:
        self._entry.future.add_done_callback(lambda _future: fn(self))

    def cancel(self) -> bool:
        return self._correlator.cancel(self.request_id)

    def __await__(self) -> Generator[object, None, RequestState]:
        return asyncio.wrap_future(self._entry.future).__await__()

    def __repr__(self) -> str:
        request = self._entry.request
        return f"<PendingRequest id={request.request_id} kind={request.kind} state={request.state}>"


class AdminCommandCorrelator:
    """Owns the in-flight admin request table.

    One lock guards the table. It is never held while calling the transport,
    the timer callbacks or observers, so a transport may deliver a response
    from inside ``send``.
    """

    def __init__(
        self,
        transport: AdminTransportProtocol,
        timers: TimerServiceProtocol,
        *,
        timeout: float = DEFAULT_ADMIN_TIMEOUT,
        clock: Callable[[], datetime] | None = None,
        emit: EmitCallback | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        self._transport = transport
        self._timers = timers
        self._timeout = timeout
        self._clock = clock or (lambda: datetime.now(UTC))
        self._emit_fn = emit
        self._entries: dict[int, _Entry] = {}
        self._by_key: dict[tuple[int, AdminKind], int] = {}
        self._lock = threading.Lock()
        self._last_id = random.getrandbits(32)
        self._closed = False

    @property
    def timeout(self) -> float:
        return self._timeout

    def __enter__(self) -> AdminCommandCorrelator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- internals -----------------------------------------------------------

    def _next_request_id(self) -> int:
        # Caller holds the lock.
        while True:
            self._last_id = (self._last_id + 1) & _UINT32_MAX
            if self._last_id and self._last_id not in self._entries:
                return self._last_id

    @staticmethod
    def _event(request: AdminRequest) -> LinkEventDict:
        return {
            "type": str(_STATE_EVENTS[request.state]),
            "data": request.to_event_data(),
        }

    def _publish(self, payload: LinkEventDict) -> None:
        if self._emit_fn is None:
            return
        try:
            self._emit_fn(payload)
        except Exception:  # noqa: BLE001
            logger.debug("admin event observer failed", exc_info=True)

    def _detach(self, entry: _Entry, state: RequestState) -> None:
        # Caller holds the lock.
        request = entry.request
        request.state = state
        self._entries.pop(request.request_id, None)
        key = (request.to_node, request.kind)
        if self._by_key.get(key) == request.request_id:
            del self._by_key[key]

    def _finish(self, entry: _Entry) -> None:
        request = entry.request
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None
        log = logger.warning if request.state is RequestState.TIMED_OUT else logger.info
        log(
            "%s request %d to %s %s",
            request.kind,
            request.request_id,
            node_id_hex(request.to_node),
            request.state,
        )
        entry.future.set_result(request.state)
        self._publish(self._event(request))

    def _resolve(self, request_id: int, state: RequestState) -> AdminRequest | None:
        with self._lock:
            entry = self._entries.get(request_id)
            if entry is None or entry.deferred is not None:
                return None
            if entry.sending:
                entry.deferred = state
                return replace(entry.request, state=state)
            self._detach(entry, state)
        self._finish(entry)
        return replace(entry.request)

    def _on_timeout(self, request_id: int) -> None:
        self._resolve(request_id, RequestState.TIMED_OUT)

    # -- public API ----------------------------------------------------------

    def issue(
        self, from_node: int, to_node: int, admin_index: int, kind: AdminKind
    ) -> PendingRequest:
        """Validate, send and start tracking an admin request.

        Raises ``InvalidTargetError`` or ``DuplicateInFlightError`` before
        anything is sent, and re-raises the transport's ``TransportError``
        when the write is refused.
        """
        kind = AdminKind(kind)
        validate_target(from_node, to_node, admin_index, kind)

        key = (to_node, kind)
        with self._lock:
            if self._closed:
                raise RuntimeError("AdminCommandCorrelator is closed.")
            existing = self._by_key.get(key)
            if existing is not None:
                raise DuplicateInFlightError(
                    f"{kind} to {node_id_hex(to_node)} already in flight (request {existing})",
                    replace(self._entries[existing].request),
                )
            request = AdminRequest(
                request_id=self._next_request_id(),
                from_node=from_node,
                to_node=to_node,
                admin_index=admin_index,
                kind=kind,
                issued_at=self._clock(),
                state=RequestState.SENT,
            )
            entry = _Entry(request=request, future=Future(), sending=True)
            self._entries[request.request_id] = entry
            self._by_key[key] = request.request_id
            outgoing = replace(request)

        try:
            self._transport.send(outgoing)
            with self._lock:
                entry.sending = False
                sent_event = self._event(request)
                deferred = entry.deferred
                if deferred is None:
                    entry.timer = self._timers.after(
                        self._timeout, lambda: self._on_timeout(request.request_id)
                    )
                else:
                    self._detach(entry, deferred)
        except Exception as exc:
            with self._lock:
                entry.sending = False
                self._detach(entry, RequestState.FAILED)
            entry.future.set_result(RequestState.FAILED)
            if isinstance(exc, AdminCommandError) and exc.request is None:
                exc.request = replace(request)
            logger.warning(
                "%s request to %s failed to send: %s",
                kind,
                node_id_hex(to_node),
                exc,
            )
            self._publish(self._event(request))
            raise

        logger.info(
            "sent %s%s request %d from %s to %s (admin index %d)",
            "destructive " if kind.is_destructive else "",
            kind,
            request.request_id,
            node_id_hex(from_node),
            node_id_hex(to_node),
            admin_index,
        )
        self._publish(sent_event)
        if deferred is not None:
            self._finish(entry)
        return PendingRequest(entry, self)

    def handle_response(
        self,
        correlation: int | TargetTuple,
        outcome: ResponseOutcome = ResponseOutcome.ACK,
    ) -> AdminRequest | None:
        """Resolve the request a response refers to.

        *correlation* is the echoed request id or, for responses without one,
        the ``(from_node, to_node, admin_index)`` tuple; the oldest matching
        request still inside its validity window wins. Returns the resolved
        request, or None when nothing in flight matches.
        """
        state = _RESPONSE_STATES[ResponseOutcome(outcome)]
        if isinstance(correlation, TargetTuple):
            request_id = self._match_target(correlation)
        else:
            request_id = correlation
        if request_id is None:
            logger.debug("no in-flight request matches %r", correlation)
            return None
        resolved = self._resolve(request_id, state)
        if resolved is None:
            logger.debug("response for request %d arrived after it resolved", request_id)
        return resolved

    def _match_target(self, target: TargetTuple) -> int | None:
        now = self._clock()
        window = timedelta(seconds=self._timeout)
        with self._lock:
            for request_id, entry in self._entries.items():
                request = entry.request
                if entry.deferred is not None or request.target != target:
                    continue
                if now > request.issued_at + window:
                    continue
                return request_id
        return None

    def cancel(self, request_id: int) -> bool:
        """Cancel an in-flight request. Returns False (no-op) if it already resolved."""
        return self._resolve(request_id, RequestState.CANCELED) is not None

    def in_flight(self) -> list[AdminRequest]:
        with self._lock:
            return [
                replace(entry.request)
                for entry in self._entries.values()
                if not entry.sending and entry.deferred is None
            ]

    def close(self) -> None:
        """Cancel everything still in flight and refuse new requests."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            request_ids = list(self._entries)
        for request_id in request_ids:
            self._resolve(request_id, RequestState.CANCELED)
