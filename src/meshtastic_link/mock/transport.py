"""Mock admin transport for testing and development."""

from __future__ import annotations

import logging
from typing import Callable

from meshtastic_link.core.enums import ResponseOutcome
from meshtastic_link.core.errors import TransportError
from meshtastic_link.core.models import AdminRequest, TargetTuple
from meshtastic_link.core.types import TimerServiceProtocol

logger = logging.getLogger(__name__)

ResponseCallback = Callable[[int | TargetTuple, ResponseOutcome], object]


class MockAdminTransport:
    """In-memory stand-in for the device link.

    Records every request it accepts. With ``respond`` set, it answers each
    request through the timer service after ``latency`` seconds, either
    echoing the request id or, with ``echo_ids=False``, only the target tuple.
    """

    def __init__(
        self,
        timers: TimerServiceProtocol | None = None,
        *,
        respond: ResponseOutcome | None = None,
        latency: float = 0.5,
        echo_ids: bool = True,
    ) -> None:
        self.link_up = True
        self.admin_channel = True
        self.sent: list[AdminRequest] = []
        self._timers = timers
        self._respond = respond
        self._latency = latency
        self._echo_ids = echo_ids
        self._on_response: ResponseCallback | None = None

    def set_response_handler(self, handler: ResponseCallback) -> None:
        self._on_response = handler

    def send(self, request: AdminRequest) -> None:
        if not self.link_up:
            raise TransportError("no active link to the device")
        if not self.admin_channel:
            raise TransportError("no admin channel established with the target")
        self.sent.append(request)
        logger.debug("mock transport accepted %s request %d", request.kind, request.request_id)
        if self._respond is not None and self._timers is not None:
            correlation: int | TargetTuple = (
                request.request_id if self._echo_ids else request.target
            )
            outcome = self._respond
            self._timers.after(self._latency, lambda: self.deliver(correlation, outcome))

    def deliver(self, correlation: int | TargetTuple, outcome: ResponseOutcome) -> None:
        """Hand a response to the registered handler as the receive path would."""
        if self._on_response is None:
            logger.debug("mock transport dropped response for %r: no handler", correlation)
            return
        self._on_response(correlation, outcome)
