from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

STATUS_CONNECTING = "connecting"
STATUS_CONNECTED = "connected"
STATUS_ERROR = "error"

# Acknowledgements emitted by the change-feed subscription.
ACK_SUBSCRIBED = "SUBSCRIBED"
ACK_CHANNEL_ERROR = "CHANNEL_ERROR"
ACK_TIMED_OUT = "TIMED_OUT"
ACK_CLOSED = "CLOSED"

_TRANSITIONS = {
    ACK_SUBSCRIBED: STATUS_CONNECTED,
    ACK_CHANNEL_ERROR: STATUS_ERROR,
    ACK_TIMED_OUT: STATUS_ERROR,
}

_LABELS = {
    STATUS_CONNECTING: "Connecting...",
    STATUS_CONNECTED: "Live",
    STATUS_ERROR: "Disconnected",
}


class LiveStatusTracker:
    def __init__(self) -> None:
        self.status = STATUS_CONNECTING
        self._listeners: list[Callable[[str], None]] = []

    @property
    def label(self) -> str:
        return _LABELS[self.status]

    def handle(self, ack: str) -> str:
        logger.debug("Change feed status: %s", ack)
        new_status = _TRANSITIONS.get(ack)
        if new_status is None or new_status == self.status:
            return self.status
        self.status = new_status
        for listener in list(self._listeners):
            listener(new_status)
        return self.status

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
