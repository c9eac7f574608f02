"""In-process change notifications.

Subscribers get a best-effort refresh signal after a ledger transaction has
committed. Delivery never feeds back into the ledger: a failing handler is
logged and skipped.
"""

from collections import defaultdict
from threading import Lock
from typing import Any, Callable

from .logger import get_logger

logger = get_logger(__name__)

TOPIC_LEDGER_CHANGED = "ledger.changed"

Handler = Callable[[str, dict[str, Any]], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register a handler and return a callable that unsubscribes it."""
        with self._lock:
            self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers[topic]:
                    self._handlers[topic].remove(handler)

        return unsubscribe

    def publish(self, topic: str, payload: dict[str, Any]) -> int:
        """Deliver to every subscriber of ``topic``; returns how many succeeded."""
        with self._lock:
            handlers = list(self._handlers.get(topic, ()))

        delivered = 0
        for handler in handlers:
            try:
                handler(topic, payload)
                delivered += 1
            except Exception:
                logger.exception("event handler failed", extra={"code": topic})
        return delivered


def ledger_changed(bus: EventBus | None, phones: list[str], reason: str) -> None:
    if bus is None:
        return
    for phone in dict.fromkeys(p for p in phones if p):
        bus.publish(TOPIC_LEDGER_CHANGED, {"phone": phone, "reason": reason})
