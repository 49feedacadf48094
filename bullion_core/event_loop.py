"""
Tick dispatch for the trading core.

Each event goes to every subscriber in subscription order. Dispatches are
serialized, so a poller thread and a manual feed never interleave ticks.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager

from bullion_core.events import Event

logger = logging.getLogger(__name__)

Handler = Callable[[Event], object]


class EventLoop:
    def __init__(self) -> None:
        self._handlers: list[Handler] = []
        self._dispatch_lock = threading.RLock()

    def subscribe(self, handler: Handler) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        """Remove a handler; unknown handlers are ignored."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def dispatch(self, event: Event) -> None:
        with self._dispatch_lock:
            logger.debug("Dispatching %s at %s to %d handler(s)", type(event).__name__, event.timestamp, len(self._handlers))
            for handler in list(self._handlers):
                handler(event)

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold off dispatches while the caller handles a tick outside the loop."""
        with self._dispatch_lock:
            yield

    def run(self, events: Iterable[Event]) -> int:
        """Dispatch events in order (e.g. a quote replay). Returns how many were dispatched."""
        count = 0
        for event in events:
            self.dispatch(event)
            count += 1
        return count
