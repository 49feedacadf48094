"""
Events delivered to the trading core.

Events are immutable data carriers. Handlers (the trigger evaluator, replay
bookkeeping) react to them; events hold no business logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from bullion_core.market import Quote


@dataclass(frozen=True)
class Event:
    """Base type for all events."""

    timestamp: datetime
    payload: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.timestamp, datetime):
            object.__setattr__(self, "timestamp", datetime.fromisoformat(str(self.timestamp)))


@dataclass(frozen=True)
class QuoteEvent(Event):
    """A price tick for one commodity. payload is the Quote."""

    payload: Quote | None = None

    @classmethod
    def of(cls, quote: Quote) -> "QuoteEvent":
        return cls(timestamp=quote.timestamp, payload=quote)
