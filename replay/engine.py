"""
Replay engine: drive recorded quote ticks through the trading core.

Quotes → QuoteEvents → EventLoop → TriggerEvaluator, with the service clock
pinned to the tick being replayed. After each tick the tracked user's
holdings are marked to the latest bids to build an equity curve.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

import pandas as pd

from bullion_core.event_loop import EventLoop
from bullion_core.events import Event, QuoteEvent
from bullion_core.market import Commodity
from bullion_core.portfolio import Holdings
from bullion_core.service import TradingService
from bullion_core.execution.types import Trade, TriggerOutcome

from replay.data_loader import quotes_from_dataframe


class ReplayClock:
    """Clock whose time is set by the replay; before the first tick it returns `start`."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


@dataclass
class ReplayResult:
    """Outcome of a replay: final holdings, trades, trigger outcomes, equity curve."""

    holdings: Holdings | None
    trades: list[Trade] = field(default_factory=list)
    outcomes: list[TriggerOutcome] = field(default_factory=list)
    equity_curve: list[tuple[datetime, float]] = field(default_factory=list)


class ReplayEngine:
    """
    Replays a quote frame against `service` and tracks `user_id`.

    Build the service with clock=ReplayClock(...) and pass the same clock
    here so placed/executed timestamps follow the replayed ticks.
    """

    def __init__(self, service: TradingService, user_id: int, clock: ReplayClock | None = None) -> None:
        self.service = service
        self.user_id = user_id
        self.clock = clock
        self._outcomes: list[TriggerOutcome] = []
        self._equity_curve: list[tuple[datetime, float]] = []
        self._last_bids: dict[Commodity, Decimal] = {}

    def _handle_event(self, event: Event) -> None:
        if not isinstance(event, QuoteEvent) or event.payload is None:
            return
        quote = event.payload
        if self.clock is not None:
            self.clock.now = quote.timestamp
        self._last_bids[quote.commodity] = quote.bid
        self._outcomes.extend(self.service.on_quote(quote))
        holdings = self.service.get_holdings(self.user_id)
        if holdings is not None:
            self._equity_curve.append((quote.timestamp, float(holdings.market_value(self._last_bids))))

    def run(self, data: pd.DataFrame) -> ReplayResult:
        """
        Run the replay over a normalized quote frame (see replay.data_loader).

        Returns
        -------
        ReplayResult
            Holdings after the last tick, the user's ledger entries made during
            the replay (oldest first), trigger outcomes and the equity curve.
        """
        self._outcomes = []
        self._equity_curve = []
        self._last_bids = {}
        trades_before = {t.trade_id for t in self.service.get_trade_history(self.user_id)}

        loop = EventLoop()
        loop.subscribe(self._handle_event)
        loop.run(QuoteEvent.of(q) for q in quotes_from_dataframe(data))

        trades = [t for t in self.service.get_trade_history(self.user_id) if t.trade_id not in trades_before]
        trades.sort(key=lambda t: t.trade_id)
        return ReplayResult(
            holdings=self.service.get_holdings(self.user_id),
            trades=trades,
            outcomes=list(self._outcomes),
            equity_curve=list(self._equity_curve),
        )
