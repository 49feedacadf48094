"""
TradingService: the boundary exposed to the API layer.

Wires store, engine, admission and trigger evaluator from explicit settings.
Callers pass an already-authenticated user id on every call. Core errors are
turned into outcomes carrying a user-facing message and an error kind, so
callers can tell a rejected trade from a transient failure.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from decimal import Decimal

from bullion_core.config import Settings
from bullion_core.errors import TradingError, ValidationError
from bullion_core.event_loop import EventLoop
from bullion_core.market import Commodity, Quote, Side
from bullion_core.order import OrderKind, OrderStatus, PendingOrder
from bullion_core.portfolio import Holdings

from bullion_core.execution.admission import OrderAdmission
from bullion_core.execution.engine import ExecutionEngine, ExecutionObserver, utc_now
from bullion_core.execution.memory import InMemoryAccountStore
from bullion_core.execution.store import AccountStore
from bullion_core.execution.triggers import PricePoller, TriggerEvaluator
from bullion_core.execution.types import OrderOutcome, Trade, TradeOutcome, TriggerOutcome, User


class TradingService:
    def __init__(
        self,
        store: AccountStore | None = None,
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        observers: Iterable[ExecutionObserver] = (),
    ) -> None:
        self.store = store if store is not None else InMemoryAccountStore()
        self.settings = settings if settings is not None else Settings()
        self.clock = clock
        self.engine = ExecutionEngine(self.store, clock=clock, observers=list(observers))
        self.admission = OrderAdmission(self.store, clock=clock)
        self.evaluator = TriggerEvaluator(self.store, self.engine, order_ttl=self.settings.order_ttl)
        self.loop = EventLoop()
        self.loop.subscribe(self.evaluator)
        self._poller: PricePoller | None = None

    # --- accounts ---

    def register_user(self, username: str, password_hash: str = "") -> User:
        """Create a user with zero positions and the configured starting cash."""
        username = username.strip()
        if not username:
            raise ValidationError("Username is required")
        return self.store.create_user(username, password_hash, self.settings.starting_cash, self.clock())

    def delete_user(self, user_id: int) -> None:
        """Delete the user with its holdings, trades and orders."""
        self.store.delete_user(user_id)

    # --- orders ---

    def place_market_order(
        self,
        user_id: int,
        commodity: Commodity | str,
        action: Side | str,
        quantity: int,
        price: Decimal | int | str,
    ) -> TradeOutcome:
        try:
            execution = self.engine.execute(user_id, commodity, action, quantity, price)
        except TradingError as exc:
            return TradeOutcome.from_error(exc)
        verb = "Buy" if execution.trade.side is Side.BUY else "Sell"
        return TradeOutcome(
            message=f"{verb} trade successful.",
            trade=execution.trade,
            holdings=execution.holdings,
        )

    def place_pending_order(
        self,
        user_id: int,
        commodity: Commodity | str,
        action: Side | str,
        quantity: int,
        trigger_price: Decimal | int | str,
        order_kind: OrderKind | str,
    ) -> OrderOutcome:
        try:
            order = self.admission.admit(user_id, commodity, action, quantity, trigger_price, order_kind)
        except TradingError as exc:
            return OrderOutcome.from_error(exc)
        return OrderOutcome(message="Order placed successfully.", order=order)

    def place_order(
        self,
        user_id: int,
        commodity: Commodity | str,
        action: Side | str,
        quantity: int,
        price: Decimal | int | str | None = None,
        *,
        trigger_price: Decimal | int | str | None = None,
        order_kind: OrderKind | str | None = None,
    ) -> TradeOutcome | OrderOutcome:
        """Pending order when both trigger_price and order_kind are given, market order otherwise."""
        if trigger_price is not None and order_kind:
            return self.place_pending_order(user_id, commodity, action, quantity, trigger_price, order_kind)
        return self.place_market_order(user_id, commodity, action, quantity, price)

    def cancel_pending_order(self, user_id: int, order_id: int) -> OrderOutcome:
        try:
            order = self.admission.cancel(user_id, order_id)
        except TradingError as exc:
            return OrderOutcome.from_error(exc)
        return OrderOutcome(message="Order canceled.", order=order)

    # --- queries ---

    def get_holdings(self, user_id: int) -> Holdings | None:
        return self.store.get_holdings(user_id)

    def get_trade_history(self, user_id: int) -> list[Trade]:
        return self.store.list_trades(user_id)

    def get_pending_orders(self, user_id: int) -> list[PendingOrder]:
        return self.store.list_orders(user_id, OrderStatus.PENDING)

    # --- prices ---

    def on_quote(self, quote: Quote) -> list[TriggerOutcome]:
        """Run trigger evaluation for one tick, serialized with polled ticks."""
        with self.loop.exclusive():
            return self.evaluator.on_quote(quote)

    def start_polling(self, source: Callable[[], Iterable[Quote]]) -> PricePoller:
        """Poll `source` every settings.poll_interval seconds on a background thread."""
        if self._poller is None:
            self._poller = PricePoller(source, self.loop, self.settings.poll_interval)
        self._poller.start()
        return self._poller

    def stop_polling(self, timeout: float | None = None) -> None:
        if self._poller is not None:
            self._poller.stop(timeout)
            self._poller = None
