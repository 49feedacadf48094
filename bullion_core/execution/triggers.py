"""
Trigger evaluation for pending orders.

TriggerEvaluator is push-driven: it handles one quote tick at a time,
subscribed to an EventLoop. PricePoller adapts a pull-style quote source to
that model by polling on a background thread and dispatching each quote.

Per tick, pending orders for the quoted commodity are scanned in increasing
order id and each is evaluated at most once. Fired orders go through
ExecutionEngine.execute() at the current bid/ask, never at the stored
trigger price.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from bullion_core.errors import BUSINESS_ERRORS, ConflictError, NotFoundError, StorageError
from bullion_core.event_loop import EventLoop
from bullion_core.events import Event, QuoteEvent
from bullion_core.market import Quote
from bullion_core.order import OrderStatus, PendingOrder

from bullion_core.execution.engine import ExecutionEngine
from bullion_core.execution.store import AccountStore
from bullion_core.execution.types import TriggerOutcome

logger = logging.getLogger(__name__)


class TriggerEvaluator:
    """
    Fires pending orders whose trigger condition holds for the current quote.

    Successful executions move the order to Executed in the same unit of work
    as the trade. Business rejections (e.g. insufficient funds at trigger
    time) move it to Failed so it is not retried every tick. Orders canceled
    concurrently are skipped; storage failures leave the order Pending for
    the next tick.
    """

    def __init__(
        self,
        store: AccountStore,
        engine: ExecutionEngine,
        *,
        order_ttl: timedelta | None = None,
    ) -> None:
        self.store = store
        self.engine = engine
        self.order_ttl = order_ttl

    def __call__(self, event: Event) -> None:
        """EventLoop handler; ignores events that are not quote ticks."""
        if isinstance(event, QuoteEvent) and event.payload is not None:
            self.on_quote(event.payload)

    def on_quote(self, quote: Quote) -> list[TriggerOutcome]:
        """Evaluate one tick. Returns one outcome per order that changed status."""
        outcomes = self.expire_stale(quote.timestamp)
        for order in self.store.pending_orders(quote.commodity):
            if not order.is_triggered(quote):
                continue
            outcome = self._fire(order, quote)
            if outcome is not None:
                outcomes.append(outcome)
        return outcomes

    def _fire(self, order: PendingOrder, quote: Quote) -> TriggerOutcome | None:
        price = quote.price_for(order.side)
        logger.info(
            "Order %s triggered: %s %s %s, trigger %s, market %s",
            order.order_id,
            order.kind.value,
            order.side.value,
            order.commodity.value,
            order.trigger_price,
            price,
        )
        try:
            execution = self.engine.execute(
                order.user_id,
                order.commodity,
                order.side,
                order.quantity,
                price,
                order_id=order.order_id,
            )
        except ConflictError:
            logger.info("Order %s left Pending before execution; skipped", order.order_id)
            return None
        except StorageError:
            logger.warning("Order %s hit a storage failure; will retry on the next tick", order.order_id)
            return None
        except BUSINESS_ERRORS as exc:
            try:
                self.engine.fail_order(order.user_id, order.order_id, exc.message)
            except (ConflictError, NotFoundError):
                return None
            return TriggerOutcome(order_id=order.order_id, status=OrderStatus.FAILED, reason=exc.message)
        return TriggerOutcome(order_id=order.order_id, status=OrderStatus.EXECUTED, trade=execution.trade)

    def expire_stale(self, now: datetime) -> list[TriggerOutcome]:
        """Move Pending orders placed more than order_ttl before `now` to Expired."""
        if self.order_ttl is None:
            return []
        cutoff = now - self.order_ttl
        outcomes: list[TriggerOutcome] = []
        for order in self.store.pending_orders():
            if order.placed_at >= cutoff:
                continue
            try:
                with self.store.unit_of_work(order.user_id) as uow:
                    uow.put_order(uow.get_order(order.order_id).expired())
            except (ConflictError, NotFoundError):
                continue
            logger.info("Order %s for user %s expired", order.order_id, order.user_id)
            outcomes.append(TriggerOutcome(order_id=order.order_id, status=OrderStatus.EXPIRED))
        return outcomes


class PricePoller:
    """
    Polls `source` every `interval` seconds and dispatches each returned quote
    into `loop` as a QuoteEvent. The poller thread is the loop's only caller.
    """

    def __init__(
        self,
        source: Callable[[], Iterable[Quote]],
        loop: EventLoop,
        interval: float,
    ) -> None:
        self.source = source
        self.loop = loop
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> int:
        """Fetch quotes once and dispatch them. Returns the number dispatched."""
        quotes = list(self.source())
        for quote in quotes:
            self.loop.dispatch(QuoteEvent.of(quote))
        return len(quotes)

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="price-poller", daemon=True)
        self._thread.start()
        logger.info("PricePoller started (interval %ss)", self.interval)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("PricePoller stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.poll_once()
            except Exception:  # noqa: BLE001
                logger.exception("Price poll failed; retrying in %ss", self.interval)
            self._stop.wait(self.interval)
