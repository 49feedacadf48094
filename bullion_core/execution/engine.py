"""
Execution engine: apply a market order to a user's holdings.

Validate input → open the user's unit of work → check solvency / position →
update cash, position and average cost → append the ledger entry → commit.
Market orders and triggered pending orders both enter through execute(), so
per-user isolation is enforced in one place. Rejections are logged and
raised; nothing is retried here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

from bullion_core.errors import TradingError
from bullion_core.market import Commodity, Side, to_price, to_quantity
from bullion_core.order import PendingOrder
from bullion_core.portfolio import Holdings

from bullion_core.execution.store import AccountStore
from bullion_core.execution.types import Execution, Trade

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionObserver(Protocol):
    """Post-trade callback, called after commit with a copy of the new holdings."""

    def __call__(self, trade: Trade, holdings: Holdings) -> None:
        ...


@dataclass
class RejectedOrderLog:
    """One rejected execution request."""

    reason: str
    timestamp: datetime
    user_id: int
    commodity: str
    side: str
    quantity: object
    price: object
    order_id: int | None = None


class ExecutionEngine:
    """
    Applies buys and sells against the account store.

    The clock is injected so tests and replays control timestamps.
    """

    def __init__(
        self,
        store: AccountStore,
        *,
        clock: Callable[[], datetime] = utc_now,
        observers: Sequence[ExecutionObserver] = (),
    ) -> None:
        self.store = store
        self.clock = clock
        self.observers: list[ExecutionObserver] = list(observers)
        self._rejected_log: list[RejectedOrderLog] = []

    def get_rejected_log(self) -> list[RejectedOrderLog]:
        """Return log of rejected executions for debugging and reporting."""
        return list(self._rejected_log)

    def execute(
        self,
        user_id: int,
        commodity: Commodity | str,
        side: Side | str,
        quantity: int,
        unit_price: Decimal | int | str,
        *,
        order_id: int | None = None,
    ) -> Execution:
        """
        Buy or sell `quantity` units at `unit_price` for `user_id`.

        With order_id, the pending order is re-read inside the same unit of
        work and its Pending → Executed transition commits together with the
        trade; ConflictError if it has already left Pending.

        Raises ValidationError, NotFoundError, InsufficientFundsError,
        InsufficientHoldingsError, ConflictError or StorageError. On any
        error nothing is written.
        """
        try:
            return self._execute(user_id, commodity, side, quantity, unit_price, order_id)
        except TradingError as exc:
            self._rejected_log.append(
                RejectedOrderLog(
                    reason=exc.message,
                    timestamp=self.clock(),
                    user_id=user_id,
                    commodity=getattr(commodity, "value", commodity),
                    side=getattr(side, "value", side),
                    quantity=quantity,
                    price=unit_price,
                    order_id=order_id,
                )
            )
            logger.warning(
                "Execution rejected for user %s (%s %s %s @ %s): %s",
                user_id,
                getattr(side, "value", side),
                quantity,
                getattr(commodity, "value", commodity),
                unit_price,
                exc.message,
            )
            raise

    def _execute(
        self,
        user_id: int,
        commodity: Commodity | str,
        side: Side | str,
        quantity: int,
        unit_price: Decimal | int | str,
        order_id: int | None,
    ) -> Execution:
        side = Side.parse(side)
        commodity = Commodity.parse(commodity)
        quantity = to_quantity(quantity)
        price = to_price(unit_price, message=f"Invalid {side.value} price.")

        order: PendingOrder | None = None
        with self.store.unit_of_work(user_id) as uow:
            holdings = uow.require_holdings()
            if order_id is not None:
                # canceled or expired since the evaluator's scan
                uow.get_order(order_id).require_pending()
            now = self.clock()
            if side is Side.BUY:
                holdings.apply_buy(commodity, quantity, price, now)
            else:
                holdings.apply_sell(commodity, quantity, price, now)
            trade = uow.append_trade(commodity, side, quantity, price, now)
            if order_id is not None:
                order = uow.get_order(order_id).executed(now, price, trade.trade_id)
                uow.put_order(order)
            result = Execution(holdings=holdings.copy(), trade=trade, order=order)

        logger.info(
            "User %s %s %s %s @ %s (notional %s). Cash now %s",
            user_id,
            "bought" if side is Side.BUY else "sold",
            quantity,
            commodity.value,
            price,
            trade.notional,
            result.holdings.cash,
        )
        # the trade is committed; an observer failure must not surface as a failed execution
        for obs in self.observers:
            try:
                obs(trade, result.holdings.copy())
            except Exception:  # noqa: BLE001
                logger.exception("Execution observer failed for trade %s", trade.trade_id)
        return result

    def fail_order(self, user_id: int, order_id: int, reason: str) -> PendingOrder:
        """Move a pending order to Failed with the rejection reason."""
        with self.store.unit_of_work(user_id) as uow:
            order = uow.get_order(order_id).failed(reason)
            uow.put_order(order)
        logger.warning("Order %s for user %s failed: %s", order_id, user_id, reason)
        return order
