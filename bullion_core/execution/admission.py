"""
Order admission: validate and record conditional orders.

No funds or position check here; affordability is decided when the order
triggers. Admission appends to the order book and never touches holdings.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from bullion_core.errors import ValidationError
from bullion_core.market import Commodity, Side, to_price, to_quantity
from bullion_core.order import OrderKind, PendingOrder

from bullion_core.execution.engine import utc_now
from bullion_core.execution.store import AccountStore

logger = logging.getLogger(__name__)


class OrderAdmission:
    def __init__(self, store: AccountStore, *, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self.clock = clock

    def admit(
        self,
        user_id: int,
        commodity: Commodity | str,
        side: Side | str,
        quantity: int,
        trigger_price: Decimal | int | str,
        kind: OrderKind | str,
    ) -> PendingOrder:
        """
        Store a new Pending order and return it.

        Raises ValidationError for bad input (including stop-loss buys, which
        have no defined trigger) and NotFoundError for an unknown user.
        """
        quantity = to_quantity(quantity)
        trigger_price = to_price(trigger_price, message="Trigger price must be greater than 0.")
        commodity = Commodity.parse(commodity)
        side = Side.parse(side)
        kind = OrderKind.parse(kind)
        if kind is OrderKind.STOP_LOSS and side is Side.BUY:
            raise ValidationError("Stop-loss orders can only sell.")

        with self.store.unit_of_work(user_id) as uow:
            uow.require_holdings()
            order = uow.new_order(commodity, side, quantity, trigger_price, kind, self.clock())

        logger.info(
            "User %s placed a %s %s order for %s %s at %s. Order ID: %s",
            user_id,
            kind.value,
            side.value,
            quantity,
            commodity.value,
            trigger_price,
            order.order_id,
        )
        return order

    def cancel(self, user_id: int, order_id: int) -> PendingOrder:
        """Pending → Canceled. NotFoundError for someone else's order, ConflictError if not pending."""
        with self.store.unit_of_work(user_id) as uow:
            order = uow.get_order(order_id).canceled()
            uow.put_order(order)
        logger.info("User %s canceled order %s", user_id, order_id)
        return order
