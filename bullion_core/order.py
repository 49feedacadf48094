"""
PendingOrder: a conditional order waiting for its trigger price.

Immutable. Lifecycle changes produce a new instance; only a PENDING order
may transition, every other status is terminal.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from bullion_core.errors import ConflictError, ValidationError
from bullion_core.market import Commodity, Quote, Side


class OrderKind(Enum):
    LIMIT = "Limit"
    STOP_LOSS = "StopLoss"

    @classmethod
    def parse(cls, value: "OrderKind | str") -> "OrderKind":
        if isinstance(value, cls):
            return value
        token = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == token:
                return member
        raise ValidationError("Invalid order type specified. Must be 'Limit' or 'StopLoss'.")


class OrderStatus(Enum):
    PENDING = "Pending"
    EXECUTED = "Executed"
    CANCELED = "Canceled"
    EXPIRED = "Expired"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


@dataclass(frozen=True)
class PendingOrder:
    """A stored conditional order. `order_id` is assigned by the store."""

    order_id: int
    user_id: int
    commodity: Commodity
    side: Side
    quantity: int
    trigger_price: Decimal
    kind: OrderKind
    placed_at: datetime
    status: OrderStatus = OrderStatus.PENDING
    executed_at: datetime | None = None
    executed_price: Decimal | None = None
    trade_id: int | None = None
    failure_reason: str | None = None

    def is_triggered(self, quote: Quote) -> bool:
        """
        Whether the trigger condition holds for this quote.

        Limit buy: ask <= trigger. Limit sell: bid >= trigger.
        Stop-loss sell: bid <= trigger. Stop-loss buy never fires.
        """
        if quote.commodity is not self.commodity:
            return False
        if self.kind is OrderKind.LIMIT:
            if self.side is Side.BUY:
                return quote.ask <= self.trigger_price
            return quote.bid >= self.trigger_price
        if self.side is Side.SELL:
            return quote.bid <= self.trigger_price
        return False

    def require_pending(self) -> None:
        if self.status is not OrderStatus.PENDING:
            raise ConflictError(f"Order {self.order_id} is {self.status.value}, not Pending.")

    def _transition(self, status: OrderStatus, **changes) -> "PendingOrder":
        self.require_pending()
        return replace(self, status=status, **changes)

    def executed(self, at: datetime, price: Decimal, trade_id: int) -> "PendingOrder":
        return self._transition(OrderStatus.EXECUTED, executed_at=at, executed_price=price, trade_id=trade_id)

    def failed(self, reason: str) -> "PendingOrder":
        return self._transition(OrderStatus.FAILED, failure_reason=reason)

    def canceled(self) -> "PendingOrder":
        return self._transition(OrderStatus.CANCELED)

    def expired(self) -> "PendingOrder":
        return self._transition(OrderStatus.EXPIRED)

    def to_dict(self) -> dict:
        """Serialize with fixed string tokens for enums and ISO timestamps."""
        return {
            "order_id": self.order_id,
            "user_id": self.user_id,
            "metal": self.commodity.value,
            "action": self.side.value,
            "quantity": self.quantity,
            "trigger_price": str(self.trigger_price),
            "type": self.kind.value,
            "status": self.status.value,
            "placed_at": self.placed_at.isoformat(),
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "executed_price": str(self.executed_price) if self.executed_price is not None else None,
            "trade_id": self.trade_id,
            "failure_reason": self.failure_reason,
        }
