"""
Execution-layer types: users, trade ledger entries, execution results and
the outcomes handed back to collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from bullion_core.errors import ErrorKind, TradingError
from bullion_core.market import Commodity, Side
from bullion_core.order import OrderStatus, PendingOrder
from bullion_core.portfolio import Holdings


@dataclass(frozen=True)
class User:
    """Identity anchor. password_hash is opaque; the auth collaborator owns it."""

    user_id: int
    username: str
    password_hash: str
    created_at: datetime


@dataclass(frozen=True)
class Trade:
    """One trade ledger entry. Immutable once appended."""

    trade_id: int
    user_id: int
    commodity: Commodity
    side: Side
    quantity: int
    price: Decimal
    timestamp: datetime

    @property
    def notional(self) -> Decimal:
        return self.quantity * self.price

    def to_dict(self) -> dict:
        return {
            "trade_id": self.trade_id,
            "user_id": self.user_id,
            "metal": self.commodity.value,
            "action": self.side.value,
            "quantity": self.quantity,
            "price": str(self.price),
            "date_time": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Execution:
    """Result of a successful execute(): holdings after the trade and the ledger entry."""

    holdings: Holdings
    trade: Trade
    order: PendingOrder | None = None


@dataclass(frozen=True)
class TradeOutcome:
    """Response to a market order. error_kind is None on success."""

    message: str
    trade: Trade | None = None
    holdings: Holdings | None = None
    error_kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def from_error(cls, error: TradingError) -> "TradeOutcome":
        return cls(message=error.message, error_kind=error.kind)


@dataclass(frozen=True)
class OrderOutcome:
    """Response to a pending-order request (placement or cancellation)."""

    message: str
    order: PendingOrder | None = None
    error_kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def from_error(cls, error: TradingError) -> "OrderOutcome":
        return cls(message=error.message, error_kind=error.kind)


@dataclass(frozen=True)
class TriggerOutcome:
    """What happened to one pending order during a tick."""

    order_id: int
    status: OrderStatus
    trade: Trade | None = None
    reason: str | None = None
