"""
Account store abstraction: holdings, trade ledger and pending orders behind
one transactional boundary.

All writes go through a UnitOfWork scoped to a single user. A unit of work
stages its changes and the store commits them together or not at all.
InMemoryAccountStore implements this interface; a database-backed store
would implement the same methods.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal

from bullion_core.errors import NotFoundError
from bullion_core.market import Commodity, Side
from bullion_core.order import OrderKind, OrderStatus, PendingOrder
from bullion_core.portfolio import Holdings

from bullion_core.execution.types import Trade, User


class UnitOfWork:
    """
    Staged writes for one user.

    `holdings` is a private working copy (None if the user has no holdings
    record). Trades and orders recorded here become visible only on commit.
    """

    def __init__(
        self,
        user_id: int,
        holdings: Holdings | None,
        *,
        next_id: Callable[[str], int],
        load_order: Callable[[int], PendingOrder | None],
    ) -> None:
        self.user_id = user_id
        self.holdings = holdings
        self._next_id = next_id
        self._load_order = load_order
        self.staged_trades: list[Trade] = []
        self.staged_orders: dict[int, PendingOrder] = {}

    def require_holdings(self) -> Holdings:
        if self.holdings is None:
            raise NotFoundError("User holdings not found.")
        return self.holdings

    def append_trade(
        self,
        commodity: Commodity,
        side: Side,
        quantity: int,
        price: Decimal,
        at: datetime,
    ) -> Trade:
        trade = Trade(
            trade_id=self._next_id("trade"),
            user_id=self.user_id,
            commodity=commodity,
            side=side,
            quantity=quantity,
            price=price,
            timestamp=at,
        )
        self.staged_trades.append(trade)
        return trade

    def new_order(
        self,
        commodity: Commodity,
        side: Side,
        quantity: int,
        trigger_price: Decimal,
        kind: OrderKind,
        at: datetime,
    ) -> PendingOrder:
        order = PendingOrder(
            order_id=self._next_id("order"),
            user_id=self.user_id,
            commodity=commodity,
            side=side,
            quantity=quantity,
            trigger_price=trigger_price,
            kind=kind,
            placed_at=at,
        )
        self.staged_orders[order.order_id] = order
        return order

    def get_order(self, order_id: int) -> PendingOrder:
        """Latest version of one of this user's orders, staged changes included."""
        order = self.staged_orders.get(order_id) or self._load_order(order_id)
        if order is None or order.user_id != self.user_id:
            raise NotFoundError(f"Order {order_id} not found.")
        return order

    def put_order(self, order: PendingOrder) -> None:
        self.staged_orders[order.order_id] = order


class AccountStore(ABC):
    """Durable per-user state: users, holdings, trade ledger, pending orders."""

    @abstractmethod
    def create_user(self, username: str, password_hash: str, starting_cash: Decimal, at: datetime) -> User:
        """Create a user together with its initial holdings record."""
        ...

    @abstractmethod
    def delete_user(self, user_id: int) -> None:
        """Delete a user and every record it owns, in one step."""
        ...

    @abstractmethod
    def get_user(self, user_id: int) -> User | None:
        ...

    @abstractmethod
    def unit_of_work(self, user_id: int) -> AbstractContextManager[UnitOfWork]:
        """
        Open a unit of work for user_id.

        Holds the user's lock for the whole block. Commits staged writes on
        normal exit; discards them if the block raises. Units of work for the
        same user serialize; different users proceed independently.
        """
        ...

    @abstractmethod
    def get_holdings(self, user_id: int) -> Holdings | None:
        """Copy of the user's holdings, or None."""
        ...

    @abstractmethod
    def list_trades(self, user_id: int) -> list[Trade]:
        """User's ledger entries, newest first."""
        ...

    @abstractmethod
    def list_orders(self, user_id: int, status: OrderStatus | None = None) -> list[PendingOrder]:
        """User's orders (optionally filtered by status), newest placed first."""
        ...

    @abstractmethod
    def pending_orders(self, commodity: Commodity | None = None) -> list[PendingOrder]:
        """All PENDING orders across users, in increasing order id."""
        ...
