"""
In-memory account store.

Per-user locks serialize units of work for the same user; a short-lived
registry lock guards the shared tables during commit and snapshot reads.
Dependent records are indexed by user id and removed explicitly when a user
is deleted.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from itertools import count

from bullion_core.errors import ConflictError, NotFoundError, StorageError, TradingError
from bullion_core.market import Commodity
from bullion_core.order import OrderStatus, PendingOrder
from bullion_core.portfolio import Holdings

from bullion_core.execution.store import AccountStore, UnitOfWork
from bullion_core.execution.types import Trade, User

logger = logging.getLogger(__name__)


class InMemoryAccountStore(AccountStore):
    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._usernames: dict[str, int] = {}
        self._holdings: dict[int, Holdings] = {}
        self._trades: dict[int, Trade] = {}
        self._trades_by_user: dict[int, list[int]] = {}
        self._orders: dict[int, PendingOrder] = {}
        self._orders_by_user: dict[int, list[int]] = {}
        self._user_locks: dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._counters = {"user": count(1), "trade": count(1), "order": count(1)}

    # --- ids and locks ---

    def _next_id(self, table: str) -> int:
        with self._registry_lock:
            return next(self._counters[table])

    def _lock_for(self, user_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._user_locks.get(user_id)
        # unknown ids get a throwaway lock; their unit of work finds no holdings
        return lock if lock is not None else threading.Lock()

    def _load_order(self, order_id: int) -> PendingOrder | None:
        with self._registry_lock:
            return self._orders.get(order_id)

    # --- users ---

    def create_user(self, username: str, password_hash: str, starting_cash: Decimal, at: datetime) -> User:
        with self._registry_lock:
            if username in self._usernames:
                raise ConflictError("Username already exists.")
            user_id = next(self._counters["user"])
            user = User(user_id=user_id, username=username, password_hash=password_hash, created_at=at)
            self._users[user_id] = user
            self._user_locks[user_id] = threading.Lock()
            self._usernames[username] = user_id
            self._holdings[user_id] = Holdings(user_id=user_id, cash=starting_cash, last_updated=at)
            self._trades_by_user[user_id] = []
            self._orders_by_user[user_id] = []
        logger.info("Created user %s (%s) with cash %s", user_id, username, starting_cash)
        return user

    def delete_user(self, user_id: int) -> None:
        with self._lock_for(user_id), self._registry_lock:
            user = self._users.pop(user_id, None)
            if user is None:
                raise NotFoundError("User not found.")
            del self._usernames[user.username]
            self._user_locks.pop(user_id, None)
            self._holdings.pop(user_id, None)
            trade_ids = self._trades_by_user.pop(user_id, [])
            for trade_id in trade_ids:
                del self._trades[trade_id]
            order_ids = self._orders_by_user.pop(user_id, [])
            for order_id in order_ids:
                del self._orders[order_id]
        logger.info("Deleted user %s with %d trades and %d orders", user_id, len(trade_ids), len(order_ids))

    def get_user(self, user_id: int) -> User | None:
        with self._registry_lock:
            return self._users.get(user_id)

    # --- units of work ---

    @contextmanager
    def unit_of_work(self, user_id: int) -> Iterator[UnitOfWork]:
        # Not re-entrant: a nested unit of work for the same user deadlocks.
        with self._lock_for(user_id):
            with self._registry_lock:
                current = self._holdings.get(user_id)
                working = current.copy() if current is not None else None
            uow = UnitOfWork(user_id, working, next_id=self._next_id, load_order=self._load_order)
            try:
                yield uow
            except TradingError:
                raise
            except Exception as exc:
                logger.exception("Unit of work for user %s aborted; staged writes discarded", user_id)
                raise StorageError("The operation could not be completed; no changes were applied.") from exc
            self._commit(uow)

    def _commit(self, uow: UnitOfWork) -> None:
        with self._registry_lock:
            if uow.user_id not in self._users:
                raise NotFoundError("User not found.")
            prior_holdings = self._holdings.get(uow.user_id)
            prior_orders = {oid: self._orders.get(oid) for oid in uow.staged_orders}
            try:
                self._write_orders(uow.user_id, uow.staged_orders)
                self._write_trades(uow.user_id, uow.staged_trades)
                if uow.holdings is not None:
                    self._write_holdings(uow.holdings)
            except Exception as exc:
                self._restore(uow, prior_holdings, prior_orders)
                logger.exception("Commit for user %s failed; rolled back", uow.user_id)
                raise StorageError("The operation could not be completed; no changes were applied.") from exc

    def _write_orders(self, user_id: int, orders: dict[int, PendingOrder]) -> None:
        index = self._orders_by_user[user_id]
        for order_id, order in orders.items():
            if order_id not in self._orders:
                index.append(order_id)
            self._orders[order_id] = order

    def _write_trades(self, user_id: int, trades: list[Trade]) -> None:
        index = self._trades_by_user[user_id]
        for trade in trades:
            self._trades[trade.trade_id] = trade
            index.append(trade.trade_id)

    def _write_holdings(self, holdings: Holdings) -> None:
        self._holdings[holdings.user_id] = holdings.copy()

    def _restore(
        self,
        uow: UnitOfWork,
        prior_holdings: Holdings | None,
        prior_orders: dict[int, PendingOrder | None],
    ) -> None:
        if prior_holdings is not None:
            self._holdings[uow.user_id] = prior_holdings
        trade_index = self._trades_by_user[uow.user_id]
        for trade in uow.staged_trades:
            if self._trades.pop(trade.trade_id, None) is not None:
                trade_index.remove(trade.trade_id)
        order_index = self._orders_by_user[uow.user_id]
        for order_id, prior in prior_orders.items():
            if prior is not None:
                self._orders[order_id] = prior
            elif self._orders.pop(order_id, None) is not None:
                order_index.remove(order_id)

    # --- reads ---

    def get_holdings(self, user_id: int) -> Holdings | None:
        with self._registry_lock:
            holdings = self._holdings.get(user_id)
            return holdings.copy() if holdings is not None else None

    def list_trades(self, user_id: int) -> list[Trade]:
        with self._registry_lock:
            trades = [self._trades[tid] for tid in self._trades_by_user.get(user_id, [])]
        return sorted(trades, key=lambda t: (t.timestamp, t.trade_id), reverse=True)

    def list_orders(self, user_id: int, status: OrderStatus | None = None) -> list[PendingOrder]:
        with self._registry_lock:
            orders = [self._orders[oid] for oid in self._orders_by_user.get(user_id, [])]
        if status is not None:
            orders = [o for o in orders if o.status is status]
        return sorted(orders, key=lambda o: (o.placed_at, o.order_id), reverse=True)

    def pending_orders(self, commodity: Commodity | None = None) -> list[PendingOrder]:
        with self._registry_lock:
            orders = [
                o
                for o in self._orders.values()
                if o.status is OrderStatus.PENDING and (commodity is None or o.commodity is commodity)
            ]
        return sorted(orders, key=lambda o: o.order_id)
