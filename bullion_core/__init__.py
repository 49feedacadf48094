"""
bullion-core: cash and precious-metal holdings ledger with a transactional
execution engine and conditional (pending) orders.

No auth, price feeds or HTTP here. Callers pass a verified user id and
prices; the core enforces solvency, cost basis and order lifecycle.
"""

__version__ = "0.1.0"

from bullion_core.config import Settings
from bullion_core.errors import (
    ConflictError,
    ErrorKind,
    InsufficientFundsError,
    InsufficientHoldingsError,
    NotFoundError,
    StorageError,
    TradingError,
    ValidationError,
)
from bullion_core.events import Event, QuoteEvent
from bullion_core.event_loop import EventLoop
from bullion_core.market import Commodity, Quote, Side
from bullion_core.order import OrderKind, OrderStatus, PendingOrder
from bullion_core.portfolio import Holdings, Position
from bullion_core.service import TradingService

__all__ = [
    "Commodity",
    "ConflictError",
    "ErrorKind",
    "Event",
    "EventLoop",
    "Holdings",
    "InsufficientFundsError",
    "InsufficientHoldingsError",
    "NotFoundError",
    "OrderKind",
    "OrderStatus",
    "PendingOrder",
    "Position",
    "Quote",
    "QuoteEvent",
    "Settings",
    "StorageError",
    "TradingError",
    "TradingService",
    "ValidationError",
]
