"""
Execution layer: transactional account store, execution engine, order
admission and trigger evaluation.
"""

from bullion_core.execution.admission import OrderAdmission
from bullion_core.execution.engine import ExecutionEngine, RejectedOrderLog
from bullion_core.execution.memory import InMemoryAccountStore
from bullion_core.execution.store import AccountStore, UnitOfWork
from bullion_core.execution.triggers import PricePoller, TriggerEvaluator
from bullion_core.execution.types import Execution, OrderOutcome, Trade, TradeOutcome, TriggerOutcome, User

__all__ = [
    "AccountStore",
    "Execution",
    "ExecutionEngine",
    "InMemoryAccountStore",
    "OrderAdmission",
    "OrderOutcome",
    "PricePoller",
    "RejectedOrderLog",
    "Trade",
    "TradeOutcome",
    "TriggerEvaluator",
    "TriggerOutcome",
    "UnitOfWork",
    "User",
]
