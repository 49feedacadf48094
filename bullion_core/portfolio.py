"""
Holdings: a user's cash and commodity positions with cost basis.

Mutable; updated only by the execution engine inside a unit of work. The
store hands out copies, so callers never alias stored state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from bullion_core.errors import InsufficientFundsError, InsufficientHoldingsError
from bullion_core.market import PRICE_QUANTUM, ZERO, Commodity


@dataclass
class Position:
    """
    Quantity held and its weighted-average cost. Cost is 0 whenever quantity is 0.

    cost_basis is the unrounded total cost of the held units; average_cost is
    derived from it so rounding never compounds across buys.
    """

    quantity: int = 0
    average_cost: Decimal = ZERO
    cost_basis: Decimal = ZERO


def _empty_positions() -> dict[Commodity, Position]:
    return {c: Position() for c in Commodity}


@dataclass
class Holdings:
    """
    Cash and per-commodity positions for one user.

    Invariants: cash >= 0, quantity >= 0, average_cost == 0 iff quantity == 0.
    """

    user_id: int
    cash: Decimal
    last_updated: datetime
    positions: dict[Commodity, Position] = field(default_factory=_empty_positions)

    def position(self, commodity: Commodity) -> Position:
        """Position in commodity. Always present, possibly flat."""
        return self.positions[commodity]

    def apply_buy(self, commodity: Commodity, quantity: int, price: Decimal, at: datetime) -> None:
        """Spend quantity * price and fold the purchase into the average cost."""
        cost = quantity * price
        if self.cash < cost:
            raise InsufficientFundsError("Insufficient cash reserve.")
        pos = self.position(commodity)
        pos.quantity += quantity
        pos.cost_basis += cost
        pos.average_cost = (pos.cost_basis / pos.quantity).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
        self.cash -= cost
        self.last_updated = at

    def apply_sell(self, commodity: Commodity, quantity: int, price: Decimal, at: datetime) -> None:
        """Receive quantity * price; a flat position resets its average cost."""
        pos = self.position(commodity)
        if pos.quantity < quantity:
            raise InsufficientHoldingsError(f"Insufficient {commodity.value} holding.")
        pos.quantity -= quantity
        if pos.quantity == 0:
            pos.average_cost = ZERO
            pos.cost_basis = ZERO
        else:
            # selling leaves the average unchanged
            pos.cost_basis = pos.quantity * pos.average_cost
        self.cash += quantity * price
        self.last_updated = at

    def market_value(self, bids: dict[Commodity, Decimal]) -> Decimal:
        """Cash plus positions marked at the given bids (missing bids count as 0)."""
        total = self.cash
        for commodity, pos in self.positions.items():
            total += pos.quantity * bids.get(commodity, ZERO)
        return total

    def copy(self) -> "Holdings":
        return Holdings(
            user_id=self.user_id,
            cash=self.cash,
            last_updated=self.last_updated,
            positions={c: Position(p.quantity, p.average_cost, p.cost_basis) for c, p in self.positions.items()},
        )

    def to_dict(self) -> dict:
        """Flat view in the collaborator-facing shape."""
        gold = self.position(Commodity.GOLD)
        silver = self.position(Commodity.SILVER)
        return {
            "user_id": self.user_id,
            "cash_reserve": str(self.cash),
            "gold_holding": gold.quantity,
            "average_gold_price": str(gold.average_cost),
            "silver_holding": silver.quantity,
            "average_silver_price": str(silver.average_cost),
            "last_updated": self.last_updated.isoformat(),
        }
