"""
Market vocabulary: tradable commodities, trade sides, quotes, price coercion.

Closed variants parse free-form input once at the boundary and serialize to
fixed string tokens. Money values are Decimals with four fraction digits.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum

from bullion_core.errors import ValidationError

PRICE_PLACES = 4
PRICE_QUANTUM = Decimal(1).scaleb(-PRICE_PLACES)
ZERO = Decimal("0").quantize(PRICE_QUANTUM)


class Commodity(Enum):
    GOLD = "gold"
    SILVER = "silver"

    @classmethod
    def parse(cls, value: "Commodity | str") -> "Commodity":
        """Accept a Commodity or a case-insensitive token."""
        if isinstance(value, cls):
            return value
        token = str(value).strip().lower()
        for member in cls:
            if member.value == token:
                return member
        raise ValidationError("Invalid metal specified.")


class Side(Enum):
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: "Side | str") -> "Side":
        if isinstance(value, cls):
            return value
        token = str(value).strip().lower()
        for member in cls:
            if member.value == token:
                return member
        raise ValidationError("Invalid action specified (must be 'buy' or 'sell').")


def to_price(value: Decimal | int | float | str, *, message: str = "Price must be greater than 0.") -> Decimal:
    """
    Coerce value to a positive fixed-scale Decimal.

    Raises ValidationError for booleans, non-numeric or non-finite input,
    values with more than PRICE_PLACES fraction digits, and values <= 0.
    """
    if isinstance(value, bool):
        raise ValidationError(message)
    try:
        # str() keeps floats at their shortest repr instead of the binary expansion
        price = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(message) from None
    if not price.is_finite() or price <= 0:
        raise ValidationError(message)
    try:
        quantized = price.quantize(PRICE_QUANTUM)
    except InvalidOperation:
        # more integer digits than the context precision can hold at four places
        raise ValidationError(message) from None
    if quantized != price:
        raise ValidationError(f"Price {value} has more than {PRICE_PLACES} decimal places.")
    return quantized


def to_quantity(value: int, *, message: str = "Quantity must be greater than 0.") -> int:
    """Quantities are whole units; bools and non-integers are rejected."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(message)
    return value


@dataclass(frozen=True)
class Quote:
    """Current bid/ask for one commodity, as supplied by the price collaborator. Naive timestamps are UTC."""

    commodity: Commodity
    bid: Decimal
    ask: Decimal
    timestamp: datetime

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))
        object.__setattr__(self, "commodity", Commodity.parse(self.commodity))
        object.__setattr__(self, "bid", to_price(self.bid, message="Bid must be greater than 0."))
        object.__setattr__(self, "ask", to_price(self.ask, message="Ask must be greater than 0."))

    def price_for(self, side: Side) -> Decimal:
        """Price a market order on this side would execute at: buys pay the ask, sells get the bid."""
        return self.ask if side is Side.BUY else self.bid
