"""
Settings for the trading core.

Passed explicitly into the service; nothing reads configuration from ambient
state. `Settings.from_env()` is the one place environment variables are read.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from bullion_core.market import to_price

# Environment variables read by Settings.from_env().
STARTING_CASH_ENV = "BULLION_STARTING_CASH"
POLL_INTERVAL_ENV = "BULLION_POLL_INTERVAL"
ORDER_TTL_ENV = "BULLION_ORDER_TTL_SECONDS"

DEFAULT_STARTING_CASH = Decimal("100000")
DEFAULT_POLL_INTERVAL = 5.0


@dataclass(frozen=True)
class Settings:
    """
    starting_cash: cash credited to every newly registered user.
    poll_interval: seconds between PricePoller polls.
    order_ttl: pending orders older than this expire; None disables expiry.
    """

    starting_cash: Decimal = DEFAULT_STARTING_CASH
    poll_interval: float = DEFAULT_POLL_INTERVAL
    order_ttl: timedelta | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "starting_cash",
            to_price(self.starting_cash, message="Starting cash must be greater than 0."),
        )
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.order_ttl is not None and self.order_ttl <= timedelta(0):
            raise ValueError(f"order_ttl must be positive, got {self.order_ttl}")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        ttl = env.get(ORDER_TTL_ENV, "").strip()
        return cls(
            # __post_init__ coerces and validates the raw string
            starting_cash=env.get(STARTING_CASH_ENV, "").strip() or DEFAULT_STARTING_CASH,
            poll_interval=float(env.get(POLL_INTERVAL_ENV, "").strip() or DEFAULT_POLL_INTERVAL),
            order_ttl=timedelta(seconds=float(ttl)) if ttl else None,
        )
