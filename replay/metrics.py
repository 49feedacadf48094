"""
Replay metrics: PnL, return, drawdown, trade statistics.

Computed from the equity curve of a replay and the ledger entries it produced.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

import numpy as np
import pandas as pd

from bullion_core.execution.types import Trade

TRADE_COLUMNS = ["trade_id", "user_id", "commodity", "side", "quantity", "price", "notional", "timestamp"]


@dataclass
class Metrics:
    initial_value: float
    final_value: float
    total_pnl: float
    total_return_pct: float
    max_drawdown: float
    max_drawdown_pct: float


def compute_metrics(initial_value: float, equity_curve: Sequence[tuple[datetime, float]]) -> Metrics:
    """
    Compute performance metrics from starting value and equity curve.

    Parameters
    ----------
    initial_value : float
        Portfolio value before the first tick (e.g. starting cash).
    equity_curve : sequence of (datetime, value)
        Time-ordered (timestamp, marked value) pairs.
    """
    if not equity_curve:
        return Metrics(
            initial_value=initial_value,
            final_value=initial_value,
            total_pnl=0.0,
            total_return_pct=0.0,
            max_drawdown=0.0,
            max_drawdown_pct=0.0,
        )

    values = np.array([initial_value] + [v for _, v in equity_curve], dtype=float)
    final_value = float(values[-1])
    total_pnl = final_value - initial_value
    total_return_pct = (total_pnl / initial_value * 100.0) if initial_value else 0.0

    peak = np.maximum.accumulate(values)
    drawdowns = peak - values
    worst = int(np.argmax(drawdowns))
    max_drawdown = float(drawdowns[worst])
    max_dd_pct = float(max_drawdown / peak[worst] * 100.0) if peak[worst] > 0 else 0.0

    return Metrics(
        initial_value=initial_value,
        final_value=final_value,
        total_pnl=total_pnl,
        total_return_pct=total_return_pct,
        max_drawdown=max_drawdown,
        max_drawdown_pct=max_dd_pct,
    )


def trades_to_frame(trades: Sequence[Trade]) -> pd.DataFrame:
    """Ledger entries as a DataFrame; money columns stay Decimal."""
    rows = [
        {
            "trade_id": t.trade_id,
            "user_id": t.user_id,
            "commodity": t.commodity.value,
            "side": t.side.value,
            "quantity": t.quantity,
            "price": t.price,
            "notional": t.notional,
            "timestamp": t.timestamp,
        }
        for t in trades
    ]
    return pd.DataFrame(rows, columns=TRADE_COLUMNS)
