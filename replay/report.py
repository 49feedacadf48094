"""
Replay report: print a summary from ReplayResult and Metrics.
"""

from __future__ import annotations

from bullion_core.order import OrderStatus

from replay.engine import ReplayResult
from replay.metrics import Metrics, compute_metrics


def print_report(result: ReplayResult, initial_value: float) -> Metrics:
    """
    Compute metrics for a replay and print a summary.

    Returns
    -------
    Metrics
        The computed metrics (e.g. for programmatic use).
    """
    metrics = compute_metrics(initial_value, result.equity_curve)
    executed = sum(1 for o in result.outcomes if o.status is OrderStatus.EXECUTED)
    failed = sum(1 for o in result.outcomes if o.status is OrderStatus.FAILED)
    expired = sum(1 for o in result.outcomes if o.status is OrderStatus.EXPIRED)
    print("--- Replay Summary ---")
    print(f"Initial value:   {metrics.initial_value:,.2f}")
    print(f"Final value:     {metrics.final_value:,.2f}")
    print(f"Total PnL:       {metrics.total_pnl:,.2f}")
    print(f"Total return:    {metrics.total_return_pct:.2f}%")
    print(f"Max drawdown:    {metrics.max_drawdown:,.2f} ({metrics.max_drawdown_pct:.2f}%)")
    print(f"Trades:          {len(result.trades)}")
    print(f"Orders:          {executed} executed, {failed} failed, {expired} expired")
    if result.holdings is not None:
        print(f"Cash:            {result.holdings.cash}")
    print("----------------------")
    return metrics
