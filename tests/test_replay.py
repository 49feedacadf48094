"""
Tests for replay: ReplayEngine, metrics, trades_to_frame, print_report.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pandas as pd
import pytest

from bullion_core import Commodity, OrderStatus, Settings, TradingService
from replay import ReplayClock, ReplayEngine, compute_metrics, load_dataframe, print_report, trades_to_frame
from replay.metrics import TRADE_COLUMNS

START = datetime(2025, 6, 16, 8, 55, tzinfo=timezone.utc)


def _make_quote_df() -> pd.DataFrame:
    """Three gold ticks: flat, dip, rally."""
    df = pd.DataFrame({
        "timestamp": ["2025-06-16 09:00", "2025-06-16 09:05", "2025-06-16 09:10"],
        "metal": ["gold", "gold", "gold"],
        "bid": [5990.0, 5840.0, 6260.0],
        "ask": [6010.0, 5860.0, 6280.0],
    })
    return load_dataframe(df, datetime_index="timestamp")


def _setup(cash: int = 100_000):
    clock = ReplayClock(START)
    service = TradingService(settings=Settings(starting_cash=cash), clock=clock)
    uid = service.register_user("replayer").user_id
    return service, uid, clock


# --- ReplayEngine ---


def test_replay_executes_orders_as_prices_cross():
    service, uid, clock = _setup()
    buy = service.place_pending_order(uid, "gold", "buy", 2, 5900, "Limit").order
    sell = service.place_pending_order(uid, "gold", "sell", 2, 6250, "Limit").order

    result = ReplayEngine(service, uid, clock).run(_make_quote_df())

    assert [(o.order_id, o.status) for o in result.outcomes] == [
        (buy.order_id, OrderStatus.EXECUTED),
        (sell.order_id, OrderStatus.EXECUTED),
    ]
    assert [(t.side.value, t.price) for t in result.trades] == [("buy", Decimal("5860")), ("sell", Decimal("6260"))]
    assert result.trades[0].timestamp == datetime(2025, 6, 16, 9, 5, tzinfo=timezone.utc)
    assert result.holdings.cash == Decimal("100800")
    assert result.holdings.position(Commodity.GOLD).quantity == 0


def test_replay_equity_curve_marks_to_bid():
    service, uid, clock = _setup()
    service.place_pending_order(uid, "gold", "buy", 2, 5900, "Limit")
    service.place_pending_order(uid, "gold", "sell", 2, 6250, "Limit")

    result = ReplayEngine(service, uid, clock).run(_make_quote_df())

    assert [v for _, v in result.equity_curve] == [100_000.0, 99_960.0, 100_800.0]


def test_replay_without_orders_keeps_cash():
    service, uid, clock = _setup(cash=5000)
    result = ReplayEngine(service, uid, clock).run(_make_quote_df())
    assert result.trades == []
    assert result.outcomes == []
    assert len(result.equity_curve) == 3
    assert result.holdings.cash == Decimal("5000")


def test_replay_reports_only_new_trades():
    service, uid, clock = _setup()
    service.place_market_order(uid, "gold", "buy", 1, 6000)
    service.place_pending_order(uid, "gold", "sell", 1, 6250, "Limit")
    result = ReplayEngine(service, uid, clock).run(_make_quote_df())
    assert len(result.trades) == 1
    assert result.trades[0].side.value == "sell"
    assert len(service.get_trade_history(uid)) == 2


def test_replay_unaffordable_order_fails():
    service, uid, clock = _setup(cash=1000)
    service.place_pending_order(uid, "gold", "buy", 2, 5900, "Limit")
    result = ReplayEngine(service, uid, clock).run(_make_quote_df())
    assert [o.status for o in result.outcomes] == [OrderStatus.FAILED]
    assert result.trades == []


# --- compute_metrics ---


def test_compute_metrics_basic():
    curve = [
        (datetime(2025, 6, 16, 9, 0), 100_000.0),
        (datetime(2025, 6, 16, 9, 5), 99_960.0),
        (datetime(2025, 6, 16, 9, 10), 100_800.0),
    ]
    m = compute_metrics(100_000.0, curve)
    assert m.initial_value == 100_000.0
    assert m.final_value == 100_800.0
    assert m.total_pnl == 800.0
    assert m.total_return_pct == pytest.approx(0.8)
    assert m.max_drawdown == 40.0
    assert m.max_drawdown_pct == pytest.approx(0.04)


def test_compute_metrics_empty_curve():
    m = compute_metrics(100_000.0, [])
    assert m.final_value == 100_000.0
    assert m.total_pnl == 0.0
    assert m.max_drawdown == 0.0


# --- trades_to_frame & print_report ---


def test_trades_to_frame():
    service, uid, clock = _setup()
    service.place_market_order(uid, "silver", "buy", 3, "88.5")
    frame = trades_to_frame(service.get_trade_history(uid))
    assert list(frame.columns) == TRADE_COLUMNS
    assert frame.loc[0, "commodity"] == "silver"
    assert frame.loc[0, "notional"] == Decimal("265.5")


def test_trades_to_frame_empty():
    frame = trades_to_frame([])
    assert frame.empty
    assert list(frame.columns) == TRADE_COLUMNS


def test_print_report(capsys):
    service, uid, clock = _setup()
    service.place_pending_order(uid, "gold", "buy", 2, 5900, "Limit")
    result = ReplayEngine(service, uid, clock).run(_make_quote_df())
    metrics = print_report(result, 100_000.0)
    out = capsys.readouterr().out
    assert "Replay Summary" in out
    assert "1 executed, 0 failed, 0 expired" in out
    assert metrics.final_value == result.equity_curve[-1][1]
