"""
Paper trading example: market orders, a pending limit order and a stop-loss
driven by quote ticks.

Shows: TradingService, market buy/sell, pending order admission, trigger
evaluation on ticks, holdings and trade history.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from bullion_core import Quote, Settings, TradingService
from bullion_core.execution.types import Trade
from bullion_core.portfolio import Holdings


def print_fill_observer(trade: Trade, holdings: Holdings) -> None:
    """Observer: post-trade log."""
    print(f"  [Observer] FILL {trade.side.value} {trade.quantity} {trade.commodity.value} @ {trade.price}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    service = TradingService(settings=Settings(starting_cash=100_000), observers=[print_fill_observer])
    user = service.register_user("alice")

    print("--- Market orders ---")
    print(service.place_market_order(user.user_id, "gold", "buy", 5, 6000).message)
    outcome = service.place_market_order(user.user_id, "silver", "buy", 1, 90_000)
    print(f"{outcome.message} ({outcome.error_kind.value})")

    print("\n--- Pending orders ---")
    limit = service.place_pending_order(user.user_id, "gold", "buy", 2, 5900, "Limit")
    stop = service.place_pending_order(user.user_id, "gold", "sell", 5, 5800, "StopLoss")
    print(f"{limit.message} id={limit.order.order_id}; {stop.message} id={stop.order.order_id}")
    for order in service.get_pending_orders(user.user_id):
        print(f"  Pending: {order.kind.value} {order.side.value} {order.quantity} @ {order.trigger_price}")

    print("\n--- Ticks ---")
    now = datetime.now(timezone.utc)
    for bid, ask in [(5990, 6010), (5830, 5850), (5780, 5800)]:
        quote = Quote(commodity="gold", bid=bid, ask=ask, timestamp=now)
        for o in service.on_quote(quote):
            print(f"  Order {o.order_id} -> {o.status.value} {o.reason or ''}")

    holdings = service.get_holdings(user.user_id)
    print(f"\nHoldings: {holdings.to_dict()}")
    for trade in service.get_trade_history(user.user_id):
        print(f"  Trade: {trade.to_dict()}")


if __name__ == "__main__":
    main()
