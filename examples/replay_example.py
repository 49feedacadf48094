"""
Replay example: place pending orders, then replay recorded quotes from
examples/data/sample_quotes.csv and print a summary.
"""

from datetime import datetime, timezone
from pathlib import Path

from bullion_core import Settings, TradingService
from replay import ReplayClock, ReplayEngine, load_csv, print_report, trades_to_frame


def main() -> None:
    data_path = Path(__file__).resolve().parent / "data" / "sample_quotes.csv"
    data = load_csv(data_path)

    start = data.index[0].to_pydatetime().replace(tzinfo=timezone.utc)
    clock = ReplayClock(start)
    settings = Settings(starting_cash=100_000)
    service = TradingService(settings=settings, clock=clock)
    user = service.register_user("replay")

    service.place_pending_order(user.user_id, "gold", "buy", 5, 5900, "Limit")
    service.place_pending_order(user.user_id, "gold", "sell", 5, 6250, "Limit")
    service.place_pending_order(user.user_id, "silver", "buy", 100, 88, "Limit")
    service.place_pending_order(user.user_id, "silver", "sell", 100, 85, "StopLoss")

    result = ReplayEngine(service, user.user_id, clock).run(data)
    print_report(result, initial_value=float(settings.starting_cash))
    print(trades_to_frame(result.trades).to_string(index=False))
    print(f"Replayed at {datetime.now(timezone.utc):%Y-%m-%d %H:%M:%S} UTC")


if __name__ == "__main__":
    main()
