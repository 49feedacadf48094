"""
Tests for TriggerEvaluator and PricePoller.
"""

import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from bullion_core import Commodity, EventLoop, OrderStatus, Quote, QuoteEvent
from bullion_core.execution import ExecutionEngine, InMemoryAccountStore, OrderAdmission, PricePoller, TriggerEvaluator

T0 = datetime(2025, 6, 16, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


def _setup(cash: str = "100000", order_ttl: timedelta | None = None):
    store = InMemoryAccountStore()
    clock = Clock()
    engine = ExecutionEngine(store, clock=clock)
    admission = OrderAdmission(store, clock=clock)
    evaluator = TriggerEvaluator(store, engine, order_ttl=order_ttl)
    uid = store.create_user("alice", "", Decimal(cash), T0).user_id
    return store, engine, admission, evaluator, uid


def _gold(bid, ask, at: datetime = T0) -> Quote:
    return Quote(commodity="gold", bid=bid, ask=ask, timestamp=at)


# --- Firing ---


def test_limit_buy_executes_at_current_ask():
    store, engine, admission, evaluator, uid = _setup()
    order = admission.admit(uid, "gold", "buy", 2, 5900, "Limit")

    assert evaluator.on_quote(_gold(5990, 6010)) == []
    outcomes = evaluator.on_quote(_gold(5830, 5850))

    assert len(outcomes) == 1
    assert outcomes[0].order_id == order.order_id
    assert outcomes[0].status is OrderStatus.EXECUTED
    assert outcomes[0].trade.price == Decimal("5850")
    holdings = store.get_holdings(uid)
    assert holdings.cash == Decimal("100000") - 2 * Decimal("5850")
    assert holdings.position(Commodity.GOLD).quantity == 2
    assert holdings.position(Commodity.GOLD).average_cost == Decimal("5850")
    assert len(store.list_trades(uid)) == 1
    stored = store.list_orders(uid)[0]
    assert stored.status is OrderStatus.EXECUTED
    assert stored.executed_at == T0
    assert stored.trade_id == outcomes[0].trade.trade_id
    assert store.list_orders(uid, OrderStatus.PENDING) == []


def test_executed_order_is_not_evaluated_again():
    store, engine, admission, evaluator, uid = _setup()
    admission.admit(uid, "gold", "buy", 2, 5900, "Limit")
    evaluator.on_quote(_gold(5830, 5850))
    assert evaluator.on_quote(_gold(5700, 5720)) == []
    assert len(store.list_trades(uid)) == 1


def test_limit_sell_and_stop_loss_sell_use_bid():
    store, engine, admission, evaluator, uid = _setup()
    engine.execute(uid, "gold", "buy", 10, 6000)
    take_profit = admission.admit(uid, "gold", "sell", 4, 6200, "Limit")
    stop = admission.admit(uid, "gold", "sell", 6, 5800, "StopLoss")

    outcomes = evaluator.on_quote(_gold(6210, 6230))
    assert [(o.order_id, o.status) for o in outcomes] == [(take_profit.order_id, OrderStatus.EXECUTED)]
    assert outcomes[0].trade.price == Decimal("6210")

    outcomes = evaluator.on_quote(_gold(5790, 5810))
    assert [(o.order_id, o.status) for o in outcomes] == [(stop.order_id, OrderStatus.EXECUTED)]
    assert outcomes[0].trade.price == Decimal("5790")
    assert store.get_holdings(uid).position(Commodity.GOLD).quantity == 0


def test_other_commodity_orders_are_ignored():
    store, engine, admission, evaluator, uid = _setup()
    admission.admit(uid, "silver", "buy", 1, 100, "Limit")
    assert evaluator.on_quote(_gold(1, 2)) == []
    assert len(store.list_orders(uid, OrderStatus.PENDING)) == 1


# --- Failure paths ---


def test_unaffordable_order_fails_once():
    store, engine, admission, evaluator, uid = _setup(cash="1000")
    order = admission.admit(uid, "gold", "buy", 2, 5900, "Limit")

    outcomes = evaluator.on_quote(_gold(5830, 5850))
    assert outcomes[0].status is OrderStatus.FAILED
    assert outcomes[0].reason == "Insufficient cash reserve."
    stored = store.list_orders(uid)[0]
    assert stored.order_id == order.order_id
    assert stored.status is OrderStatus.FAILED
    assert stored.failure_reason == "Insufficient cash reserve."
    assert store.get_holdings(uid).cash == Decimal("1000")

    assert evaluator.on_quote(_gold(5830, 5850)) == []


def test_stop_loss_without_position_fails():
    store, engine, admission, evaluator, uid = _setup()
    admission.admit(uid, "gold", "sell", 1, 5800, "StopLoss")
    outcomes = evaluator.on_quote(_gold(5700, 5720))
    assert outcomes[0].status is OrderStatus.FAILED
    assert outcomes[0].reason == "Insufficient gold holding."


def test_orders_evaluated_in_increasing_id_order():
    store, engine, admission, evaluator, uid = _setup(cash="6000")
    first = admission.admit(uid, "gold", "buy", 1, 5900, "Limit")
    second = admission.admit(uid, "gold", "buy", 1, 5900, "Limit")

    outcomes = evaluator.on_quote(_gold(5830, 5850))
    # only one is affordable; the lower id wins
    assert [(o.order_id, o.status) for o in outcomes] == [
        (first.order_id, OrderStatus.EXECUTED),
        (second.order_id, OrderStatus.FAILED),
    ]


def test_storage_failure_leaves_order_pending(monkeypatch):
    store, engine, admission, evaluator, uid = _setup()
    admission.admit(uid, "gold", "buy", 1, 5900, "Limit")

    def boom(holdings):
        raise OSError("disk full")

    monkeypatch.setattr(store, "_write_holdings", boom)
    assert evaluator.on_quote(_gold(5830, 5850)) == []
    assert len(store.list_orders(uid, OrderStatus.PENDING)) == 1

    monkeypatch.undo()
    outcomes = evaluator.on_quote(_gold(5830, 5850))
    assert outcomes[0].status is OrderStatus.EXECUTED


# --- Expiry ---


def test_stale_orders_expire():
    store, engine, admission, evaluator, uid = _setup(order_ttl=timedelta(minutes=30))
    order = admission.admit(uid, "silver", "buy", 1, 50, "Limit")

    assert evaluator.on_quote(_gold(5990, 6010, at=T0 + timedelta(minutes=10))) == []
    outcomes = evaluator.on_quote(_gold(5990, 6010, at=T0 + timedelta(minutes=31)))
    assert [(o.order_id, o.status) for o in outcomes] == [(order.order_id, OrderStatus.EXPIRED)]
    assert store.list_orders(uid)[0].status is OrderStatus.EXPIRED


def test_expired_order_does_not_fire():
    store, engine, admission, evaluator, uid = _setup(order_ttl=timedelta(minutes=5))
    admission.admit(uid, "gold", "buy", 1, 5900, "Limit")
    outcomes = evaluator.on_quote(_gold(5830, 5850, at=T0 + timedelta(minutes=6)))
    assert [o.status for o in outcomes] == [OrderStatus.EXPIRED]
    assert store.list_trades(uid) == []


# --- EventLoop & PricePoller ---


def test_evaluator_as_event_loop_handler():
    store, engine, admission, evaluator, uid = _setup()
    admission.admit(uid, "gold", "buy", 2, 5900, "Limit")
    loop = EventLoop()
    loop.subscribe(evaluator)
    loop.dispatch(QuoteEvent.of(_gold(5830, 5850)))
    assert store.list_orders(uid)[0].status is OrderStatus.EXECUTED


def test_poll_once_dispatches_every_quote():
    seen = []
    loop = EventLoop()
    loop.subscribe(lambda ev: seen.append(ev.payload.commodity))
    quotes = [_gold(1, 2), Quote(commodity="silver", bid=3, ask=4, timestamp=T0)]
    poller = PricePoller(lambda: quotes, loop, interval=60)
    assert poller.poll_once() == 2
    assert seen == [Commodity.GOLD, Commodity.SILVER]


def test_poller_thread_runs_until_stopped():
    polled = threading.Event()
    calls = []

    def source():
        calls.append(1)
        polled.set()
        return []

    poller = PricePoller(source, EventLoop(), interval=0.01)
    poller.start()
    try:
        assert polled.wait(timeout=5)
        assert poller.running
    finally:
        poller.stop(timeout=5)
    assert not poller.running
    assert calls


def test_poller_survives_source_errors():
    attempts = []
    recovered = threading.Event()

    def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise ConnectionError("feed down")
        recovered.set()
        return []

    poller = PricePoller(flaky, EventLoop(), interval=0.01)
    poller.start()
    try:
        assert recovered.wait(timeout=5)
    finally:
        poller.stop(timeout=5)
    assert len(attempts) >= 2


def test_poller_start_is_idempotent():
    poller = PricePoller(lambda: [], EventLoop(), interval=0.01)
    poller.start()
    thread = poller._thread
    poller.start()
    assert poller._thread is thread
    poller.stop(timeout=5)


def test_failing_observer_does_not_cut_tick_short():
    store = InMemoryAccountStore()
    clock = Clock()

    def broken_observer(trade, holdings):
        raise RuntimeError("observer down")

    engine = ExecutionEngine(store, clock=clock, observers=[broken_observer])
    admission = OrderAdmission(store, clock=clock)
    evaluator = TriggerEvaluator(store, engine)
    uid = store.create_user("alice", "", Decimal("100000"), T0).user_id
    first = admission.admit(uid, "gold", "buy", 1, 5900, "Limit")
    second = admission.admit(uid, "gold", "buy", 1, 5900, "Limit")

    outcomes = evaluator.on_quote(_gold(5830, 5850))

    assert [(o.order_id, o.status) for o in outcomes] == [
        (first.order_id, OrderStatus.EXECUTED),
        (second.order_id, OrderStatus.EXECUTED),
    ]
    assert len(store.list_trades(uid)) == 2
    assert store.list_orders(uid, OrderStatus.PENDING) == []
