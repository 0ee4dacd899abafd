"""Tests for sim_matching.engine.matching_algo — price-time priority."""
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any

from src.sim_matching.domain.models import BookOrder
from src.sim_matching.engine.matching_algo import (
    match_order,
    plan_order_matches_for_book,
    resolve_execution_price,
)
from src.sim_matching.engine.order_book import OrderBook
from src.sim_order.domain.models import MarketOrder

_T0 = datetime(2026, 1, 1, tzinfo=UTC)


def _bo(
    order_id: str, side: str, price: int, qty: int, tick: int = 0, **kwargs: Any
) -> BookOrder:
    return BookOrder(
        order_id=order_id,
        company_id=kwargs.get("company_id", f"co-{order_id}"),
        side=side,
        price=price,
        quantity=qty,
        tick_placed=tick,
        created_at=_T0 + timedelta(seconds=kwargs.get("offset", 0)),
    )


def _incoming(side: str, price: int, qty: int) -> MarketOrder:
    return MarketOrder(
        id="incoming",
        company_id="co-taker",
        item_id="item-1",
        region_id="region-1",
        side=side,
        quantity=qty,
        unit_price_cents=price,
        tick_placed=5,
        created_at=_T0,
    )


def _book(*orders: BookOrder) -> OrderBook:
    ob = OrderBook(item_id="item-1", region_id="region-1")
    for o in orders:
        ob.add_order(o)
    return ob


class TestMatchOrder:
    def test_buy_walks_asks_best_price_first(self) -> None:
        ob = _book(_bo("s-high", "SELL", 110, 5), _bo("s-low", "SELL", 100, 2))
        trades = match_order(_incoming("BUY", 110, 4), ob)
        assert [(t.sell_order_id, t.price, t.quantity) for t in trades] == [
            ("s-low", 100, 2),
            ("s-high", 110, 2),
        ]
        assert ob.best_ask == 110
        assert ob.asks[110][0].quantity == 3

    def test_execution_at_resting_price(self) -> None:
        ob = _book(_bo("b1", "BUY", 150, 3))
        trades = match_order(_incoming("SELL", 120, 3), ob)
        assert trades[0].price == 150
        assert trades[0].buy_order_id == "b1"
        assert trades[0].sell_order_id == "incoming"
        assert ob.best_bid is None

    def test_time_priority_within_level(self) -> None:
        ob = _book(
            _bo("s-later", "SELL", 100, 1, tick=2),
            _bo("s-first", "SELL", 100, 1, tick=1),
        )
        trades = match_order(_incoming("BUY", 100, 1), ob)
        assert trades[0].sell_order_id == "s-first"

    def test_no_cross_no_trades(self) -> None:
        ob = _book(_bo("s1", "SELL", 101, 1))
        incoming = _incoming("BUY", 100, 1)
        assert match_order(incoming, ob) == []
        assert incoming.remaining_quantity == 1
        assert incoming.status == "OPEN"

    def test_full_fill_marks_incoming_filled(self) -> None:
        ob = _book(_bo("s1", "SELL", 100, 5))
        incoming = _incoming("BUY", 100, 5)
        match_order(incoming, ob)
        assert incoming.remaining_quantity == 0
        assert incoming.status == "FILLED"
        assert ob.best_ask is None
        assert 100 not in ob.asks


class TestPlanOrderMatches:
    def test_older_order_sets_price(self) -> None:
        buy = _bo("b1", "BUY", 120, 2, tick=1)
        sell = _bo("s1", "SELL", 100, 2, tick=2)
        assert resolve_execution_price(buy, sell) == 120
        assert resolve_execution_price(replace(buy, tick_placed=3), sell) == 100

    def test_pairs_crossed_orders(self) -> None:
        buys = [_bo("b1", "BUY", 120, 3, tick=1), _bo("b2", "BUY", 105, 2, tick=1)]
        sells = [_bo("s1", "SELL", 100, 4, tick=2), _bo("s2", "SELL", 110, 5, tick=2)]
        plans = plan_order_matches_for_book("item-1", "region-1", buys, sells)
        got = [(p.buy_order_id, p.sell_order_id, p.quantity, p.unit_price_cents) for p in plans]
        assert got == [
            ("b1", "s1", 3, 120),
            ("b2", "s1", 1, 105),
        ]

    def test_inputs_not_mutated(self) -> None:
        buys = [_bo("b1", "BUY", 120, 3)]
        sells = [_bo("s1", "SELL", 100, 3)]
        plan_order_matches_for_book("item-1", "region-1", buys, sells)
        assert buys[0].quantity == 3
        assert sells[0].quantity == 3

    def test_uncrossed_book_plans_nothing(self) -> None:
        plans = plan_order_matches_for_book(
            "item-1", "region-1", [_bo("b1", "BUY", 99, 1)], [_bo("s1", "SELL", 100, 1)]
        )
        assert plans == []

