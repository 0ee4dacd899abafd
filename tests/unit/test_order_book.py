"""Tests for sim_matching.engine.order_book — price levels and time priority."""
from datetime import UTC, datetime, timedelta

from src.sim_matching.domain.models import BookOrder
from src.sim_matching.engine.order_book import OrderBook

_T0 = datetime(2026, 1, 1, tzinfo=UTC)


def _bo(
    order_id: str, side: str, price: int, qty: int = 1, tick: int = 0, offset: int = 0
) -> BookOrder:
    return BookOrder(
        order_id=order_id,
        company_id="co-1",
        side=side,
        price=price,
        quantity=qty,
        tick_placed=tick,
        created_at=_T0 + timedelta(seconds=offset),
    )


class TestOrderBook:
    def test_empty_book(self) -> None:
        ob = OrderBook(item_id="item-1", region_id="region-1")
        assert ob.best_bid is None
        assert ob.best_ask is None

    def test_best_prices(self) -> None:
        ob = OrderBook(item_id="item-1", region_id="region-1")
        ob.add_order(_bo("b1", "BUY", 90))
        ob.add_order(_bo("b2", "BUY", 95))
        ob.add_order(_bo("s1", "SELL", 120))
        ob.add_order(_bo("s2", "SELL", 110))
        assert ob.best_bid == 95
        assert ob.best_ask == 110

    def test_prices_are_unbounded(self) -> None:
        ob = OrderBook(item_id="item-1", region_id="region-1")
        ob.add_order(_bo("s1", "SELL", 24_000_000))
        assert ob.best_ask == 24_000_000

    def test_level_kept_in_time_priority(self) -> None:
        ob = OrderBook(item_id="item-1", region_id="region-1")
        ob.add_order(_bo("late", "SELL", 100, tick=2))
        ob.add_order(_bo("early", "SELL", 100, tick=1, offset=5))
        ob.add_order(_bo("earliest", "SELL", 100, tick=1, offset=1))
        assert [o.order_id for o in ob.asks[100]] == ["earliest", "early", "late"]

    def test_head_is_oldest_at_level(self) -> None:
        ob = OrderBook(item_id="item-1", region_id="region-1")
        ob.add_order(_bo("b-late", "BUY", 95, tick=3))
        ob.add_order(_bo("b-early", "BUY", 95, tick=1))
        assert ob.head("BUY", 95).order_id == "b-early"

    def test_pop_front_removes_empty_level(self) -> None:
        ob = OrderBook(item_id="item-1", region_id="region-1")
        ob.add_order(_bo("b1", "BUY", 90))
        ob.add_order(_bo("b2", "BUY", 95))
        assert ob.pop_front("BUY", 95).order_id == "b2"
        assert ob.best_bid == 90
        assert 95 not in ob.bids

    def test_pop_front_keeps_non_empty_level(self) -> None:
        ob = OrderBook(item_id="item-1", region_id="region-1")
        ob.add_order(_bo("s1", "SELL", 100, tick=1))
        ob.add_order(_bo("s2", "SELL", 100, tick=2))
        ob.pop_front("SELL", 100)
        assert ob.best_ask == 100
        assert [o.order_id for o in ob.asks[100]] == ["s2"]
