"""Candle computation and CandleService persistence/reads."""
from datetime import UTC, datetime, timedelta

import pytest

from src.sim_candles.application.service import MAX_CANDLE_LIMIT, CandleService
from src.sim_candles.domain.candles import compute_tick_candles_from_trades, rounded_vwap
from src.sim_common.errors import DomainInvariantError
from src.sim_matching.domain.models import Trade
from tests.fakes import REGION, FakeServices, FakeSession, InMemoryStore

_T0 = datetime(2026, 1, 1, tzinfo=UTC)


def _trade(
    trade_id: str, price: int, qty: int, tick: int = 5, item_id: str = "item-1", offset: int = 0
) -> Trade:
    return Trade(
        id=trade_id,
        buy_order_id=f"b-{trade_id}",
        sell_order_id=f"s-{trade_id}",
        buyer_id="co-b",
        seller_id="co-s",
        item_id=item_id,
        region_id=REGION,
        tick=tick,
        unit_price_cents=price,
        quantity=qty,
        total_price_cents=price * qty,
        created_at=_T0 + timedelta(seconds=offset),
    )


class TestComputeCandles:
    def test_ohlcv_and_vwap(self) -> None:
        trades = [_trade("t1", 100, 1, offset=0), _trade("t2", 150, 1, offset=1)]
        [candle] = compute_tick_candles_from_trades(5, trades)
        assert (candle.open_cents, candle.high_cents, candle.low_cents, candle.close_cents) == (
            100, 150, 100, 150,
        )
        assert candle.volume_qty == 2
        assert candle.trade_count == 2
        assert candle.vwap_cents == 125

    def test_order_follows_created_at_not_input_order(self) -> None:
        trades = [_trade("t2", 105, 2, offset=2), _trade("t1", 100, 1, offset=1)]
        [candle] = compute_tick_candles_from_trades(5, trades)
        assert candle.open_cents == 100
        assert candle.close_cents == 105

    def test_vwap_rounds_half_up(self) -> None:
        assert rounded_vwap(201, 2) == 101
        assert rounded_vwap(200, 3) == 67

    def test_one_candle_per_item(self) -> None:
        trades = [_trade("t1", 100, 1, item_id="b"), _trade("t2", 200, 1, item_id="a")]
        candles = compute_tick_candles_from_trades(5, trades)
        assert [c.item_id for c in candles] == ["a", "b"]

    def test_no_trades_no_candles(self) -> None:
        assert compute_tick_candles_from_trades(0, []) == []

    def test_invalid_trade_rejected(self) -> None:
        with pytest.raises(DomainInvariantError, match="quantity"):
            compute_tick_candles_from_trades(5, [_trade("t1", 100, 0)])

    def test_negative_tick_rejected(self) -> None:
        with pytest.raises(DomainInvariantError):
            compute_tick_candles_from_trades(-1, [])


class TestCandleService:
    @pytest.fixture
    def service(self, services: FakeServices) -> CandleService:
        return services.candle_service

    async def test_upsert_is_idempotent(
        self, service: CandleService, db: FakeSession, store: InMemoryStore
    ) -> None:
        store.trades.extend([_trade("t1", 100, 1), _trade("t2", 150, 1, offset=1)])
        first = await service.upsert_market_candles_for_tick(db, 5)
        second = await service.upsert_market_candles_for_tick(db, 5)
        assert first == second
        assert len(store.candles) == 1

    async def test_upsert_picks_up_late_trades(
        self, service: CandleService, db: FakeSession, store: InMemoryStore
    ) -> None:
        store.trades.append(_trade("t1", 100, 1))
        await service.upsert_market_candles_for_tick(db, 5)
        store.trades.append(_trade("t2", 300, 1, offset=1))
        await service.upsert_market_candles_for_tick(db, 5)
        assert store.candles[("item-1", REGION, 5)].close_cents == 300

    async def test_list_range_and_limit(
        self, service: CandleService, db: FakeSession, store: InMemoryStore
    ) -> None:
        for tick in range(1, 6):
            store.trades.append(_trade(f"t{tick}", 100 + tick, 1, tick=tick))
            await service.upsert_market_candles_for_tick(db, tick)
        candles = await service.list_candles(db, "item-1", REGION, from_tick=2, to_tick=4)
        assert [c.tick for c in candles] == [2, 3, 4]
        latest = await service.list_candles(db, "item-1", REGION, limit=2)
        assert [c.tick for c in latest] == [4, 5]

    async def test_list_validation(self, service: CandleService, db: FakeSession) -> None:
        with pytest.raises(DomainInvariantError, match="from_tick"):
            await service.list_candles(db, "item-1", REGION, from_tick=5, to_tick=2)
        with pytest.raises(DomainInvariantError, match="limit"):
            await service.list_candles(db, "item-1", REGION, limit=0)
        with pytest.raises(DomainInvariantError):
            await service.list_candles(db, "", REGION)

    async def test_limit_is_capped(self, service: CandleService, db: FakeSession) -> None:
        assert await service.list_candles(db, "item-1", REGION, limit=MAX_CANDLE_LIMIT * 10) == []
