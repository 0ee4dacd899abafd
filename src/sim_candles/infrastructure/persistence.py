"""CandleRepository — idempotent upsert keyed by (item_id, region_id, tick)."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_candles.domain.candles import Candle

_UPSERT_CANDLE_SQL = text("""
    INSERT INTO item_tick_candles (
        item_id, region_id, tick,
        open_cents, high_cents, low_cents, close_cents,
        volume_qty, trade_count, vwap_cents
    ) VALUES (
        :item_id, :region_id, :tick,
        :open_cents, :high_cents, :low_cents, :close_cents,
        :volume_qty, :trade_count, :vwap_cents
    )
    ON CONFLICT (item_id, region_id, tick) DO UPDATE SET
        open_cents = EXCLUDED.open_cents,
        high_cents = EXCLUDED.high_cents,
        low_cents = EXCLUDED.low_cents,
        close_cents = EXCLUDED.close_cents,
        volume_qty = EXCLUDED.volume_qty,
        trade_count = EXCLUDED.trade_count,
        vwap_cents = EXCLUDED.vwap_cents,
        updated_at = NOW()
""")

_LIST_CANDLES_SQL = text("""
    SELECT item_id, region_id, tick,
           open_cents, high_cents, low_cents, close_cents,
           volume_qty, trade_count, vwap_cents
    FROM item_tick_candles
    WHERE item_id = :item_id
      AND region_id = :region_id
      AND (CAST(:from_tick AS BIGINT) IS NULL OR tick >= :from_tick)
      AND (CAST(:to_tick AS BIGINT) IS NULL OR tick <= :to_tick)
    ORDER BY tick DESC
    LIMIT :limit
""")


def _row_to_candle(row: Any) -> Candle:
    return Candle(
        item_id=row.item_id,
        region_id=row.region_id,
        tick=row.tick,
        open_cents=row.open_cents,
        high_cents=row.high_cents,
        low_cents=row.low_cents,
        close_cents=row.close_cents,
        volume_qty=row.volume_qty,
        trade_count=row.trade_count,
        vwap_cents=row.vwap_cents,
    )


class CandleRepository:
    async def upsert(self, db: AsyncSession, candle: Candle) -> None:
        await db.execute(
            _UPSERT_CANDLE_SQL,
            {
                "item_id": candle.item_id,
                "region_id": candle.region_id,
                "tick": candle.tick,
                "open_cents": candle.open_cents,
                "high_cents": candle.high_cents,
                "low_cents": candle.low_cents,
                "close_cents": candle.close_cents,
                "volume_qty": candle.volume_qty,
                "trade_count": candle.trade_count,
                "vwap_cents": candle.vwap_cents,
            },
        )

    async def list_range(
        self,
        db: AsyncSession,
        item_id: str,
        region_id: str,
        from_tick: int | None,
        to_tick: int | None,
        limit: int,
    ) -> list[Candle]:
        """Newest `limit` candles in range, returned oldest first."""
        rows = (
            await db.execute(
                _LIST_CANDLES_SQL,
                {
                    "item_id": item_id,
                    "region_id": region_id,
                    "from_tick": from_tick,
                    "to_tick": to_tick,
                    "limit": limit,
                },
            )
        ).fetchall()
        return [_row_to_candle(r) for r in reversed(rows)]
