"""TradeRepository — append-only trades table."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_matching.domain.models import Trade

_INSERT_TRADE_SQL = text("""
    INSERT INTO trades (
        id, buy_order_id, sell_order_id,
        buyer_id, seller_id,
        item_id, region_id, tick,
        unit_price_cents, quantity, total_price_cents,
        created_at
    ) VALUES (
        :id, :buy_order_id, :sell_order_id,
        :buyer_id, :seller_id,
        :item_id, :region_id, :tick,
        :unit_price_cents, :quantity, :total_price_cents,
        :created_at
    )
""")

_TRADE_COLUMNS = """
    id, buy_order_id, sell_order_id, buyer_id, seller_id, item_id, region_id,
    tick, unit_price_cents, quantity, total_price_cents, created_at
"""

_LIST_FOR_TICK_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE tick = :tick
    ORDER BY created_at ASC, id ASC
""")

# Most recent trade per (region, item): highest tick, then latest insert.
_LATEST_PRICES_SQL = text("""
    SELECT DISTINCT ON (region_id, item_id) region_id, item_id, unit_price_cents
    FROM trades
    WHERE item_id = ANY(:item_ids)
    ORDER BY region_id, item_id, tick DESC, created_at DESC, id DESC
""")


def _row_to_trade(row: Any) -> Trade:
    return Trade(
        id=row.id,
        buy_order_id=row.buy_order_id,
        sell_order_id=row.sell_order_id,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        item_id=row.item_id,
        region_id=row.region_id,
        tick=row.tick,
        unit_price_cents=row.unit_price_cents,
        quantity=row.quantity,
        total_price_cents=row.total_price_cents,
        created_at=row.created_at,
    )


class TradeRepository:
    async def insert(self, db: AsyncSession, trade: Trade) -> None:
        """Insert one row into the trades table."""
        await db.execute(
            _INSERT_TRADE_SQL,
            {
                "id": trade.id,
                "buy_order_id": trade.buy_order_id,
                "sell_order_id": trade.sell_order_id,
                "buyer_id": trade.buyer_id,
                "seller_id": trade.seller_id,
                "item_id": trade.item_id,
                "region_id": trade.region_id,
                "tick": trade.tick,
                "unit_price_cents": trade.unit_price_cents,
                "quantity": trade.quantity,
                "total_price_cents": trade.total_price_cents,
                "created_at": trade.created_at,
            },
        )

    async def list_for_tick(self, db: AsyncSession, tick: int) -> list[Trade]:
        rows = (await db.execute(_LIST_FOR_TICK_SQL, {"tick": tick})).fetchall()
        return [_row_to_trade(r) for r in rows]

    async def latest_prices(
        self, db: AsyncSession, item_ids: list[str]
    ) -> dict[tuple[str, str], int]:
        """{(region_id, item_id): last unit price}."""
        if not item_ids:
            return {}
        rows = (await db.execute(_LATEST_PRICES_SQL, {"item_ids": item_ids})).fetchall()
        return {(r.region_id, r.item_id): r.unit_price_cents for r in rows}
