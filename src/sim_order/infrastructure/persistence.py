# src/sim_order/infrastructure/persistence.py
"""OrderRepository — raw SQL persistence implementation."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_order.domain.models import MarketOrder

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    id, company_id, item_id, region_id, side, status,
    quantity, remaining_quantity, unit_price_cents,
    reserved_cash_cents, reserved_quantity,
    tick_placed, tick_closed, created_at, closed_at
"""

_INSERT_ORDER_SQL = text("""
    INSERT INTO market_orders (id, company_id, item_id, region_id, side, status,
        quantity, remaining_quantity, unit_price_cents,
        reserved_cash_cents, reserved_quantity, tick_placed, created_at)
    VALUES (:id, :company_id, :item_id, :region_id, :side, :status,
        :quantity, :remaining_quantity, :unit_price_cents,
        :reserved_cash_cents, :reserved_quantity, :tick_placed, :created_at)
""")

_UPDATE_FILL_SQL = text("""
    UPDATE market_orders
    SET status = :status,
        remaining_quantity = :remaining_quantity,
        reserved_cash_cents = :reserved_cash_cents,
        reserved_quantity = :reserved_quantity,
        tick_closed = :tick_closed,
        closed_at = :closed_at,
        updated_at = NOW()
    WHERE id = :id
""")

_GET_ORDER_BY_ID_SQL = text(f"SELECT {_SELECT_COLUMNS} FROM market_orders WHERE id = :id")

_GET_ORDER_FOR_UPDATE_SQL = text(
    f"SELECT {_SELECT_COLUMNS} FROM market_orders WHERE id = :id FOR UPDATE"
)

# Priority order: best price, then tick_placed, created_at, id.
_LOCK_CROSSING_SELLS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM market_orders
    WHERE item_id = :item_id AND region_id = :region_id
      AND side = 'SELL' AND status = 'OPEN'
      AND unit_price_cents <= :limit_price
    ORDER BY unit_price_cents ASC, tick_placed ASC, created_at ASC, id ASC
    FOR UPDATE
""")

_LOCK_CROSSING_BUYS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM market_orders
    WHERE item_id = :item_id AND region_id = :region_id
      AND side = 'BUY' AND status = 'OPEN'
      AND unit_price_cents >= :limit_price
    ORDER BY unit_price_cents DESC, tick_placed ASC, created_at ASC, id ASC
    FOR UPDATE
""")

_LOCK_OPEN_ORDERS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM market_orders
    WHERE status = 'OPEN'
    ORDER BY region_id ASC, item_id ASC, id ASC
    FOR UPDATE
""")

_LIST_OPEN_FOR_ITEMS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM market_orders
    WHERE status = 'OPEN' AND item_id = ANY(:item_ids)
    ORDER BY id ASC
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> MarketOrder:
    """Convert a DB result row to a MarketOrder domain object."""
    return MarketOrder(
        id=row.id,
        company_id=row.company_id,
        item_id=row.item_id,
        region_id=row.region_id,
        side=row.side,
        status=row.status,
        quantity=row.quantity,
        remaining_quantity=row.remaining_quantity,
        unit_price_cents=row.unit_price_cents,
        reserved_cash_cents=row.reserved_cash_cents,
        reserved_quantity=row.reserved_quantity,
        tick_placed=row.tick_placed,
        tick_closed=row.tick_closed,
        created_at=row.created_at,
        closed_at=row.closed_at,
    )


class OrderRepository:
    async def save(self, db: AsyncSession, order: MarketOrder) -> None:
        await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "company_id": order.company_id,
                "item_id": order.item_id,
                "region_id": order.region_id,
                "side": order.side,
                "status": order.status,
                "quantity": order.quantity,
                "remaining_quantity": order.remaining_quantity,
                "unit_price_cents": order.unit_price_cents,
                "reserved_cash_cents": order.reserved_cash_cents,
                "reserved_quantity": order.reserved_quantity,
                "tick_placed": order.tick_placed,
                "created_at": order.created_at,
            },
        )

    async def get_by_id(
        self, db: AsyncSession, order_id: str, *, for_update: bool = False
    ) -> MarketOrder | None:
        sql = _GET_ORDER_FOR_UPDATE_SQL if for_update else _GET_ORDER_BY_ID_SQL
        row = (await db.execute(sql, {"id": order_id})).fetchone()
        return _row_to_order(row) if row is not None else None

    async def update_fill(self, db: AsyncSession, order: MarketOrder) -> None:
        await db.execute(
            _UPDATE_FILL_SQL,
            {
                "id": order.id,
                "status": order.status,
                "remaining_quantity": order.remaining_quantity,
                "reserved_cash_cents": order.reserved_cash_cents,
                "reserved_quantity": order.reserved_quantity,
                "tick_closed": order.tick_closed,
                "closed_at": order.closed_at,
            },
        )

    async def lock_counter_orders(
        self, db: AsyncSession, item_id: str, region_id: str, side: str, limit_price: int
    ) -> list[MarketOrder]:
        sql = _LOCK_CROSSING_SELLS_SQL if side == "SELL" else _LOCK_CROSSING_BUYS_SQL
        rows = (
            await db.execute(
                sql, {"item_id": item_id, "region_id": region_id, "limit_price": limit_price}
            )
        ).fetchall()
        return [_row_to_order(r) for r in rows]

    async def lock_open_orders(self, db: AsyncSession) -> list[MarketOrder]:
        rows = (await db.execute(_LOCK_OPEN_ORDERS_SQL)).fetchall()
        return [_row_to_order(r) for r in rows]

    async def list_open_for_items(
        self, db: AsyncSession, item_ids: list[str]
    ) -> list[MarketOrder]:
        if not item_ids:
            return []
        rows = (await db.execute(_LIST_OPEN_FOR_ITEMS_SQL, {"item_ids": item_ids})).fetchall()
        return [_row_to_order(r) for r in rows]
