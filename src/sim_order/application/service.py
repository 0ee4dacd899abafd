# src/sim_order/application/service.py
"""OrderApplicationService — one transaction per placement or cancellation."""
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_matching.application.service import get_matching_engine
from src.sim_matching.domain.models import Trade
from src.sim_matching.engine.engine import MatchingEngine
from src.sim_order.domain.models import MarketOrder
from src.sim_world.domain.repository import WorldStateRepositoryProtocol
from src.sim_world.infrastructure.persistence import WorldStateRepository, resolve_tick


class OrderApplicationService:
    def __init__(
        self,
        engine: MatchingEngine | None = None,
        world: WorldStateRepositoryProtocol | None = None,
    ) -> None:
        self._engine = engine or get_matching_engine()
        self._world: WorldStateRepositoryProtocol = world or WorldStateRepository()

    async def place_market_order(
        self,
        db: AsyncSession,
        company_id: str,
        item_id: str,
        region_id: str,
        side: str,
        quantity: int,
        unit_price_cents: int,
        tick: int | None = None,
    ) -> tuple[MarketOrder, list[Trade]]:
        try:
            resolved_tick = await resolve_tick(db, tick, self._world)
            order, trades = await self._engine.place_order(
                db,
                company_id=company_id,
                item_id=item_id,
                region_id=region_id,
                side=side,
                quantity=quantity,
                unit_price_cents=unit_price_cents,
                tick=resolved_tick,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return order, trades

    async def cancel_order(
        self, db: AsyncSession, order_id: str, tick: int | None = None
    ) -> MarketOrder:
        try:
            resolved_tick = await resolve_tick(db, tick, self._world)
            order = await self._engine.cancel_order(db, order_id, resolved_tick)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return order
