# src/sim_order/domain/repository.py
"""OrderRepository Protocol — interface contract for persistence layer."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_order.domain.models import MarketOrder


class OrderRepositoryProtocol(Protocol):
    async def save(self, db: AsyncSession, order: MarketOrder) -> None: ...

    async def get_by_id(
        self, db: AsyncSession, order_id: str, *, for_update: bool = False
    ) -> MarketOrder | None: ...

    async def update_fill(self, db: AsyncSession, order: MarketOrder) -> None: ...

    async def lock_counter_orders(
        self, db: AsyncSession, item_id: str, region_id: str, side: str, limit_price: int
    ) -> list[MarketOrder]:
        """OPEN orders on `side` that cross `limit_price`, locked, in priority order."""
        ...

    async def lock_open_orders(self, db: AsyncSession) -> list[MarketOrder]: ...

    async def list_open_for_items(
        self, db: AsyncSession, item_ids: list[str]
    ) -> list[MarketOrder]: ...
