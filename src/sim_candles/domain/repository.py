from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_candles.domain.candles import Candle


class CandleRepositoryProtocol(Protocol):
    async def upsert(self, db: AsyncSession, candle: Candle) -> None: ...

    async def list_range(
        self,
        db: AsyncSession,
        item_id: str,
        region_id: str,
        from_tick: int | None,
        to_tick: int | None,
        limit: int,
    ) -> list[Candle]: ...
