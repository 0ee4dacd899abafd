"""WorldStateRepository Protocol — interface contract for the tick clock row."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_world.domain.models import WorldTickState


class WorldStateRepositoryProtocol(Protocol):
    async def ensure(self, db: AsyncSession) -> WorldTickState:
        """Return the singleton row, inserting tick 0 when it does not exist."""
        ...

    async def get(self, db: AsyncSession) -> WorldTickState | None: ...

    async def compare_and_advance(
        self, db: AsyncSession, expected_lock_version: int, next_tick: int
    ) -> int:
        """Conditional update; returns the number of rows changed."""
        ...

    async def record_execution(
        self, db: AsyncSession, execution_key: str, tick_before: int, tick_after: int
    ) -> bool:
        """Insert-if-absent; True only when this call created the row."""
        ...
