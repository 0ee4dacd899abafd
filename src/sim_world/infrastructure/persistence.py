"""WorldStateRepository — raw SQL for the world_tick_state singleton.

The row is the optimistic lock for the whole simulation: an advance commits only
if `lock_version` still holds the value read at the start of the transaction.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_common.cents import validate_non_negative_int
from src.sim_world.domain.models import WORLD_STATE_ID, WorldTickState

_INSERT_IF_MISSING_SQL = text("""
    INSERT INTO world_tick_state (id, current_tick, lock_version)
    VALUES (:id, 0, 0)
    ON CONFLICT (id) DO NOTHING
""")

_GET_STATE_SQL = text("""
    SELECT id, current_tick, lock_version, last_advanced_at
    FROM world_tick_state
    WHERE id = :id
""")

_COMPARE_AND_ADVANCE_SQL = text("""
    UPDATE world_tick_state
    SET current_tick = :next_tick,
        lock_version = lock_version + 1,
        last_advanced_at = NOW()
    WHERE id = :id AND lock_version = :lock_version
""")

_RECORD_EXECUTION_SQL = text("""
    INSERT INTO tick_executions (execution_key, tick_before, tick_after)
    VALUES (:execution_key, :tick_before, :tick_after)
    ON CONFLICT (execution_key) DO NOTHING
""")


def _row_to_state(row: Any) -> WorldTickState:
    return WorldTickState(
        id=row.id,
        current_tick=row.current_tick,
        lock_version=row.lock_version,
        last_advanced_at=row.last_advanced_at,
    )


class WorldStateRepository:
    async def ensure(self, db: AsyncSession) -> WorldTickState:
        await db.execute(_INSERT_IF_MISSING_SQL, {"id": WORLD_STATE_ID})
        row = (await db.execute(_GET_STATE_SQL, {"id": WORLD_STATE_ID})).fetchone()
        return _row_to_state(row)

    async def get(self, db: AsyncSession) -> WorldTickState | None:
        row = (await db.execute(_GET_STATE_SQL, {"id": WORLD_STATE_ID})).fetchone()
        return _row_to_state(row) if row is not None else None

    async def compare_and_advance(
        self, db: AsyncSession, expected_lock_version: int, next_tick: int
    ) -> int:
        result = await db.execute(
            _COMPARE_AND_ADVANCE_SQL,
            {"id": WORLD_STATE_ID, "lock_version": expected_lock_version, "next_tick": next_tick},
        )
        return result.rowcount

    async def record_execution(
        self, db: AsyncSession, execution_key: str, tick_before: int, tick_after: int
    ) -> bool:
        """Claim `execution_key` for this tick; False when it was already used."""
        result = await db.execute(
            _RECORD_EXECUTION_SQL,
            {"execution_key": execution_key, "tick_before": tick_before, "tick_after": tick_after},
        )
        return result.rowcount == 1


async def resolve_tick(
    db: AsyncSession, tick: int | None, world: Any = None
) -> int:
    """Explicit tick if given, else the world's current tick (0 before the first advance)."""
    if tick is not None:
        return validate_non_negative_int(tick, "tick")
    state = await (world or WorldStateRepository()).get(db)
    return state.current_tick if state is not None else 0
