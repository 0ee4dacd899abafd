"""TickEngine — advances the world clock one transaction per tick.

Pipeline for the tick being produced (next_tick = current_tick + 1):
  1. bots (when requested and enabled)
  2. production completions
  3. research completions and recipe unlocks
  4. market matching sweep
  5. candles for the closing tick and for next_tick
then a compare-and-swap on world_tick_state.lock_version. A lost race raises
OptimisticLockConflictError and rolls the whole tick back; retrying is the
caller's job.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.sim_bots.config import DEFAULT_BOT_RUNTIME_CONFIG, BotRuntimeConfig
from src.sim_bots.runner import BotRunner
from src.sim_candles.application.service import CandleService
from src.sim_common.cents import is_int, validate_positive_int
from src.sim_common.database import async_session_factory
from src.sim_common.errors import DomainInvariantError, OptimisticLockConflictError
from src.sim_matching.application.service import get_matching_engine
from src.sim_matching.engine.engine import MatchingEngine
from src.sim_production.application.service import ProductionService
from src.sim_research.application.service import ResearchService
from src.sim_world.domain.models import WorldTickState
from src.sim_world.domain.repository import WorldStateRepositoryProtocol
from src.sim_world.infrastructure.persistence import WorldStateRepository

logger = logging.getLogger(__name__)

MAX_EXECUTION_KEY_LENGTH = 64
# tick_executions.execution_key; leaves room for the per-tick ":<i>" suffix.
RECORDED_EXECUTION_KEY_LENGTH = 96


@dataclass(frozen=True)
class AdvanceTickOptions:
    run_bots: bool = False
    bot_config: BotRuntimeConfig = DEFAULT_BOT_RUNTIME_CONFIG
    # Checked against the state read by the first tick of a batch only.
    expected_lock_version: int | None = None
    # Tick i of a batch is keyed "<execution_key>:<i>"; a key already recorded
    # skips its tick, so replaying a batch never advances the world twice.
    execution_key: str | None = None


@dataclass(frozen=True)
class TickAdvanceResult:
    tick_before: int
    tick_after: int
    advanced: int  # ticks committed by this call


def _validate_expected_lock_version(value: object) -> None:
    if value is not None and (not is_int(value) or value < 0):  # type: ignore[operator]
        raise DomainInvariantError("expected_lock_version must be a non-negative integer")


def normalize_execution_key(
    value: object, max_length: int = MAX_EXECUTION_KEY_LENGTH
) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise DomainInvariantError("execution_key must be a non-empty string when provided")
    key = value.strip()
    if len(key) > max_length:
        raise DomainInvariantError(f"execution_key must be at most {max_length} characters")
    return key


class TickEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        world: WorldStateRepositoryProtocol | None = None,
        production: ProductionService | None = None,
        research: ResearchService | None = None,
        matching: MatchingEngine | None = None,
        candles: CandleService | None = None,
        bots: BotRunner | None = None,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._world: WorldStateRepositoryProtocol = world or WorldStateRepository()
        self._production = production or ProductionService()
        self._research = research or ResearchService()
        self._matching = matching or get_matching_engine()
        self._candles = candles or CandleService()
        self._bots = bots or BotRunner()

    async def get_world_tick_state(self) -> WorldTickState:
        """Read-only; reports tick 0 / lock_version 0 before the row exists."""
        async with self._session_factory() as db:
            state = await self._world.get(db)
        return state if state is not None else WorldTickState()

    async def advance_simulation_ticks(
        self, ticks: int, options: AdvanceTickOptions | None = None
    ) -> TickAdvanceResult:
        """Advance `ticks` ticks sequentially, each in its own transaction.

        Ticks committed before a failure stay committed. With an execution key,
        re-running the same batch completes it without repeating committed ticks.
        """
        validate_positive_int(ticks, "ticks")
        options = options or AdvanceTickOptions()
        _validate_expected_lock_version(options.expected_lock_version)
        execution_key = normalize_execution_key(options.execution_key)

        tick_before: int | None = None
        tick_after = 0
        advanced = 0
        for i in range(ticks):
            async with self._session_factory() as db:
                result = await self.advance_simulation_tick(
                    db,
                    run_bots=options.run_bots,
                    bot_config=options.bot_config,
                    expected_lock_version=options.expected_lock_version if i == 0 else None,
                    execution_key=f"{execution_key}:{i}" if execution_key else None,
                )
            if tick_before is None:
                tick_before = result.tick_before
            tick_after = result.tick_after
            advanced += result.advanced
        return TickAdvanceResult(
            tick_before=tick_before if tick_before is not None else 0,
            tick_after=tick_after,
            advanced=advanced,
        )

    async def advance_simulation_tick(
        self,
        db: AsyncSession,
        *,
        run_bots: bool = False,
        bot_config: BotRuntimeConfig = DEFAULT_BOT_RUNTIME_CONFIG,
        expected_lock_version: int | None = None,
        execution_key: str | None = None,
    ) -> TickAdvanceResult:
        """One tick in `db`'s transaction; commits on success.

        A previously recorded `execution_key` returns advanced=0 and leaves the
        world untouched.
        """
        _validate_expected_lock_version(expected_lock_version)
        execution_key = normalize_execution_key(execution_key, RECORDED_EXECUTION_KEY_LENGTH)
        try:
            state = await self._world.ensure(db)
            current_tick = state.current_tick
            next_tick = current_tick + 1

            if execution_key is not None and not await self._world.record_execution(
                db, execution_key, current_tick, next_tick
            ):
                await db.rollback()
                logger.info("Tick execution %s already applied; skipping", execution_key)
                return TickAdvanceResult(current_tick, current_tick, 0)

            if expected_lock_version is not None and state.lock_version != expected_lock_version:
                raise OptimisticLockConflictError(
                    f"expected lock_version {expected_lock_version}, found {state.lock_version}"
                )

            if run_bots and bot_config.enabled:
                await self._bots.run_for_tick(db, next_tick, bot_config)
            await self._production.complete_due_production_jobs(db, next_tick)
            await self._research.complete_due_research_jobs(db, next_tick)
            await self._matching.run_matching_for_tick(db, next_tick)
            await self._candles.upsert_market_candles_for_tick(db, current_tick)
            await self._candles.upsert_market_candles_for_tick(db, next_tick)

            updated = await self._world.compare_and_advance(db, state.lock_version, next_tick)
            if updated != 1:
                raise OptimisticLockConflictError()
            await db.commit()
        except OptimisticLockConflictError:
            await db.rollback()
            logger.warning("Tick advance lost the lock_version race; rolled back")
            raise
        except Exception:
            await db.rollback()
            raise
        logger.info("Advanced world tick %d -> %d", current_tick, next_tick)
        return TickAdvanceResult(current_tick, next_tick, 1)


_tick_engine: TickEngine | None = None


def get_tick_engine() -> TickEngine:
    global _tick_engine  # noqa: PLW0603
    if _tick_engine is None:
        _tick_engine = TickEngine()
    return _tick_engine


async def advance_simulation_ticks(
    ticks: int, options: AdvanceTickOptions | None = None
) -> TickAdvanceResult:
    return await get_tick_engine().advance_simulation_ticks(ticks, options)


async def get_world_tick_state() -> WorldTickState:
    return await get_tick_engine().get_world_tick_state()
