"""Worker loop: advances the world on an interval under a Redis lease.

One iteration advances a batch of ticks, retrying lost lock_version races with
exponential backoff, then runs the invariant scan when the batch crossed a
check boundary and applies the configured violation policy.
"""
import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from src.sim_bots.config import (
    DEFAULT_BOT_RUNTIME_CONFIG,
    BotRuntimeConfig,
    bot_config_from_settings,
)
from src.sim_clearing.domain.global_invariants import (
    scan_simulation_invariants,
    verify_global_invariants,
)
from src.sim_common.database import async_session_factory
from src.sim_common.errors import OptimisticLockConflictError
from src.sim_worker.lease import SimulationLease
from src.sim_world.application.tick_engine import AdvanceTickOptions, TickEngine

logger = logging.getLogger(__name__)

MAX_BACKOFF_MS = 500


@dataclass(frozen=True)
class WorkerConfig:
    tick_interval_ms: int = 60_000
    simulation_speed: int = 1
    max_ticks_per_run: int = 10
    invariants_check_every_ticks: int = 10
    on_invariant_violation: str = "stop"
    bot_config: BotRuntimeConfig = DEFAULT_BOT_RUNTIME_CONFIG

    @classmethod
    def from_settings(cls, settings: Settings) -> "WorkerConfig":
        return cls(
            tick_interval_ms=settings.TICK_INTERVAL_MS,
            simulation_speed=settings.SIMULATION_SPEED,
            max_ticks_per_run=settings.MAX_TICKS_PER_RUN,
            invariants_check_every_ticks=settings.INVARIANTS_CHECK_EVERY_TICKS,
            on_invariant_violation=settings.ON_INVARIANT_VIOLATION,
            bot_config=bot_config_from_settings(settings),
        )


@dataclass
class WorkerControl:
    """In-process switches flipped by the invariant violation policy."""

    bots_paused: bool = False
    processing_stopped: bool = False
    last_violation_tick: int | None = None


@dataclass(frozen=True)
class WorkerIterationResult:
    ticks_advanced: int
    tick_before: int
    tick_after: int
    retries: int
    violations: list[str] = field(default_factory=list)


def resolve_tick_batch_size(config: WorkerConfig, ticks_override: int | None = None) -> int:
    requested = ticks_override if ticks_override is not None else config.simulation_speed
    if isinstance(requested, bool) or not isinstance(requested, int) or requested <= 0:
        requested = 1
    return min(requested, config.max_ticks_per_run)


def backoff_ms(attempt: int, initial_backoff_ms: int = 40) -> int:
    return min(MAX_BACKOFF_MS, initial_backoff_ms * 2**attempt)


def crossed_check_boundary(tick_before: int, tick_after: int, every: int) -> bool:
    if every <= 0:
        return False
    return tick_after // every > tick_before // every


async def collect_invariant_violations(db: AsyncSession, limit: int = 20) -> list[str]:
    """Row-level scan plus the global conservation checks, as messages."""
    scan = await scan_simulation_invariants(db, limit)
    violations = [issue.message for issue in scan.issues]
    violations.extend(await verify_global_invariants(db))
    return violations


def apply_violation_policy(
    policy: str, control: WorkerControl, tick: int, violations: list[str]
) -> None:
    control.last_violation_tick = tick
    logger.warning(
        "Invariant violations at tick %d (%d): %s", tick, len(violations), "; ".join(violations[:5])
    )
    if policy == "stop":
        control.bots_paused = True
        control.processing_stopped = True
        logger.error("Stopping simulation processing after invariant violation at tick %d", tick)
    elif policy == "pause_bots":
        control.bots_paused = True
        logger.warning("Pausing bots after invariant violation at tick %d", tick)


async def run_worker_iteration(
    engine: TickEngine,
    config: WorkerConfig,
    *,
    control: WorkerControl | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    ticks_override: int | None = None,
    max_conflict_retries: int = 4,
    initial_backoff_ms: int = 40,
    run_bots: bool = True,
    execution_key: str | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> WorkerIterationResult:
    control = control if control is not None else WorkerControl()
    ticks = resolve_tick_batch_size(config, ticks_override)
    options = AdvanceTickOptions(
        run_bots=run_bots and not control.bots_paused,
        bot_config=config.bot_config,
        # Shared by every retry so ticks committed before a conflict are not replayed.
        execution_key=execution_key or f"worker:{uuid.uuid4().hex}",
    )

    attempt = 0
    while True:
        try:
            result = await engine.advance_simulation_ticks(ticks, options)
            break
        except OptimisticLockConflictError:
            if attempt >= max_conflict_retries:
                raise
            delay = backoff_ms(attempt, initial_backoff_ms)
            logger.warning(
                "Tick advance conflict (attempt %d/%d), retrying in %dms",
                attempt + 1, max_conflict_retries, delay,
            )
            await sleep(delay / 1000)
            attempt += 1

    violations: list[str] = []
    if crossed_check_boundary(
        result.tick_before, result.tick_after, config.invariants_check_every_ticks
    ):
        async with (session_factory or async_session_factory)() as db:
            violations = await collect_invariant_violations(db)
        if violations:
            apply_violation_policy(
                config.on_invariant_violation, control, result.tick_after, violations
            )

    logger.info(
        "Worker iteration advanced %d tick(s) %d -> %d after %d retr%s",
        result.advanced, result.tick_before, result.tick_after,
        attempt, "y" if attempt == 1 else "ies",
    )
    return WorkerIterationResult(
        ticks_advanced=result.advanced,
        tick_before=result.tick_before,
        tick_after=result.tick_after,
        retries=attempt,
        violations=violations,
    )


class WorkerLoop:
    def __init__(
        self,
        engine: TickEngine,
        config: WorkerConfig,
        lease: SimulationLease | None = None,
        control: WorkerControl | None = None,
    ) -> None:
        self._engine = engine
        self._config = config
        self._lease = lease
        self.control = control or WorkerControl()
        self._stopping = asyncio.Event()

    def stop(self) -> None:
        self._stopping.set()

    async def run(self, max_iterations: int | None = None) -> int:
        """Loop until stopped, halted by policy or `max_iterations` ran. Returns iterations."""
        iterations = 0
        logger.info(
            "Worker started interval=%dms speed=%d max_ticks_per_run=%d",
            self._config.tick_interval_ms,
            self._config.simulation_speed,
            self._config.max_ticks_per_run,
        )
        try:
            while not self._stopping.is_set():
                if self.control.processing_stopped:
                    logger.error("Simulation processing is stopped; worker exiting")
                    break
                if self._lease is None or await self._lease.acquire():
                    try:
                        await run_worker_iteration(
                            self._engine, self._config, control=self.control
                        )
                    except OptimisticLockConflictError:
                        logger.error("Tick advance kept conflicting; giving up this iteration")
                    iterations += 1
                else:
                    logger.info("Lease held by another worker; skipping iteration")
                if max_iterations is not None and iterations >= max_iterations:
                    break
                try:
                    await asyncio.wait_for(
                        self._stopping.wait(), timeout=self._config.tick_interval_ms / 1000
                    )
                except TimeoutError:
                    pass
        finally:
            if self._lease is not None:
                await self._lease.release()
        logger.info("Worker stopped after %d iteration(s)", iterations)
        return iterations
