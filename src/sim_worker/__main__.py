"""Worker CLI.

    python -m src.sim_worker run            # loop on TICK_INTERVAL_MS under the lease
    python -m src.sim_worker once --ticks 5 # one iteration, no lease
"""
# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import asyncio
import logging
import signal

import typer

from config.settings import settings
from src.sim_common.database import engine as db_engine
from src.sim_common.redis_client import close_redis, get_redis
from src.sim_worker.lease import SimulationLease
from src.sim_worker.worker_loop import WorkerConfig, WorkerLoop, run_worker_iteration
from src.sim_world.application.tick_engine import get_tick_engine

app = typer.Typer(help="Economy simulation worker")


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _run(max_iterations: int | None) -> None:
    redis = await get_redis()
    lease = SimulationLease(redis, settings.WORKER_LEASE_NAME, settings.WORKER_LEASE_TTL_MS)
    loop = WorkerLoop(get_tick_engine(), WorkerConfig.from_settings(settings), lease=lease)

    running = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        running.add_signal_handler(sig, loop.stop)
    try:
        await loop.run(max_iterations=max_iterations)
    finally:
        await close_redis()
        await db_engine.dispose()


async def _once(ticks: int | None, run_bots: bool, execution_key: str | None) -> None:
    try:
        result = await run_worker_iteration(
            get_tick_engine(),
            WorkerConfig.from_settings(settings),
            ticks_override=ticks,
            run_bots=run_bots,
            execution_key=execution_key,
        )
    finally:
        await db_engine.dispose()
    typer.echo(
        f"advanced {result.ticks_advanced} tick(s): {result.tick_before} -> {result.tick_after}"
        f" (retries={result.retries}, violations={len(result.violations)})"
    )
    if result.violations:
        raise typer.Exit(1)


@app.command()
def run(
    max_iterations: int | None = typer.Option(
        None, "--max-iterations", min=1, help="Stop after this many iterations"
    ),
) -> None:
    """Advance the world every TICK_INTERVAL_MS until interrupted."""
    _configure_logging()
    asyncio.run(_run(max_iterations))


@app.command()
def once(
    ticks: int | None = typer.Option(None, "--ticks", min=1, help="Override SIMULATION_SPEED"),
    run_bots: bool = typer.Option(True, "--bots/--no-bots", help="Run bots during the advance"),
    execution_key: str | None = typer.Option(
        None, "--execution-key", help="Replaying the same key never advances twice"
    ),
) -> None:
    """Run a single worker iteration and exit."""
    _configure_logging()
    asyncio.run(_once(ticks, run_bots, execution_key))


if __name__ == "__main__":
    app()
