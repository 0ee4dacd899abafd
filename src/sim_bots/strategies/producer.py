"""Producer strategy: start profitable production on a per-company cadence."""
import zlib
from collections.abc import Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_bots.config import BotRuntimeConfig
from src.sim_common.cents import validate_non_negative_int, validate_positive_int
from src.sim_production.application.service import ProductionService


def stable_company_hash(company_id: str) -> int:
    return zlib.crc32(company_id.encode("utf-8"))


def is_producer_scheduled(company_id: str, tick: int, cadence_ticks: int) -> bool:
    """Spread producers across ticks; cadence 1 runs every tick."""
    validate_non_negative_int(tick, "tick")
    validate_positive_int(cadence_ticks, "cadence_ticks")
    if cadence_ticks == 1:
        return True
    return stable_company_hash(company_id) % cadence_ticks == tick % cadence_ticks


async def run_producer_bot(
    db: AsyncSession,
    production: ProductionService,
    company_id: str,
    tick: int,
    config: BotRuntimeConfig,
    reference_prices: Mapping[str, int],
) -> int:
    return await production.start_profitable_production_for_company(
        db,
        company_id,
        tick,
        max_jobs=config.producer_max_jobs_per_tick,
        reference_prices=reference_prices,
        min_profit_bps=config.producer_min_profit_bps,
    )
