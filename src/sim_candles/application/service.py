"""CandleService — persists and reads per-tick market candles."""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_candles.domain.candles import Candle, compute_tick_candles_from_trades
from src.sim_candles.domain.repository import CandleRepositoryProtocol
from src.sim_candles.infrastructure.persistence import CandleRepository
from src.sim_clearing.domain.repository import TradeRepositoryProtocol
from src.sim_clearing.infrastructure.trades_writer import TradeRepository
from src.sim_common.cents import validate_non_negative_int, validate_positive_int
from src.sim_common.errors import DomainInvariantError

logger = logging.getLogger(__name__)

MAX_CANDLE_LIMIT = 500
DEFAULT_CANDLE_LIMIT = 100


class CandleService:
    def __init__(
        self,
        trades: TradeRepositoryProtocol | None = None,
        candles: CandleRepositoryProtocol | None = None,
    ) -> None:
        self._trades: TradeRepositoryProtocol = trades or TradeRepository()
        self._candles: CandleRepositoryProtocol = candles or CandleRepository()

    async def upsert_market_candles_for_tick(self, db: AsyncSession, tick: int) -> list[Candle]:
        """Recompute the tick's candles from its trades. Runs in the caller's transaction."""
        validate_non_negative_int(tick, "tick")
        trades = await self._trades.list_for_tick(db, tick)
        candles = compute_tick_candles_from_trades(tick, trades)
        for candle in candles:
            await self._candles.upsert(db, candle)
        if candles:
            logger.debug("Upserted %d candle(s) for tick %d", len(candles), tick)
        return candles

    async def list_candles(
        self,
        db: AsyncSession,
        item_id: str,
        region_id: str,
        from_tick: int | None = None,
        to_tick: int | None = None,
        limit: int = DEFAULT_CANDLE_LIMIT,
    ) -> list[Candle]:
        if not item_id or not region_id:
            raise DomainInvariantError("item_id and region_id are required")
        if from_tick is not None:
            validate_non_negative_int(from_tick, "from_tick")
        if to_tick is not None:
            validate_non_negative_int(to_tick, "to_tick")
        if from_tick is not None and to_tick is not None and from_tick > to_tick:
            raise DomainInvariantError("from_tick must not exceed to_tick")
        validate_positive_int(limit, "limit")
        return await self._candles.list_range(
            db, item_id, region_id, from_tick, to_tick, min(limit, MAX_CANDLE_LIMIT)
        )
