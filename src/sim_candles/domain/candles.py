"""Per-tick OHLCV candles computed from trades.

Pure and deterministic: trades are grouped by (region, item) and ordered by
(created_at, id), so recomputing a tick from the same trades always yields the
same candles. VWAP rounds half up with integer arithmetic only.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable

from src.sim_common.cents import is_int, validate_non_negative_int
from src.sim_common.errors import DomainInvariantError
from src.sim_matching.domain.models import Trade


@dataclass(frozen=True)
class Candle:
    item_id: str
    region_id: str
    tick: int
    open_cents: int
    high_cents: int
    low_cents: int
    close_cents: int
    volume_qty: int
    trade_count: int
    vwap_cents: int


def _validate_trade(trade: Trade) -> None:
    if not isinstance(trade.item_id, str) or not trade.item_id.strip():
        raise DomainInvariantError("trade item_id is required")
    if not isinstance(trade.region_id, str) or not trade.region_id.strip():
        raise DomainInvariantError("trade region_id is required")
    if not is_int(trade.unit_price_cents) or trade.unit_price_cents <= 0:
        raise DomainInvariantError("trade unit_price_cents must be a positive integer")
    if not is_int(trade.quantity) or trade.quantity <= 0:
        raise DomainInvariantError("trade quantity must be a positive integer")


def rounded_vwap(notional: int, volume: int) -> int:
    return (notional + volume // 2) // volume


def compute_tick_candles_from_trades(tick: int, trades: Iterable[Trade]) -> list[Candle]:
    validate_non_negative_int(tick, "tick")
    groups: dict[tuple[str, str], list[Trade]] = defaultdict(list)
    for trade in trades:
        _validate_trade(trade)
        groups[(trade.region_id, trade.item_id)].append(trade)

    candles: list[Candle] = []
    for region_id, item_id in sorted(groups):
        group = sorted(groups[(region_id, item_id)], key=lambda t: (t.created_at, t.id))
        prices = [t.unit_price_cents for t in group]
        volume = sum(t.quantity for t in group)
        notional = sum(t.unit_price_cents * t.quantity for t in group)
        candles.append(
            Candle(
                item_id=item_id,
                region_id=region_id,
                tick=tick,
                open_cents=prices[0],
                high_cents=max(prices),
                low_cents=min(prices),
                close_cents=prices[-1],
                volume_qty=volume,
                trade_count=len(group),
                vwap_cents=rounded_vwap(notional, volume),
            )
        )
    return candles
