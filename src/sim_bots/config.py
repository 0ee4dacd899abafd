"""Bot runtime configuration: defaults, overrides and the Settings bridge."""
from dataclasses import dataclass, field, fields, replace
from typing import Any

from config.settings import Settings
from src.sim_common.cents import BPS_DENOMINATOR, is_int
from src.sim_common.errors import DomainInvariantError


@dataclass(frozen=True)
class BotRuntimeConfig:
    enabled: bool = False
    bot_count: int = 25
    item_codes: tuple[str, ...] = field(default_factory=tuple)
    spread_bps: int = 500
    max_notional_per_tick_cents: int = 50_000
    target_quantity_per_side: int = 5
    producer_max_jobs_per_tick: int = 1
    producer_cadence_ticks: int = 3
    producer_min_profit_bps: int = 0


DEFAULT_BOT_RUNTIME_CONFIG = BotRuntimeConfig()

# field -> (minimum, exclusive maximum or None)
_NUMERIC_BOUNDS: dict[str, tuple[int, int | None]] = {
    "bot_count": (0, None),
    "spread_bps": (0, BPS_DENOMINATOR),
    "max_notional_per_tick_cents": (0, None),
    "target_quantity_per_side": (0, None),
    "producer_max_jobs_per_tick": (1, None),
    "producer_cadence_ticks": (1, None),
    "producer_min_profit_bps": (0, None),
}


def normalize_item_codes(item_codes: Any) -> tuple[str, ...]:
    """Trim, drop blanks, dedupe and sort."""
    return tuple(sorted({code.strip() for code in item_codes if code.strip()}))


def resolve_bot_runtime_config(**overrides: Any) -> BotRuntimeConfig:
    known = {f.name for f in fields(BotRuntimeConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise DomainInvariantError(f"unknown bot config field(s): {', '.join(sorted(unknown))}")

    values = {k: v for k, v in overrides.items() if v is not None}
    if "item_codes" in values:
        values["item_codes"] = normalize_item_codes(values["item_codes"])
    if "enabled" in values and not isinstance(values["enabled"], bool):
        raise DomainInvariantError("enabled must be a boolean")
    for name, (minimum, upper) in _NUMERIC_BOUNDS.items():
        if name not in values:
            continue
        value = values[name]
        if not is_int(value) or value < minimum or (upper is not None and value >= upper):
            bound = f"in [{minimum}, {upper})" if upper is not None else f">= {minimum}"
            raise DomainInvariantError(f"{name} must be an integer {bound}")
    return replace(DEFAULT_BOT_RUNTIME_CONFIG, **values)


def bot_config_from_settings(settings: Settings) -> BotRuntimeConfig:
    return resolve_bot_runtime_config(
        enabled=settings.BOT_ENABLED,
        bot_count=settings.BOT_COUNT,
        item_codes=settings.bot_item_codes,
        spread_bps=settings.BOT_SPREAD_BPS,
        max_notional_per_tick_cents=settings.BOT_MAX_NOTIONAL_PER_TICK_CENTS,
        target_quantity_per_side=settings.BOT_TARGET_QUANTITY_PER_SIDE,
        producer_max_jobs_per_tick=settings.BOT_PRODUCER_MAX_JOBS_PER_TICK,
        producer_cadence_ticks=settings.BOT_PRODUCER_CADENCE_TICKS,
        producer_min_profit_bps=settings.BOT_PRODUCER_MIN_PROFIT_BPS,
    )
