"""Pure bot planning.

Given snapshots of bot companies, decide which orders to place and which
companies try production this tick. No I/O and no randomness: equal inputs
produce equal plans, ordered by company code.
"""
from collections.abc import Mapping
from dataclasses import dataclass

from src.sim_bots.config import BotRuntimeConfig
from src.sim_bots.strategies.liquidity import (
    LiquidityBotState,
    LiquidityItemState,
    plan_liquidity_orders,
)
from src.sim_bots.strategies.producer import is_producer_scheduled
from src.sim_common.enums import BotStrategy
from src.sim_common.reference_prices import DEFAULT_REFERENCE_PRICES, fallback_price_cents

__all__ = [
    "DEFAULT_REFERENCE_PRICES",
    "BotCompanySnapshot",
    "BotExecutionPlan",
    "PlannedBotOrderPlacement",
    "infer_strategy",
    "plan_bot_actions",
    "resolve_reference_price",
]

RegionItemKey = tuple[str, str]  # (region_id, item_id)


@dataclass(frozen=True)
class BotCompanySnapshot:
    company_id: str
    company_code: str
    region_id: str
    strategy: str
    available_cash_cents: int
    items: tuple[LiquidityItemState, ...]


@dataclass(frozen=True)
class PlannedBotOrderPlacement:
    company_id: str
    item_id: str
    region_id: str
    side: str
    quantity: int
    unit_price_cents: int


@dataclass(frozen=True)
class BotExecutionPlan:
    order_placements: tuple[PlannedBotOrderPlacement, ...]
    producer_company_ids: tuple[str, ...]


def infer_strategy(company_code: str, specialization: str | None = None) -> str:
    """Stored specialization wins; otherwise fall back to the TRADER naming convention."""
    if specialization in (BotStrategy.LIQUIDITY.value, BotStrategy.PRODUCER.value):
        return specialization
    if "TRADER" in company_code:
        return BotStrategy.LIQUIDITY.value
    return BotStrategy.PRODUCER.value


def resolve_reference_price(
    item_code: str,
    region_id: str,
    item_id: str,
    best_bids: Mapping[RegionItemKey, int],
    best_asks: Mapping[RegionItemKey, int],
    latest_trades: Mapping[RegionItemKey, int],
) -> int:
    """Last trade, then book midpoint (or the one side quoted), then static table, then 100."""
    key = (region_id, item_id)
    if key in latest_trades:
        return latest_trades[key]
    bid = best_bids.get(key)
    ask = best_asks.get(key)
    if bid is not None and ask is not None:
        return (bid + ask) // 2
    if bid is not None:
        return bid
    if ask is not None:
        return ask
    return fallback_price_cents(item_code)


def plan_bot_actions(
    companies: list[BotCompanySnapshot], config: BotRuntimeConfig, tick: int
) -> BotExecutionPlan:
    placements: list[PlannedBotOrderPlacement] = []
    producers: list[str] = []

    for company in sorted(companies, key=lambda c: (c.company_code, c.company_id)):
        if company.strategy == BotStrategy.PRODUCER.value:
            if is_producer_scheduled(company.company_id, tick, config.producer_cadence_ticks):
                producers.append(company.company_id)
            continue

        planned = plan_liquidity_orders(
            LiquidityBotState(
                available_cash_cents=company.available_cash_cents, items=company.items
            ),
            config,
        )
        placements.extend(
            PlannedBotOrderPlacement(
                company_id=company.company_id,
                item_id=order.item_id,
                region_id=company.region_id,
                side=order.side,
                quantity=order.quantity,
                unit_price_cents=order.unit_price_cents,
            )
            for order in planned
        )

    return BotExecutionPlan(
        order_placements=tuple(placements), producer_company_ids=tuple(producers)
    )
