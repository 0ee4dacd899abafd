"""Liquidity strategy: quote a buy/sell pair around each item's reference price."""
from dataclasses import dataclass

from src.sim_bots.config import BotRuntimeConfig
from src.sim_common.cents import BPS_DENOMINATOR
from src.sim_common.enums import OrderSide


@dataclass(frozen=True)
class LiquidityItemState:
    item_id: str
    item_code: str
    reference_price_cents: int
    available_inventory: int
    has_open_buy_order: bool
    has_open_sell_order: bool


@dataclass(frozen=True)
class LiquidityBotState:
    available_cash_cents: int
    items: tuple[LiquidityItemState, ...]


@dataclass(frozen=True)
class PlannedLiquidityOrder:
    item_id: str
    side: str
    quantity: int
    unit_price_cents: int


def buy_quote(reference_price_cents: int, spread_bps: int) -> int:
    return max(1, reference_price_cents * (BPS_DENOMINATOR - spread_bps) // BPS_DENOMINATOR)


def sell_quote(reference_price_cents: int, spread_bps: int) -> int:
    return max(1, reference_price_cents * (BPS_DENOMINATOR + spread_bps) // BPS_DENOMINATOR)


def _cap_by_notional(max_notional_cents: int, unit_price_cents: int, desired: int) -> int:
    if unit_price_cents <= 0:
        return 0
    return max(0, min(desired, max_notional_cents // unit_price_cents))


def plan_liquidity_orders(
    state: LiquidityBotState, config: BotRuntimeConfig
) -> list[PlannedLiquidityOrder]:
    if config.max_notional_per_tick_cents <= 0 or config.target_quantity_per_side <= 0:
        return []

    orders: list[PlannedLiquidityOrder] = []
    remaining_notional = config.max_notional_per_tick_cents
    remaining_cash = state.available_cash_cents

    for item in sorted(state.items, key=lambda i: i.item_code):
        if remaining_notional <= 0:
            break
        buy_price = buy_quote(item.reference_price_cents, config.spread_bps)
        sell_price = sell_quote(item.reference_price_cents, config.spread_bps)

        if not item.has_open_buy_order:
            desired = min(config.target_quantity_per_side, max(0, remaining_cash) // buy_price)
            quantity = _cap_by_notional(remaining_notional, buy_price, desired)
            if quantity > 0:
                orders.append(
                    PlannedLiquidityOrder(item.item_id, OrderSide.BUY.value, quantity, buy_price)
                )
                remaining_notional -= quantity * buy_price
                remaining_cash -= quantity * buy_price

        if remaining_notional <= 0 or item.has_open_sell_order:
            continue

        desired = min(config.target_quantity_per_side, item.available_inventory)
        quantity = _cap_by_notional(remaining_notional, sell_price, desired)
        if quantity > 0:
            orders.append(
                PlannedLiquidityOrder(item.item_id, OrderSide.SELL.value, quantity, sell_price)
            )
            remaining_notional -= quantity * sell_price

    return orders
