"""Pure production rules: due checks, input requirements, input reservations
and profitability. No I/O; the service applies results with guarded UPDATEs."""
from collections.abc import Mapping

from src.sim_account.domain.reservations import (
    InventoryState,
    consume_reserved_inventory,
    release_inventory_reservation,
)
from src.sim_common.cents import (
    BPS_DENOMINATOR,
    validate_non_negative_int,
    validate_positive_int,
)
from src.sim_common.errors import DomainInvariantError
from src.sim_common.reference_prices import fallback_price_cents
from src.sim_production.domain.models import Recipe, RecipeInput


def is_production_job_due(current_tick: int, due_tick: int) -> bool:
    validate_non_negative_int(current_tick, "current_tick")
    validate_non_negative_int(due_tick, "due_tick")
    return current_tick >= due_tick


def calculate_recipe_input_requirements(
    inputs: list[RecipeInput], runs: int
) -> list[RecipeInput]:
    """Per-item quantities for `runs` runs, in recipe input order."""
    validate_positive_int(runs, "runs")
    requirements: list[RecipeInput] = []
    for recipe_input in inputs:
        validate_positive_int(recipe_input.quantity, "recipe input quantity")
        requirements.append(
            RecipeInput(
                item_id=recipe_input.item_id,
                item_code=recipe_input.item_code,
                quantity=recipe_input.quantity * runs,
            )
        )
    return requirements


def reserve_inventory_for_production(state: InventoryState, quantity: int) -> InventoryState:
    validate_positive_int(quantity, "quantity_to_reserve")
    if state.quantity < 0 or state.reserved_quantity < 0:
        raise DomainInvariantError("inventory values cannot be negative")
    if state.quantity - state.reserved_quantity < quantity:
        raise DomainInvariantError("insufficient input inventory for production")
    return InventoryState(
        quantity=state.quantity, reserved_quantity=state.reserved_quantity + quantity
    )


def release_reserved_inventory_for_production(
    state: InventoryState, quantity: int
) -> InventoryState:
    validate_positive_int(quantity, "quantity_to_release")
    return release_inventory_reservation(state, quantity)


def consume_reserved_inventory_for_production(
    state: InventoryState, quantity: int
) -> InventoryState:
    validate_positive_int(quantity, "quantity_to_consume")
    return consume_reserved_inventory(state, quantity)


def resolve_item_price_cents(
    item_id: str, item_code: str, reference_prices: Mapping[str, int] | None
) -> int:
    if reference_prices is not None and item_id in reference_prices:
        return reference_prices[item_id]
    return fallback_price_cents(item_code)


def is_recipe_profitable(
    recipe: Recipe, reference_prices: Mapping[str, int] | None, min_profit_bps: int = 0
) -> bool:
    """Output value must beat input cost by more than `min_profit_bps`."""
    validate_non_negative_int(min_profit_bps, "min_profit_bps")
    output_value = recipe.output_quantity * resolve_item_price_cents(
        recipe.output_item_id, recipe.output_item_code, reference_prices
    )
    input_cost = sum(
        i.quantity * resolve_item_price_cents(i.item_id, i.item_code, reference_prices)
        for i in recipe.inputs
    )
    if input_cost <= 0:
        return output_value > 0
    return output_value * BPS_DENOMINATOR > input_cost * (BPS_DENOMINATOR + min_profit_bps)
