"""Reservation primitives for cash and inventory.

A reservation is a hold on part of a balance backing an open order or an
in-flight job. Available = total - reserved. These functions are pure: they
validate a transition and return the next state, and the persistence layer
applies it with a guarded UPDATE.

Cash lifecycle for a buy order:
  place   -> reserved += quantity * unit_price
  fill    -> cash -= qty * exec_price, reserved -= qty * order_price
  cancel  -> reserved -= remaining * order_price

Inventory lifecycle for a sell order or production input:
  reserve -> reserved += qty
  fill / consume -> quantity -= qty, reserved -= qty
  cancel / release -> reserved -= qty

Invariants: cash >= 0, 0 <= reserved_cash <= cash,
            quantity >= 0, 0 <= reserved_quantity <= quantity.
"""
from dataclasses import dataclass, replace

from src.sim_common.cents import is_int, validate_notional, validate_positive_int, validate_price
from src.sim_common.errors import (
    DomainInvariantError,
    InsufficientFundsError,
    InsufficientInventoryError,
)


@dataclass(frozen=True)
class CashState:
    cash_cents: int
    reserved_cash_cents: int


@dataclass(frozen=True)
class InventoryState:
    quantity: int
    reserved_quantity: int


def assert_cash_invariant(state: CashState) -> None:
    if state.cash_cents < 0:
        raise DomainInvariantError("cash cannot be negative")
    if state.reserved_cash_cents < 0:
        raise DomainInvariantError("reserved cash cannot be negative")
    if state.reserved_cash_cents > state.cash_cents:
        raise DomainInvariantError("reserved cash cannot exceed cash balance")


def assert_inventory_invariant(state: InventoryState) -> None:
    if not is_int(state.quantity):
        raise DomainInvariantError("quantity must be an integer")
    if not is_int(state.reserved_quantity):
        raise DomainInvariantError("reserved_quantity must be an integer")
    if state.quantity < 0:
        raise DomainInvariantError("inventory quantity cannot be negative")
    if state.reserved_quantity < 0:
        raise DomainInvariantError("reserved quantity cannot be negative")
    if state.reserved_quantity > state.quantity:
        raise DomainInvariantError("reserved quantity cannot exceed inventory quantity")


def available_cash(state: CashState) -> int:
    assert_cash_invariant(state)
    return state.cash_cents - state.reserved_cash_cents


def available_inventory(state: InventoryState) -> int:
    assert_inventory_invariant(state)
    return state.quantity - state.reserved_quantity


def buy_order_reserve_amount(quantity: int, unit_price_cents: int) -> int:
    validate_positive_int(quantity, "quantity")
    validate_price(unit_price_cents)
    return validate_notional(quantity, unit_price_cents)


def reserve_cash_for_buy_order(
    state: CashState, quantity: int, unit_price_cents: int
) -> CashState:
    amount = buy_order_reserve_amount(quantity, unit_price_cents)
    if available_cash(state) < amount:
        raise InsufficientFundsError(
            f"insufficient available cash for buy order reserve: "
            f"required {amount}, available {available_cash(state)}"
        )
    next_state = replace(state, reserved_cash_cents=state.reserved_cash_cents + amount)
    assert_cash_invariant(next_state)
    return next_state


def release_cash_reservation(state: CashState, amount: int) -> CashState:
    if not is_int(amount) or amount < 0:
        raise DomainInvariantError("release amount must be a non-negative integer")
    if state.reserved_cash_cents < amount:
        raise DomainInvariantError("reserved cash cannot become negative")
    next_state = replace(state, reserved_cash_cents=state.reserved_cash_cents - amount)
    assert_cash_invariant(next_state)
    return next_state


def spend_available_cash(state: CashState, amount: int) -> CashState:
    """Direct payment out of unreserved cash (research, fees)."""
    if not is_int(amount) or amount < 0:
        raise DomainInvariantError("payment amount must be a non-negative integer")
    if available_cash(state) < amount:
        raise InsufficientFundsError(
            f"insufficient available cash: required {amount}, available {available_cash(state)}"
        )
    next_state = replace(state, cash_cents=state.cash_cents - amount)
    assert_cash_invariant(next_state)
    return next_state


def reserve_inventory_for_sell_order(state: InventoryState, quantity: int) -> InventoryState:
    validate_positive_int(quantity, "quantity")
    if available_inventory(state) < quantity:
        raise InsufficientInventoryError(
            f"insufficient available inventory for sell order reserve: "
            f"required {quantity}, available {available_inventory(state)}"
        )
    next_state = replace(state, reserved_quantity=state.reserved_quantity + quantity)
    assert_inventory_invariant(next_state)
    return next_state


def release_inventory_reservation(state: InventoryState, quantity: int) -> InventoryState:
    if not is_int(quantity) or quantity < 0:
        raise DomainInvariantError("release quantity must be a non-negative integer")
    if state.reserved_quantity < quantity:
        raise DomainInvariantError("reserved inventory cannot become negative")
    next_state = replace(state, reserved_quantity=state.reserved_quantity - quantity)
    assert_inventory_invariant(next_state)
    return next_state


def consume_reserved_inventory(state: InventoryState, quantity: int) -> InventoryState:
    validate_positive_int(quantity, "quantity")
    if state.quantity < quantity:
        raise DomainInvariantError("inventory quantity cannot become negative")
    if state.reserved_quantity < quantity:
        raise DomainInvariantError("reserved inventory cannot become negative")
    next_state = InventoryState(
        quantity=state.quantity - quantity,
        reserved_quantity=state.reserved_quantity - quantity,
    )
    assert_inventory_invariant(next_state)
    return next_state
