"""Integer arithmetic and validation helpers for cents-based accounting.

All prices, amounts and balances are int cents; no float or Decimal is ever used.
bool is rejected wherever an int is required. Values that reach the database are
bounded by MAX_CENTS, the largest BIGINT.
"""

from src.sim_common.errors import DomainInvariantError

BPS_DENOMINATOR = 10_000
MAX_CENTS = 2**63 - 1


def is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_positive_int(value: object, name: str) -> int:
    if not is_int(value) or value <= 0:  # type: ignore[operator]
        raise DomainInvariantError(f"{name} must be a positive integer")
    return value  # type: ignore[return-value]


def validate_non_negative_int(value: object, name: str) -> int:
    if not is_int(value) or value < 0:  # type: ignore[operator]
        raise DomainInvariantError(f"{name} must be a non-negative integer")
    return value  # type: ignore[return-value]


def validate_price(price: object, name: str = "unit_price_cents") -> int:
    """Prices are positive int cents up to MAX_CENTS."""
    if not is_int(price) or price <= 0:  # type: ignore[operator]
        raise DomainInvariantError(f"{name} must be greater than zero")
    if price > MAX_CENTS:  # type: ignore[operator]
        raise DomainInvariantError(f"{name} must be at most {MAX_CENTS}")
    return price  # type: ignore[return-value]


def validate_notional(quantity: int, unit_price_cents: int) -> int:
    """quantity x price must fit the BIGINT balance and reservation columns."""
    notional = quantity * unit_price_cents
    if notional > MAX_CENTS:
        raise DomainInvariantError(
            f"order notional {notional} exceeds the maximum of {MAX_CENTS} cents"
        )
    return notional

