"""Account domain models — pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime


@dataclass
class Company:
    id: str
    code: str
    region_id: str
    cash_cents: int
    reserved_cash_cents: int = 0
    is_player: bool = False
    specialization: str | None = None  # LIQUIDITY / PRODUCER, None = infer from code
    initial_cash_cents: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def available_cash_cents(self) -> int:
        return self.cash_cents - self.reserved_cash_cents


@dataclass
class Inventory:
    company_id: str
    item_id: str
    region_id: str
    quantity: int = 0
    reserved_quantity: int = 0

    @property
    def available_quantity(self) -> int:
        return self.quantity - self.reserved_quantity


@dataclass
class Item:
    id: str
    code: str
    name: str = ""


@dataclass
class LedgerEntry:
    id: str
    company_id: str
    tick: int
    entry_type: str
    delta_cash_cents: int
    delta_reserved_cash_cents: int
    balance_after_cents: int
    reference_type: str | None = None
    reference_id: str | None = None
    created_at: datetime | None = None
