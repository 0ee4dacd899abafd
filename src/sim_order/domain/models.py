"""MarketOrder domain model — pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class MarketOrder:
    id: str
    company_id: str
    item_id: str
    region_id: str
    side: str  # BUY / SELL
    quantity: int  # original order size
    unit_price_cents: int
    tick_placed: int
    status: str = "OPEN"  # OPEN / FILLED / CANCELLED
    # Reservation backing the unfilled part
    reserved_cash_cents: int = 0  # BUY: remaining_quantity * unit_price_cents
    reserved_quantity: int = 0  # SELL: remaining_quantity
    remaining_quantity: int = field(default=-1)
    tick_closed: int | None = None
    created_at: datetime | None = None
    closed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.remaining_quantity < 0:
            self.remaining_quantity = self.quantity

    @property
    def filled_quantity(self) -> int:
        return self.quantity - self.remaining_quantity

    @property
    def is_open(self) -> bool:
        return self.status == "OPEN"
