from dataclasses import dataclass
from datetime import datetime


@dataclass
class BookOrder:
    """Resting order as seen by the matcher (one row locked FOR UPDATE)."""

    order_id: str
    company_id: str
    side: str  # BUY / SELL
    price: int  # unit_price_cents
    quantity: int  # remaining matchable quantity
    tick_placed: int
    created_at: datetime

    @property
    def time_key(self) -> tuple[int, datetime, str]:
        """Time priority: earlier tick, then earlier insert, then id."""
        return (self.tick_placed, self.created_at, self.order_id)


@dataclass
class TradeResult:
    """Single fill passed from matching to settlement."""

    buy_order_id: str
    sell_order_id: str
    buyer_id: str
    seller_id: str
    item_id: str
    region_id: str
    price: int  # resting order price
    quantity: int


@dataclass
class MatchPlan:
    """Planned fill between two resting orders (tick sweep)."""

    item_id: str
    region_id: str
    buy_order_id: str
    sell_order_id: str
    quantity: int
    unit_price_cents: int


@dataclass
class Trade:
    """Immutable persisted record of one match event."""

    id: str
    buy_order_id: str
    sell_order_id: str
    buyer_id: str
    seller_id: str
    item_id: str
    region_id: str
    tick: int
    unit_price_cents: int
    quantity: int
    total_price_cents: int
    created_at: datetime
