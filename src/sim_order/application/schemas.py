# src/sim_order/application/schemas.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from src.sim_matching.domain.models import Trade
from src.sim_order.domain.models import MarketOrder


class PlaceOrderRequest(BaseModel):
    company_id: str
    item_id: str
    region_id: str
    side: Literal["BUY", "SELL"]
    quantity: int = Field(gt=0)
    unit_price_cents: int = Field(gt=0)
    tick: int | None = Field(default=None, ge=0)

    @field_validator("company_id", "item_id", "region_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class CancelOrderRequest(BaseModel):
    tick: int | None = Field(default=None, ge=0)


class TradeResponse(BaseModel):
    id: str
    buy_order_id: str
    sell_order_id: str
    unit_price_cents: int
    quantity: int
    total_price_cents: int
    tick: int

    @classmethod
    def from_trade(cls, trade: Trade) -> "TradeResponse":
        return cls(
            id=trade.id,
            buy_order_id=trade.buy_order_id,
            sell_order_id=trade.sell_order_id,
            unit_price_cents=trade.unit_price_cents,
            quantity=trade.quantity,
            total_price_cents=trade.total_price_cents,
            tick=trade.tick,
        )


class OrderResponse(BaseModel):
    id: str
    company_id: str
    item_id: str
    region_id: str
    side: str
    status: str
    quantity: int
    remaining_quantity: int
    unit_price_cents: int
    reserved_cash_cents: int
    reserved_quantity: int
    tick_placed: int
    tick_closed: int | None = None
    created_at: datetime | None = None
    closed_at: datetime | None = None

    @classmethod
    def from_order(cls, order: MarketOrder) -> "OrderResponse":
        return cls(
            id=order.id,
            company_id=order.company_id,
            item_id=order.item_id,
            region_id=order.region_id,
            side=order.side,
            status=order.status,
            quantity=order.quantity,
            remaining_quantity=order.remaining_quantity,
            unit_price_cents=order.unit_price_cents,
            reserved_cash_cents=order.reserved_cash_cents,
            reserved_quantity=order.reserved_quantity,
            tick_placed=order.tick_placed,
            tick_closed=order.tick_closed,
            created_at=order.created_at,
            closed_at=order.closed_at,
        )


class PlaceOrderResponse(BaseModel):
    order: OrderResponse
    trades: list[TradeResponse]
