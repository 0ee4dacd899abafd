# src/sim_order/api/router.py
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_common.database import get_db_session
from src.sim_common.response import ApiResponse, request_id_of, success_response
from src.sim_order.application.schemas import (
    CancelOrderRequest,
    OrderResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    TradeResponse,
)
from src.sim_order.application.service import OrderApplicationService

router = APIRouter(prefix="/market/orders", tags=["orders"])


def get_order_service() -> OrderApplicationService:
    return OrderApplicationService()


@router.post("", response_model=ApiResponse, status_code=201)
async def place_order(
    request: Request,
    req: PlaceOrderRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderApplicationService, Depends(get_order_service)],
) -> ApiResponse:
    order, trades = await service.place_market_order(
        db,
        company_id=req.company_id,
        item_id=req.item_id,
        region_id=req.region_id,
        side=req.side,
        quantity=req.quantity,
        unit_price_cents=req.unit_price_cents,
        tick=req.tick,
    )
    data = PlaceOrderResponse(
        order=OrderResponse.from_order(order),
        trades=[TradeResponse.from_trade(t) for t in trades],
    )
    return success_response(data.model_dump(mode="json"), request_id_of(request))


@router.post("/{order_id}/cancel", response_model=ApiResponse)
async def cancel_order(
    request: Request,
    order_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderApplicationService, Depends(get_order_service)],
    req: CancelOrderRequest | None = None,
) -> ApiResponse:
    order = await service.cancel_order(db, order_id, req.tick if req else None)
    return success_response(
        OrderResponse.from_order(order).model_dump(mode="json"), request_id_of(request)
    )
