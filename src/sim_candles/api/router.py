# src/sim_candles/api/router.py
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_candles.application.service import (
    DEFAULT_CANDLE_LIMIT,
    MAX_CANDLE_LIMIT,
    CandleService,
)
from src.sim_common.database import get_db_session
from src.sim_common.response import ApiResponse, request_id_of, success_response

router = APIRouter(prefix="/market/candles", tags=["candles"])


@router.get("", response_model=ApiResponse)
async def list_candles(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    item_id: str = Query(..., min_length=1),
    region_id: str = Query(..., min_length=1),
    from_tick: int | None = Query(None, ge=0),
    to_tick: int | None = Query(None, ge=0),
    limit: int = Query(DEFAULT_CANDLE_LIMIT, ge=1, le=MAX_CANDLE_LIMIT),
) -> ApiResponse:
    candles = await CandleService().list_candles(
        db, item_id, region_id, from_tick, to_tick, limit
    )
    return success_response(
        {"candles": [asdict(c) for c in candles]}, request_id_of(request)
    )
