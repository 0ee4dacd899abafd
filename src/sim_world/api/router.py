# src/sim_world/api/router.py
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sim_bots.config import bot_config_from_settings
from src.sim_clearing.domain.global_invariants import (
    DEFAULT_SCAN_LIMIT,
    MAX_SCAN_LIMIT,
    scan_simulation_invariants,
    verify_global_invariants,
    verify_ledger_replay,
)
from src.sim_common.database import get_db_session
from src.sim_common.response import ApiResponse, request_id_of, success_response
from src.sim_world.application.schemas import (
    AdvanceTicksRequest,
    AdvanceTicksResponse,
    InvariantsResponse,
    WorldTickResponse,
)
from src.sim_world.application.tick_engine import (
    AdvanceTickOptions,
    TickEngine,
    get_tick_engine,
)

router = APIRouter(prefix="/world", tags=["world"])


@router.get("/tick", response_model=ApiResponse)
async def get_world_tick(
    request: Request,
    engine: Annotated[TickEngine, Depends(get_tick_engine)],
) -> ApiResponse:
    state = await engine.get_world_tick_state()
    return success_response(
        WorldTickResponse.from_state(state).model_dump(mode="json"), request_id_of(request)
    )


@router.post("/advance", response_model=ApiResponse)
async def advance_world(
    request: Request,
    req: AdvanceTicksRequest,
    engine: Annotated[TickEngine, Depends(get_tick_engine)],
) -> ApiResponse:
    result = await engine.advance_simulation_ticks(
        req.ticks,
        AdvanceTickOptions(
            run_bots=req.run_bots,
            bot_config=bot_config_from_settings(settings),
            expected_lock_version=req.expected_lock_version,
            execution_key=req.execution_key,
        ),
    )
    data = AdvanceTicksResponse(
        tick_before=result.tick_before, tick_after=result.tick_after, advanced=result.advanced
    )
    return success_response(data.model_dump(), request_id_of(request))


@router.get("/invariants", response_model=ApiResponse)
async def get_invariants(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(DEFAULT_SCAN_LIMIT, ge=1, le=MAX_SCAN_LIMIT),
) -> ApiResponse:
    scan = await scan_simulation_invariants(db, limit)
    ledger = await verify_ledger_replay(db)
    global_ = await verify_global_invariants(db)
    return success_response(
        InvariantsResponse.build(scan, ledger, global_).model_dump(), request_id_of(request)
    )
