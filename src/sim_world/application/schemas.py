# src/sim_world/application/schemas.py
from dataclasses import asdict
from datetime import datetime

from pydantic import BaseModel, Field

from src.sim_clearing.domain.global_invariants import InvariantScanResult
from src.sim_world.domain.models import WorldTickState


class WorldTickResponse(BaseModel):
    current_tick: int
    lock_version: int
    last_advanced_at: datetime | None = None

    @classmethod
    def from_state(cls, state: WorldTickState) -> "WorldTickResponse":
        return cls(
            current_tick=state.current_tick,
            lock_version=state.lock_version,
            last_advanced_at=state.last_advanced_at,
        )


class AdvanceTicksRequest(BaseModel):
    ticks: int = Field(default=1, gt=0)
    run_bots: bool = False
    expected_lock_version: int | None = Field(default=None, ge=0)
    execution_key: str | None = Field(default=None, min_length=1, max_length=64)


class AdvanceTicksResponse(BaseModel):
    tick_before: int
    tick_after: int
    advanced: int


class InvariantIssueResponse(BaseModel):
    code: str
    entity_type: str
    company_id: str
    item_id: str | None = None
    region_id: str | None = None
    message: str


class InvariantsResponse(BaseModel):
    issues: list[InvariantIssueResponse]
    has_violations: bool
    truncated: bool
    ledger_violations: list[str]
    global_violations: list[str]

    @classmethod
    def build(
        cls, scan: InvariantScanResult, ledger: list[str], global_: list[str]
    ) -> "InvariantsResponse":
        return cls(
            issues=[InvariantIssueResponse(**asdict(i)) for i in scan.issues],
            has_violations=scan.has_violations or bool(ledger) or bool(global_),
            truncated=scan.truncated,
            ledger_violations=ledger,
            global_violations=global_,
        )
