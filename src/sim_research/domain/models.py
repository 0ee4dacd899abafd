from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class ResearchNode:
    id: str
    code: str
    cost_cash_cents: int
    duration_ticks: int
    prerequisite_ids: list[str] = field(default_factory=list)
    unlock_recipe_ids: list[str] = field(default_factory=list)


@dataclass
class ResearchJob:
    id: str
    company_id: str
    node_id: str
    cost_cash_cents: int
    tick_started: int
    tick_completes: int
    status: str = "RUNNING"  # RUNNING / COMPLETED / CANCELLED
    tick_closed: int | None = None
    created_at: datetime | None = None
