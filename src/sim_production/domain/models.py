from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class RecipeInput:
    item_id: str
    item_code: str
    quantity: int  # per run


@dataclass
class Recipe:
    id: str
    code: str
    output_item_id: str
    output_item_code: str
    output_quantity: int  # per run
    duration_ticks: int
    inputs: list[RecipeInput] = field(default_factory=list)


@dataclass
class ProductionJob:
    id: str
    company_id: str
    recipe_id: str
    runs: int
    started_tick: int
    due_tick: int
    status: str = "IN_PROGRESS"  # IN_PROGRESS / COMPLETED / CANCELLED
    completed_tick: int | None = None
    created_at: datetime | None = None
