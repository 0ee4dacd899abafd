"""ProductionRepository Protocol — recipes, unlocks and production jobs."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_production.domain.models import ProductionJob, Recipe


class ProductionRepositoryProtocol(Protocol):
    async def get_recipe(self, db: AsyncSession, recipe_id: str) -> Recipe | None: ...

    async def list_recipes(self, db: AsyncSession) -> list[Recipe]:
        """All recipes ordered by code, inputs ordered by item code."""
        ...

    async def is_recipe_unlocked(
        self, db: AsyncSession, company_id: str, recipe_id: str
    ) -> bool: ...

    async def insert_job(self, db: AsyncSession, job: ProductionJob) -> None: ...

    async def get_job(
        self, db: AsyncSession, job_id: str, *, for_update: bool = False
    ) -> ProductionJob | None: ...

    async def list_due_jobs(self, db: AsyncSession, tick: int) -> list[ProductionJob]:
        """IN_PROGRESS jobs with due_tick <= tick, ordered (due_tick, created_at)."""
        ...

    async def count_active_jobs(self, db: AsyncSession, company_id: str) -> int: ...

    async def close_job(
        self, db: AsyncSession, job_id: str, status: str, tick: int
    ) -> bool:
        """Move an IN_PROGRESS job to `status`; False if it was already closed."""
        ...
