"""ResearchRepository Protocol — research tree, per-company progress and jobs."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_research.domain.models import ResearchJob, ResearchNode


class ResearchRepositoryProtocol(Protocol):
    async def get_node(self, db: AsyncSession, node_id: str) -> ResearchNode | None: ...

    async def list_dependent_nodes(
        self, db: AsyncSession, node_id: str
    ) -> list[ResearchNode]:
        """Nodes that list `node_id` as a prerequisite, ordered by code."""
        ...

    async def completed_node_ids(self, db: AsyncSession, company_id: str) -> set[str]: ...

    async def get_status(
        self, db: AsyncSession, company_id: str, node_id: str
    ) -> str | None: ...

    async def upsert_status(
        self,
        db: AsyncSession,
        company_id: str,
        node_id: str,
        status: str,
        tick_started: int | None = None,
        tick_completes: int | None = None,
    ) -> None: ...

    async def refresh_open_status(
        self, db: AsyncSession, company_id: str, node_id: str, status: str
    ) -> None:
        """Upsert AVAILABLE/LOCKED, leaving RESEARCHING and COMPLETED rows alone."""
        ...

    async def get_running_job(
        self, db: AsyncSession, company_id: str, node_id: str, *, for_update: bool = False
    ) -> ResearchJob | None: ...

    async def insert_job(self, db: AsyncSession, job: ResearchJob) -> None: ...

    async def list_due_jobs(self, db: AsyncSession, tick: int) -> list[ResearchJob]:
        """RUNNING jobs with tick_completes <= tick, ordered (tick_completes, created_at)."""
        ...

    async def close_job(self, db: AsyncSession, job_id: str, status: str, tick: int) -> bool: ...

    async def unlock_recipe(self, db: AsyncSession, company_id: str, recipe_id: str) -> None: ...
