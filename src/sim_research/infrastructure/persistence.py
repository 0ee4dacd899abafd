"""ResearchRepository — raw SQL for research_nodes, company_research and research_jobs."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_research.domain.models import ResearchJob, ResearchNode

_NODE_COLUMNS = "n.id, n.code, n.cost_cash_cents, n.duration_ticks"

_GET_NODE_SQL = text(f"SELECT {_NODE_COLUMNS} FROM research_nodes n WHERE n.id = :id")

_LIST_DEPENDENTS_SQL = text(f"""
    SELECT {_NODE_COLUMNS}
    FROM research_nodes n
    JOIN research_prerequisites p ON p.node_id = n.id
    WHERE p.prerequisite_node_id = :node_id
    ORDER BY n.code ASC
""")

_LIST_PREREQUISITES_SQL = text("""
    SELECT node_id, prerequisite_node_id
    FROM research_prerequisites
    WHERE node_id = ANY(:node_ids)
    ORDER BY node_id ASC, prerequisite_node_id ASC
""")

_LIST_UNLOCKS_SQL = text("""
    SELECT node_id, recipe_id
    FROM research_unlock_recipes
    WHERE node_id = ANY(:node_ids)
    ORDER BY node_id ASC, recipe_id ASC
""")

_COMPLETED_NODES_SQL = text("""
    SELECT node_id FROM company_research
    WHERE company_id = :company_id AND status = 'COMPLETED'
""")

_GET_STATUS_SQL = text("""
    SELECT status FROM company_research
    WHERE company_id = :company_id AND node_id = :node_id
""")

_UPSERT_STATUS_SQL = text("""
    INSERT INTO company_research (company_id, node_id, status, tick_started, tick_completes)
    VALUES (:company_id, :node_id, :status, :tick_started, :tick_completes)
    ON CONFLICT (company_id, node_id) DO UPDATE
        SET status = EXCLUDED.status,
            tick_started = COALESCE(EXCLUDED.tick_started, company_research.tick_started),
            tick_completes = COALESCE(EXCLUDED.tick_completes, company_research.tick_completes),
            updated_at = NOW()
""")

_REFRESH_OPEN_STATUS_SQL = text("""
    INSERT INTO company_research (company_id, node_id, status)
    VALUES (:company_id, :node_id, :status)
    ON CONFLICT (company_id, node_id) DO UPDATE
        SET status = EXCLUDED.status, updated_at = NOW()
        WHERE company_research.status IN ('LOCKED', 'AVAILABLE')
""")

_JOB_COLUMNS = """
    id, company_id, node_id, status, cost_cash_cents,
    tick_started, tick_completes, tick_closed, created_at
"""

_GET_RUNNING_JOB_SQL = text(f"""
    SELECT {_JOB_COLUMNS} FROM research_jobs
    WHERE company_id = :company_id AND node_id = :node_id AND status = 'RUNNING'
""")

_GET_RUNNING_JOB_FOR_UPDATE_SQL = text(f"""
    SELECT {_JOB_COLUMNS} FROM research_jobs
    WHERE company_id = :company_id AND node_id = :node_id AND status = 'RUNNING'
    FOR UPDATE
""")

_INSERT_JOB_SQL = text("""
    INSERT INTO research_jobs
        (id, company_id, node_id, status, cost_cash_cents,
         tick_started, tick_completes, created_at)
    VALUES
        (:id, :company_id, :node_id, :status, :cost_cash_cents,
         :tick_started, :tick_completes, :created_at)
""")

_LIST_DUE_JOBS_SQL = text(f"""
    SELECT {_JOB_COLUMNS}
    FROM research_jobs
    WHERE status = 'RUNNING' AND tick_completes <= :tick
    ORDER BY tick_completes ASC, created_at ASC, id ASC
    FOR UPDATE
""")

_CLOSE_JOB_SQL = text("""
    UPDATE research_jobs
    SET status = :status, tick_closed = :tick, updated_at = NOW()
    WHERE id = :id AND status = 'RUNNING'
    RETURNING id
""")

_UNLOCK_RECIPE_SQL = text("""
    INSERT INTO company_recipes (company_id, recipe_id, is_unlocked)
    VALUES (:company_id, :recipe_id, TRUE)
    ON CONFLICT (company_id, recipe_id) DO UPDATE SET is_unlocked = TRUE
""")


def _row_to_job(row: Any) -> ResearchJob:
    return ResearchJob(
        id=row.id,
        company_id=row.company_id,
        node_id=row.node_id,
        status=row.status,
        cost_cash_cents=row.cost_cash_cents,
        tick_started=row.tick_started,
        tick_completes=row.tick_completes,
        tick_closed=row.tick_closed,
        created_at=row.created_at,
    )


class ResearchRepository:
    async def get_node(self, db: AsyncSession, node_id: str) -> ResearchNode | None:
        row = (await db.execute(_GET_NODE_SQL, {"id": node_id})).fetchone()
        if row is None:
            return None
        return (await self._hydrate(db, [row]))[0]

    async def list_dependent_nodes(
        self, db: AsyncSession, node_id: str
    ) -> list[ResearchNode]:
        rows = (await db.execute(_LIST_DEPENDENTS_SQL, {"node_id": node_id})).fetchall()
        return await self._hydrate(db, rows)

    async def _hydrate(self, db: AsyncSession, rows: Any) -> list[ResearchNode]:
        nodes = [
            ResearchNode(
                id=r.id,
                code=r.code,
                cost_cash_cents=r.cost_cash_cents,
                duration_ticks=r.duration_ticks,
            )
            for r in rows
        ]
        if not nodes:
            return nodes
        by_id = {n.id: n for n in nodes}
        params = {"node_ids": list(by_id)}
        for r in (await db.execute(_LIST_PREREQUISITES_SQL, params)).fetchall():
            by_id[r.node_id].prerequisite_ids.append(r.prerequisite_node_id)
        for r in (await db.execute(_LIST_UNLOCKS_SQL, params)).fetchall():
            by_id[r.node_id].unlock_recipe_ids.append(r.recipe_id)
        return nodes

    async def completed_node_ids(self, db: AsyncSession, company_id: str) -> set[str]:
        rows = (await db.execute(_COMPLETED_NODES_SQL, {"company_id": company_id})).fetchall()
        return {r.node_id for r in rows}

    async def get_status(
        self, db: AsyncSession, company_id: str, node_id: str
    ) -> str | None:
        row = (
            await db.execute(_GET_STATUS_SQL, {"company_id": company_id, "node_id": node_id})
        ).fetchone()
        return row.status if row is not None else None

    async def upsert_status(
        self,
        db: AsyncSession,
        company_id: str,
        node_id: str,
        status: str,
        tick_started: int | None = None,
        tick_completes: int | None = None,
    ) -> None:
        await db.execute(
            _UPSERT_STATUS_SQL,
            {
                "company_id": company_id,
                "node_id": node_id,
                "status": status,
                "tick_started": tick_started,
                "tick_completes": tick_completes,
            },
        )

    async def refresh_open_status(
        self, db: AsyncSession, company_id: str, node_id: str, status: str
    ) -> None:
        await db.execute(
            _REFRESH_OPEN_STATUS_SQL,
            {"company_id": company_id, "node_id": node_id, "status": status},
        )

    async def get_running_job(
        self, db: AsyncSession, company_id: str, node_id: str, *, for_update: bool = False
    ) -> ResearchJob | None:
        sql = _GET_RUNNING_JOB_FOR_UPDATE_SQL if for_update else _GET_RUNNING_JOB_SQL
        row = (
            await db.execute(sql, {"company_id": company_id, "node_id": node_id})
        ).fetchone()
        return _row_to_job(row) if row is not None else None

    async def insert_job(self, db: AsyncSession, job: ResearchJob) -> None:
        await db.execute(
            _INSERT_JOB_SQL,
            {
                "id": job.id,
                "company_id": job.company_id,
                "node_id": job.node_id,
                "status": job.status,
                "cost_cash_cents": job.cost_cash_cents,
                "tick_started": job.tick_started,
                "tick_completes": job.tick_completes,
                "created_at": job.created_at,
            },
        )

    async def list_due_jobs(self, db: AsyncSession, tick: int) -> list[ResearchJob]:
        rows = (await db.execute(_LIST_DUE_JOBS_SQL, {"tick": tick})).fetchall()
        return [_row_to_job(r) for r in rows]

    async def close_job(self, db: AsyncSession, job_id: str, status: str, tick: int) -> bool:
        row = (
            await db.execute(_CLOSE_JOB_SQL, {"id": job_id, "status": status, "tick": tick})
        ).fetchone()
        return row is not None

    async def unlock_recipe(self, db: AsyncSession, company_id: str, recipe_id: str) -> None:
        await db.execute(_UNLOCK_RECIPE_SQL, {"company_id": company_id, "recipe_id": recipe_id})
