"""ProductionRepository — raw SQL for recipes, company_recipes and production_jobs."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_production.domain.models import ProductionJob, Recipe, RecipeInput

_RECIPE_COLUMNS = """
    r.id, r.code, r.output_item_id, i.code AS output_item_code,
    r.output_quantity, r.duration_ticks
"""

_GET_RECIPE_SQL = text(f"""
    SELECT {_RECIPE_COLUMNS}
    FROM recipes r JOIN items i ON i.id = r.output_item_id
    WHERE r.id = :id
""")

_LIST_RECIPES_SQL = text(f"""
    SELECT {_RECIPE_COLUMNS}
    FROM recipes r JOIN items i ON i.id = r.output_item_id
    ORDER BY r.code ASC
""")

_LIST_INPUTS_SQL = text("""
    SELECT ri.recipe_id, ri.item_id, i.code AS item_code, ri.quantity
    FROM recipe_inputs ri JOIN items i ON i.id = ri.item_id
    WHERE ri.recipe_id = ANY(:recipe_ids)
    ORDER BY ri.recipe_id ASC, i.code ASC
""")

_IS_UNLOCKED_SQL = text("""
    SELECT is_unlocked FROM company_recipes
    WHERE company_id = :company_id AND recipe_id = :recipe_id
""")

_JOB_COLUMNS = """
    id, company_id, recipe_id, status, runs,
    started_tick, due_tick, completed_tick, created_at
"""

_INSERT_JOB_SQL = text("""
    INSERT INTO production_jobs
        (id, company_id, recipe_id, status, runs, started_tick, due_tick, created_at)
    VALUES
        (:id, :company_id, :recipe_id, :status, :runs, :started_tick, :due_tick, :created_at)
""")

_GET_JOB_SQL = text(f"SELECT {_JOB_COLUMNS} FROM production_jobs WHERE id = :id")

_GET_JOB_FOR_UPDATE_SQL = text(
    f"SELECT {_JOB_COLUMNS} FROM production_jobs WHERE id = :id FOR UPDATE"
)

_LIST_DUE_JOBS_SQL = text(f"""
    SELECT {_JOB_COLUMNS}
    FROM production_jobs
    WHERE status = 'IN_PROGRESS' AND due_tick <= :tick
    ORDER BY due_tick ASC, created_at ASC, id ASC
    FOR UPDATE
""")

_COUNT_ACTIVE_JOBS_SQL = text("""
    SELECT COUNT(*) FROM production_jobs
    WHERE company_id = :company_id AND status = 'IN_PROGRESS'
""")

# Status guard makes completion and cancellation happen at most once.
_CLOSE_JOB_SQL = text("""
    UPDATE production_jobs
    SET status = :status, completed_tick = :tick, updated_at = NOW()
    WHERE id = :id AND status = 'IN_PROGRESS'
    RETURNING id
""")


def _row_to_recipe(row: Any, inputs: list[RecipeInput]) -> Recipe:
    return Recipe(
        id=row.id,
        code=row.code,
        output_item_id=row.output_item_id,
        output_item_code=row.output_item_code,
        output_quantity=row.output_quantity,
        duration_ticks=row.duration_ticks,
        inputs=inputs,
    )


def _row_to_job(row: Any) -> ProductionJob:
    return ProductionJob(
        id=row.id,
        company_id=row.company_id,
        recipe_id=row.recipe_id,
        status=row.status,
        runs=row.runs,
        started_tick=row.started_tick,
        due_tick=row.due_tick,
        completed_tick=row.completed_tick,
        created_at=row.created_at,
    )


class ProductionRepository:
    async def get_recipe(self, db: AsyncSession, recipe_id: str) -> Recipe | None:
        row = (await db.execute(_GET_RECIPE_SQL, {"id": recipe_id})).fetchone()
        if row is None:
            return None
        inputs = await self._load_inputs(db, [recipe_id])
        return _row_to_recipe(row, inputs.get(recipe_id, []))

    async def list_recipes(self, db: AsyncSession) -> list[Recipe]:
        rows = (await db.execute(_LIST_RECIPES_SQL)).fetchall()
        if not rows:
            return []
        inputs = await self._load_inputs(db, [r.id for r in rows])
        return [_row_to_recipe(r, inputs.get(r.id, [])) for r in rows]

    async def _load_inputs(
        self, db: AsyncSession, recipe_ids: list[str]
    ) -> dict[str, list[RecipeInput]]:
        rows = (await db.execute(_LIST_INPUTS_SQL, {"recipe_ids": recipe_ids})).fetchall()
        by_recipe: dict[str, list[RecipeInput]] = {}
        for r in rows:
            by_recipe.setdefault(r.recipe_id, []).append(
                RecipeInput(item_id=r.item_id, item_code=r.item_code, quantity=r.quantity)
            )
        return by_recipe

    async def is_recipe_unlocked(
        self, db: AsyncSession, company_id: str, recipe_id: str
    ) -> bool:
        row = (
            await db.execute(
                _IS_UNLOCKED_SQL, {"company_id": company_id, "recipe_id": recipe_id}
            )
        ).fetchone()
        return bool(row is not None and row.is_unlocked)

    async def insert_job(self, db: AsyncSession, job: ProductionJob) -> None:
        await db.execute(
            _INSERT_JOB_SQL,
            {
                "id": job.id,
                "company_id": job.company_id,
                "recipe_id": job.recipe_id,
                "status": job.status,
                "runs": job.runs,
                "started_tick": job.started_tick,
                "due_tick": job.due_tick,
                "created_at": job.created_at,
            },
        )

    async def get_job(
        self, db: AsyncSession, job_id: str, *, for_update: bool = False
    ) -> ProductionJob | None:
        sql = _GET_JOB_FOR_UPDATE_SQL if for_update else _GET_JOB_SQL
        row = (await db.execute(sql, {"id": job_id})).fetchone()
        return _row_to_job(row) if row is not None else None

    async def list_due_jobs(self, db: AsyncSession, tick: int) -> list[ProductionJob]:
        rows = (await db.execute(_LIST_DUE_JOBS_SQL, {"tick": tick})).fetchall()
        return [_row_to_job(r) for r in rows]

    async def count_active_jobs(self, db: AsyncSession, company_id: str) -> int:
        result = await db.execute(_COUNT_ACTIVE_JOBS_SQL, {"company_id": company_id})
        return int(result.scalar_one())

    async def close_job(
        self, db: AsyncSession, job_id: str, status: str, tick: int
    ) -> bool:
        row = (
            await db.execute(_CLOSE_JOB_SQL, {"id": job_id, "status": status, "tick": tick})
        ).fetchone()
        return row is not None
