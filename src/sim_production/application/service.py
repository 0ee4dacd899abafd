"""ProductionService — production job lifecycle.

create/cancel are standalone units of work and own their commit; due-job
completion and bot production run inside the tick engine's transaction.
"""
import logging
from collections.abc import Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_account.domain.repository import AccountRepositoryProtocol
from src.sim_account.infrastructure.persistence import AccountRepository
from src.sim_clearing.domain.repository import LedgerRepositoryProtocol
from src.sim_clearing.infrastructure.ledger import LedgerRepository, new_entry
from src.sim_common.cents import validate_non_negative_int, validate_positive_int
from src.sim_common.datetime_utils import utc_now
from src.sim_common.enums import LedgerEntryType, LedgerReferenceType, ProductionJobStatus
from src.sim_common.errors import DomainInvariantError, NotFoundError
from src.sim_common.id_generator import generate_id
from src.sim_production.domain.models import ProductionJob
from src.sim_production.domain.repository import ProductionRepositoryProtocol
from src.sim_production.domain.rules import (
    calculate_recipe_input_requirements,
    is_production_job_due,
    is_recipe_profitable,
)
from src.sim_production.infrastructure.persistence import ProductionRepository
from src.sim_world.domain.repository import WorldStateRepositoryProtocol
from src.sim_world.infrastructure.persistence import WorldStateRepository, resolve_tick

logger = logging.getLogger(__name__)


def _require_id(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise DomainInvariantError(f"{name} is required")
    return value


class ProductionService:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        production: ProductionRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        world: WorldStateRepositoryProtocol | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._production: ProductionRepositoryProtocol = production or ProductionRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._world: WorldStateRepositoryProtocol = world or WorldStateRepository()

    # ------------------------------------------------------------------
    # Standalone operations (own the transaction)
    # ------------------------------------------------------------------

    async def create_production_job(
        self,
        db: AsyncSession,
        company_id: str,
        recipe_id: str,
        runs: int,
        tick: int | None = None,
    ) -> ProductionJob:
        _require_id(company_id, "company_id")
        _require_id(recipe_id, "recipe_id")
        validate_positive_int(runs, "runs")
        try:
            resolved_tick = await resolve_tick(db, tick, self._world)
            job = await self._create_job(db, company_id, recipe_id, runs, resolved_tick)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return job

    async def cancel_production_job(
        self, db: AsyncSession, job_id: str, tick: int | None = None
    ) -> ProductionJob:
        _require_id(job_id, "job_id")
        try:
            resolved_tick = await resolve_tick(db, tick, self._world)
            job = await self._cancel_job(db, job_id, resolved_tick)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return job

    # ------------------------------------------------------------------
    # In-transaction operations (tick pipeline, bots)
    # ------------------------------------------------------------------

    async def complete_due_production_jobs(self, db: AsyncSession, next_tick: int) -> int:
        """Complete every IN_PROGRESS job due at or before `next_tick`. Returns the count."""
        validate_non_negative_int(next_tick, "next_tick")
        completed = 0
        for job in await self._production.list_due_jobs(db, next_tick):
            if not is_production_job_due(next_tick, job.due_tick):
                continue
            if not await self._production.close_job(
                db, job.id, ProductionJobStatus.COMPLETED.value, next_tick
            ):
                logger.warning("Production job %s already closed, skipping", job.id)
                continue

            company = await self._accounts.get_company(db, job.company_id)
            if company is None:
                raise NotFoundError(f"company {job.company_id} not found")
            recipe = await self._production.get_recipe(db, job.recipe_id)
            if recipe is None:
                raise NotFoundError(f"recipe {job.recipe_id} not found")

            for requirement in calculate_recipe_input_requirements(recipe.inputs, job.runs):
                await self._accounts.consume_inventory(
                    db, job.company_id, requirement.item_id, company.region_id,
                    requirement.quantity,
                )
            await self._accounts.add_inventory(
                db, job.company_id, recipe.output_item_id, company.region_id,
                recipe.output_quantity * job.runs,
            )
            await self._ledger.append(
                db,
                new_entry(
                    company_id=job.company_id,
                    tick=next_tick,
                    entry_type=LedgerEntryType.PRODUCTION_COMPLETION.value,
                    delta_cash_cents=0,
                    balance_after_cents=company.cash_cents,
                    reference_type=LedgerReferenceType.PRODUCTION_JOB_COMPLETION.value,
                    reference_id=job.id,
                ),
            )
            job.status = ProductionJobStatus.COMPLETED.value
            job.completed_tick = next_tick
            completed += 1

        if completed:
            logger.info("Completed %d production job(s) at tick %d", completed, next_tick)
        return completed

    async def start_profitable_production_for_company(
        self,
        db: AsyncSession,
        company_id: str,
        tick: int,
        max_jobs: int = 1,
        reference_prices: Mapping[str, int] | None = None,
        min_profit_bps: int = 0,
    ) -> int:
        """Start up to `max_jobs` single-run jobs for recipes worth producing."""
        validate_non_negative_int(tick, "tick")
        validate_positive_int(max_jobs, "max_jobs")
        validate_non_negative_int(min_profit_bps, "min_profit_bps")

        company = await self._accounts.get_company(db, company_id)
        if company is None:
            raise NotFoundError(f"company {company_id} not found")
        if company.available_cash_cents <= 0:
            return 0
        if await self._production.count_active_jobs(db, company_id) > 0:
            return 0

        started = 0
        for recipe in await self._production.list_recipes(db):
            if started >= max_jobs:
                break
            if not is_recipe_profitable(recipe, reference_prices, min_profit_bps):
                continue
            try:
                async with db.begin_nested():
                    await self._create_job(db, company_id, recipe.id, 1, tick)
            except DomainInvariantError as exc:
                logger.debug(
                    "Company %s cannot start recipe %s: %s", company_id, recipe.code, exc.message
                )
                continue
            started += 1
        return started

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _create_job(
        self, db: AsyncSession, company_id: str, recipe_id: str, runs: int, tick: int
    ) -> ProductionJob:
        company = await self._accounts.get_company(db, company_id)
        if company is None:
            raise NotFoundError(f"company {company_id} not found")
        recipe = await self._production.get_recipe(db, recipe_id)
        if recipe is None:
            raise NotFoundError(f"recipe {recipe_id} not found")
        if not await self._production.is_recipe_unlocked(db, company_id, recipe_id):
            raise DomainInvariantError(
                f"recipe {recipe_id} is not unlocked for company {company_id}"
            )
        if recipe.duration_ticks < 0:
            raise DomainInvariantError("recipe duration_ticks cannot be negative")

        requirements = calculate_recipe_input_requirements(recipe.inputs, runs)
        # All inputs or none.
        async with db.begin_nested():
            for requirement in requirements:
                await self._accounts.reserve_inventory(
                    db, company_id, requirement.item_id, company.region_id, requirement.quantity
                )

        job = ProductionJob(
            id=generate_id(),
            company_id=company_id,
            recipe_id=recipe_id,
            runs=runs,
            started_tick=tick,
            due_tick=tick + recipe.duration_ticks,
            created_at=utc_now(),
        )
        await self._production.insert_job(db, job)
        logger.info(
            "Company %s started %d run(s) of %s at tick %d, due %d",
            company_id, runs, recipe.code, tick, job.due_tick,
        )
        return job

    async def _cancel_job(self, db: AsyncSession, job_id: str, tick: int) -> ProductionJob:
        job = await self._production.get_job(db, job_id, for_update=True)
        if job is None:
            raise NotFoundError(f"production job {job_id} not found")
        if job.status != ProductionJobStatus.IN_PROGRESS.value:
            return job

        company = await self._accounts.get_company(db, job.company_id)
        if company is None:
            raise NotFoundError(f"company {job.company_id} not found")
        recipe = await self._production.get_recipe(db, job.recipe_id)
        if recipe is None:
            raise NotFoundError(f"recipe {job.recipe_id} not found")

        for requirement in calculate_recipe_input_requirements(recipe.inputs, job.runs):
            await self._accounts.release_inventory(
                db, job.company_id, requirement.item_id, company.region_id, requirement.quantity
            )
        if not await self._production.close_job(
            db, job.id, ProductionJobStatus.CANCELLED.value, tick
        ):
            raise DomainInvariantError(f"production job {job_id} changed while cancelling")
        job.status = ProductionJobStatus.CANCELLED.value
        job.completed_tick = tick
        logger.info("Cancelled production job %s at tick %d", job_id, tick)
        return job
