"""ResearchService — start, cancel and complete research on the tech tree.

Starting research pays the node cost up front out of available cash; a
cancellation does not refund it.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_account.domain.models import Company
from src.sim_account.domain.repository import AccountRepositoryProtocol
from src.sim_account.infrastructure.persistence import AccountRepository
from src.sim_clearing.domain.repository import LedgerRepositoryProtocol
from src.sim_clearing.infrastructure.ledger import LedgerRepository, new_entry
from src.sim_common.cents import validate_non_negative_int
from src.sim_common.datetime_utils import utc_now
from src.sim_common.enums import (
    CompanyResearchStatus,
    LedgerEntryType,
    LedgerReferenceType,
    ResearchJobStatus,
)
from src.sim_common.errors import DomainInvariantError, ForbiddenError, NotFoundError
from src.sim_common.id_generator import generate_id
from src.sim_research.domain.models import ResearchJob
from src.sim_research.domain.repository import ResearchRepositoryProtocol
from src.sim_research.domain.rules import open_status_for, prerequisites_met
from src.sim_research.infrastructure.persistence import ResearchRepository
from src.sim_world.domain.repository import WorldStateRepositoryProtocol
from src.sim_world.infrastructure.persistence import WorldStateRepository, resolve_tick

logger = logging.getLogger(__name__)


def _require_id(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise DomainInvariantError(f"{name} is required")
    return value


class ResearchService:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        research: ResearchRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        world: WorldStateRepositoryProtocol | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._research: ResearchRepositoryProtocol = research or ResearchRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._world: WorldStateRepositoryProtocol = world or WorldStateRepository()

    async def start_research(
        self, db: AsyncSession, company_id: str, node_id: str, tick: int | None = None
    ) -> ResearchJob:
        _require_id(company_id, "company_id")
        _require_id(node_id, "node_id")
        try:
            resolved_tick = await resolve_tick(db, tick, self._world)
            job = await self._start(db, company_id, node_id, resolved_tick)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return job

    async def cancel_research(
        self, db: AsyncSession, company_id: str, node_id: str, tick: int | None = None
    ) -> ResearchJob:
        _require_id(company_id, "company_id")
        _require_id(node_id, "node_id")
        try:
            resolved_tick = await resolve_tick(db, tick, self._world)
            job = await self._cancel(db, company_id, node_id, resolved_tick)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return job

    async def complete_due_research_jobs(self, db: AsyncSession, tick: int) -> int:
        """Close RUNNING jobs due by `tick`, unlock their recipes and open dependents."""
        validate_non_negative_int(tick, "tick")
        completed = 0
        for job in await self._research.list_due_jobs(db, tick):
            if not await self._research.close_job(
                db, job.id, ResearchJobStatus.COMPLETED.value, tick
            ):
                logger.warning("Research job %s already closed, skipping", job.id)
                continue
            await self._research.upsert_status(
                db,
                job.company_id,
                job.node_id,
                CompanyResearchStatus.COMPLETED.value,
                job.tick_started,
                job.tick_completes,
            )
            node = await self._research.get_node(db, job.node_id)
            if node is None:
                raise NotFoundError(f"research node {job.node_id} not found")
            for recipe_id in node.unlock_recipe_ids:
                await self._research.unlock_recipe(db, job.company_id, recipe_id)

            completed_ids = await self._research.completed_node_ids(db, job.company_id)
            for dependent in await self._research.list_dependent_nodes(db, job.node_id):
                await self._research.refresh_open_status(
                    db, job.company_id, dependent.id, open_status_for(dependent, completed_ids)
                )
            job.status = ResearchJobStatus.COMPLETED.value
            job.tick_closed = tick
            completed += 1

        if completed:
            logger.info("Completed %d research job(s) at tick %d", completed, tick)
        return completed

    async def _researchable_company(self, db: AsyncSession, company_id: str) -> Company:
        company = await self._accounts.get_company(db, company_id, for_update=True)
        if company is None:
            raise NotFoundError(f"company {company_id} not found")
        if not company.is_player:
            raise ForbiddenError("only player companies can research")
        return company

    async def _start(
        self, db: AsyncSession, company_id: str, node_id: str, tick: int
    ) -> ResearchJob:
        await self._researchable_company(db, company_id)
        node = await self._research.get_node(db, node_id)
        if node is None:
            raise NotFoundError(f"research node {node_id} not found")

        status = await self._research.get_status(db, company_id, node_id)
        if status == CompanyResearchStatus.COMPLETED.value:
            raise DomainInvariantError("research node already completed")
        running = await self._research.get_running_job(db, company_id, node_id)
        if running is not None or status == CompanyResearchStatus.RESEARCHING.value:
            raise DomainInvariantError("research node is already running")
        if not prerequisites_met(node, await self._research.completed_node_ids(db, company_id)):
            raise DomainInvariantError("research prerequisites are not completed")

        company = await self._accounts.debit_available_cash(db, company_id, node.cost_cash_cents)
        job = ResearchJob(
            id=generate_id(),
            company_id=company_id,
            node_id=node_id,
            cost_cash_cents=node.cost_cash_cents,
            tick_started=tick,
            tick_completes=tick + node.duration_ticks,
            created_at=utc_now(),
        )
        await self._research.insert_job(db, job)
        await self._research.upsert_status(
            db,
            company_id,
            node_id,
            CompanyResearchStatus.RESEARCHING.value,
            job.tick_started,
            job.tick_completes,
        )
        await self._ledger.append(
            db,
            new_entry(
                company_id=company_id,
                tick=tick,
                entry_type=LedgerEntryType.RESEARCH_PAYMENT.value,
                delta_cash_cents=-node.cost_cash_cents,
                balance_after_cents=company.cash_cents,
                reference_type=LedgerReferenceType.RESEARCH_NODE.value,
                reference_id=node_id,
            ),
        )
        logger.info(
            "Company %s started research %s at tick %d, completes %d",
            company_id, node.code, tick, job.tick_completes,
        )
        return job

    async def _cancel(
        self, db: AsyncSession, company_id: str, node_id: str, tick: int
    ) -> ResearchJob:
        await self._researchable_company(db, company_id)
        job = await self._research.get_running_job(db, company_id, node_id, for_update=True)
        if job is None:
            raise DomainInvariantError("research node is not running")
        if not await self._research.close_job(
            db, job.id, ResearchJobStatus.CANCELLED.value, tick
        ):
            raise DomainInvariantError("research node is not running")

        node = await self._research.get_node(db, node_id)
        if node is None:
            raise NotFoundError(f"research node {node_id} not found")
        completed_ids = await self._research.completed_node_ids(db, company_id)
        await self._research.upsert_status(
            db, company_id, node_id, open_status_for(node, completed_ids)
        )
        job.status = ResearchJobStatus.CANCELLED.value
        job.tick_closed = tick
        logger.info("Company %s cancelled research %s at tick %d", company_id, node.code, tick)
        return job
