"""ProductionService and pure production rules."""
import pytest

from src.sim_common.errors import (
    DomainInvariantError,
    InsufficientInventoryError,
    NotFoundError,
)
from src.sim_production.application.service import ProductionService
from src.sim_production.domain.models import Recipe, RecipeInput
from src.sim_production.domain.rules import (
    calculate_recipe_input_requirements,
    is_production_job_due,
    is_recipe_profitable,
)
from tests.fakes import FakeServices, FakeSession, InMemoryStore


@pytest.fixture
def production(services: FakeServices) -> ProductionService:
    return services.production


@pytest.fixture
def factory(store: InMemoryStore) -> InMemoryStore:
    store.add_item("ore", code="IRON_ORE")
    store.add_item("ingot", code="IRON_INGOT")
    store.add_company("co-1", 1_000)
    store.add_inventory("co-1", "ore", 10)
    store.add_recipe("smelt", "ingot", [("ore", 2)], duration_ticks=2, unlocked_for=["co-1"])
    return store


class TestProductionRules:
    def test_due(self) -> None:
        assert is_production_job_due(5, 5)
        assert not is_production_job_due(4, 5)

    def test_requirements_scale_with_runs(self) -> None:
        reqs = calculate_recipe_input_requirements([RecipeInput("ore", "IRON_ORE", 2)], 3)
        assert [(r.item_id, r.quantity) for r in reqs] == [("ore", 6)]

    def test_requirements_reject_zero_runs(self) -> None:
        with pytest.raises(DomainInvariantError):
            calculate_recipe_input_requirements([], 0)

    def test_profitability_uses_reference_prices(self) -> None:
        recipe = Recipe(
            "smelt", "SMELT", "ingot", "IRON_INGOT", 1, 1, [RecipeInput("ore", "IRON_ORE", 2)]
        )
        # fallback table: 2 x 80 in, 200 out
        assert is_recipe_profitable(recipe, None)
        assert not is_recipe_profitable(recipe, None, min_profit_bps=5_000)
        assert not is_recipe_profitable(recipe, {"ingot": 150})


class TestCreateAndCancel:
    async def test_create_reserves_inputs(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        job = await production.create_production_job(db, "co-1", "smelt", 3, tick=4)
        assert (job.started_tick, job.due_tick, job.status) == (4, 6, "IN_PROGRESS")
        assert factory.inventory("co-1", "ore").reserved_quantity == 6
        assert db.commits == 1

    async def test_locked_recipe_rejected(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        factory.add_company("co-2", 0)
        with pytest.raises(DomainInvariantError, match="not unlocked"):
            await production.create_production_job(db, "co-2", "smelt", 1, tick=0)
        assert db.rollbacks == 1

    async def test_insufficient_inputs_reserve_nothing(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        with pytest.raises(InsufficientInventoryError):
            await production.create_production_job(db, "co-1", "smelt", 6, tick=0)
        assert factory.inventory("co-1", "ore").reserved_quantity == 0
        assert factory.production_jobs == {}

    async def test_unknown_recipe(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        with pytest.raises(NotFoundError):
            await production.create_production_job(db, "co-1", "missing", 1, tick=0)

    async def test_cancel_releases_inputs(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        job = await production.create_production_job(db, "co-1", "smelt", 2, tick=0)
        cancelled = await production.cancel_production_job(db, job.id, tick=1)
        assert cancelled.status == "CANCELLED"
        assert cancelled.completed_tick == 1
        assert factory.inventory("co-1", "ore").reserved_quantity == 0

    async def test_cancel_closed_job_is_noop(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        job = await production.create_production_job(db, "co-1", "smelt", 1, tick=0)
        await production.cancel_production_job(db, job.id, tick=1)
        again = await production.cancel_production_job(db, job.id, tick=2)
        assert again.status == "CANCELLED"
        assert again.completed_tick == 1
        assert factory.inventory("co-1", "ore").reserved_quantity == 0


class TestCompletion:
    async def test_completes_exactly_once(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        job = await production.create_production_job(db, "co-1", "smelt", 2, tick=0)
        assert await production.complete_due_production_jobs(db, 1) == 0
        assert await production.complete_due_production_jobs(db, 2) == 1
        assert await production.complete_due_production_jobs(db, 3) == 0

        assert factory.production_jobs[job.id].status == "COMPLETED"
        assert factory.inventory("co-1", "ore").quantity == 6
        assert factory.inventory("co-1", "ore").reserved_quantity == 0
        assert factory.inventory("co-1", "ingot").quantity == 2
        [marker] = [e for e in factory.ledger if e.entry_type == "PRODUCTION_COMPLETION"]
        assert marker.delta_cash_cents == 0
        assert marker.reference_id == job.id

    async def test_cancelled_job_never_completes(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        job = await production.create_production_job(db, "co-1", "smelt", 1, tick=0)
        await production.cancel_production_job(db, job.id, tick=1)
        assert await production.complete_due_production_jobs(db, 5) == 0
        assert factory.inventory("co-1", "ingot").quantity == 0


class TestProfitableProduction:
    async def test_starts_profitable_recipe(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        started = await production.start_profitable_production_for_company(db, "co-1", 3)
        assert started == 1
        [job] = factory.production_jobs.values()
        assert (job.recipe_id, job.runs, job.started_tick) == ("smelt", 1, 3)
        assert db.commits == 0

    async def test_respects_min_profit(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        started = await production.start_profitable_production_for_company(
            db, "co-1", 3, min_profit_bps=5_000
        )
        assert started == 0

    async def test_skips_when_job_active(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        await production.create_production_job(db, "co-1", "smelt", 1, tick=0)
        assert await production.start_profitable_production_for_company(db, "co-1", 1) == 0

    async def test_skips_without_cash(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        factory.companies["co-1"].cash_cents = 0
        assert await production.start_profitable_production_for_company(db, "co-1", 1) == 0

    async def test_missing_inputs_skip_recipe(
        self, production: ProductionService, db: FakeSession, factory: InMemoryStore
    ) -> None:
        factory.inventories[("co-1", "ore", "region-1")].quantity = 1
        assert await production.start_profitable_production_for_company(db, "co-1", 1) == 0
        assert factory.production_jobs == {}
