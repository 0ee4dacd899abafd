"""ResearchService — paying for research, completion unlocks and cancellation."""
import pytest

from src.sim_common.errors import (
    DomainInvariantError,
    ForbiddenError,
    InsufficientFundsError,
    NotFoundError,
)
from src.sim_research.application.service import ResearchService
from src.sim_research.domain.models import ResearchNode
from src.sim_research.domain.rules import open_status_for, prerequisites_met
from tests.fakes import FakeServices, FakeSession, InMemoryStore, ledger_cash_total


@pytest.fixture
def research(services: FakeServices) -> ResearchService:
    return services.research


@pytest.fixture
def tree(store: InMemoryStore) -> InMemoryStore:
    store.add_company("player", 1_000, is_player=True)
    store.add_company("npc", 1_000)
    store.add_research_node("basic", 300, 2, unlocks=["recipe_steel"])
    store.add_research_node("advanced", 100, 1, prerequisites=["basic"])
    store.company_research[("player", "basic")] = {
        "status": "AVAILABLE", "tick_started": None, "tick_completes": None,
    }
    store.company_research[("player", "advanced")] = {
        "status": "LOCKED", "tick_started": None, "tick_completes": None,
    }
    return store


class TestResearchRules:
    def test_prerequisites(self) -> None:
        node = ResearchNode("n", "N", 0, 1, prerequisite_ids=["a", "b"])
        assert not prerequisites_met(node, ["a"])
        assert prerequisites_met(node, ["b", "a", "c"])

    def test_open_status(self) -> None:
        node = ResearchNode("n", "N", 0, 1, prerequisite_ids=["a"])
        assert open_status_for(node, []) == "LOCKED"
        assert open_status_for(node, {"a"}) == "AVAILABLE"


class TestStartResearch:
    async def test_start_pays_cost_up_front(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        job = await research.start_research(db, "player", "basic", tick=3)
        assert (job.tick_started, job.tick_completes, job.status) == (3, 5, "RUNNING")
        assert job.cost_cash_cents == 300
        assert tree.companies["player"].cash_cents == 700
        assert tree.company_research[("player", "basic")]["status"] == "RESEARCHING"
        [entry] = tree.ledger
        assert entry.entry_type == "RESEARCH_PAYMENT"
        assert entry.delta_cash_cents == -300
        assert entry.balance_after_cents == 700
        assert db.commits == 1

    async def test_reserved_cash_is_not_spendable(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        tree.companies["player"].reserved_cash_cents = 800
        with pytest.raises(InsufficientFundsError):
            await research.start_research(db, "player", "basic", tick=0)
        assert tree.companies["player"].cash_cents == 1_000
        assert tree.research_jobs == {}

    async def test_only_players_research(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        with pytest.raises(ForbiddenError):
            await research.start_research(db, "npc", "basic", tick=0)

    async def test_prerequisites_required(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        with pytest.raises(DomainInvariantError, match="prerequisites"):
            await research.start_research(db, "player", "advanced", tick=0)

    async def test_cannot_start_twice(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        await research.start_research(db, "player", "basic", tick=0)
        with pytest.raises(DomainInvariantError, match="already running"):
            await research.start_research(db, "player", "basic", tick=1)
        assert tree.companies["player"].cash_cents == 700

    async def test_unknown_node(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        with pytest.raises(NotFoundError):
            await research.start_research(db, "player", "missing", tick=0)


class TestCompleteResearch:
    async def test_completion_unlocks_recipes_and_dependents(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        await research.start_research(db, "player", "basic", tick=0)
        assert await research.complete_due_research_jobs(db, 1) == 0
        assert await research.complete_due_research_jobs(db, 2) == 1

        assert tree.company_research[("player", "basic")]["status"] == "COMPLETED"
        assert tree.company_recipes[("player", "recipe_steel")] is True
        assert tree.company_research[("player", "advanced")]["status"] == "AVAILABLE"
        [job] = tree.research_jobs.values()
        assert (job.status, job.tick_closed) == ("COMPLETED", 2)

    async def test_completes_exactly_once(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        await research.start_research(db, "player", "basic", tick=0)
        assert await research.complete_due_research_jobs(db, 2) == 1
        assert await research.complete_due_research_jobs(db, 3) == 0

    async def test_completed_node_cannot_restart(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        await research.start_research(db, "player", "basic", tick=0)
        await research.complete_due_research_jobs(db, 2)
        with pytest.raises(DomainInvariantError, match="already completed"):
            await research.start_research(db, "player", "basic", tick=3)


class TestCancelResearch:
    async def test_cancel_does_not_refund(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        await research.start_research(db, "player", "basic", tick=0)
        job = await research.cancel_research(db, "player", "basic", tick=1)
        assert (job.status, job.tick_closed) == ("CANCELLED", 1)
        assert tree.companies["player"].cash_cents == 700
        assert ledger_cash_total(tree, "player") == -300
        assert tree.company_research[("player", "basic")]["status"] == "AVAILABLE"
        assert await research.complete_due_research_jobs(db, 5) == 0

    async def test_cancel_without_running_job(
        self, research: ResearchService, db: FakeSession, tree: InMemoryStore
    ) -> None:
        with pytest.raises(DomainInvariantError, match="not running"):
            await research.cancel_research(db, "player", "basic", tick=0)
        assert db.rollbacks == 1
