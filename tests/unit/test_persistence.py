"""Raw-SQL repositories against a MagicMock AsyncSession: guards and row mapping."""
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.sim_account.infrastructure.persistence import AccountRepository
from src.sim_candles.infrastructure.persistence import CandleRepository
from src.sim_common.errors import InsufficientFundsError, NotFoundError
from src.sim_production.infrastructure.persistence import ProductionRepository
from src.sim_research.infrastructure.persistence import ResearchRepository
from src.sim_world.infrastructure.persistence import WorldStateRepository, resolve_tick


def _result(row: Any = None, rows: list | None = None, rowcount: int = 0) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    result.rowcount = rowcount
    return result


def _company_row(**kwargs: Any) -> SimpleNamespace:
    defaults: dict[str, Any] = {
        "id": "co-1",
        "code": "CO_1",
        "region_id": "region-1",
        "cash_cents": 1_000,
        "reserved_cash_cents": 200,
        "is_player": False,
        "specialization": None,
        "initial_cash_cents": 1_000,
        "created_at": datetime(2026, 1, 1, tzinfo=UTC),
        "updated_at": datetime(2026, 1, 1, tzinfo=UTC),
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


class TestWorldStateRepository:
    async def test_compare_and_advance_reports_rowcount(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(rowcount=1)
        assert await WorldStateRepository().compare_and_advance(db, 4, 5) == 1
        params = db.execute.call_args.args[1]
        assert params == {"id": 1, "lock_version": 4, "next_tick": 5}

    async def test_lost_race_reports_zero(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(rowcount=0)
        assert await WorldStateRepository().compare_and_advance(db, 4, 5) == 0

    async def test_record_execution_claims_new_key(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(rowcount=1)
        assert await WorldStateRepository().record_execution(db, "job-1:0", 4, 5) is True
        params = db.execute.call_args.args[1]
        assert params == {"execution_key": "job-1:0", "tick_before": 4, "tick_after": 5}
        assert "ON CONFLICT (execution_key) DO NOTHING" in str(db.execute.call_args.args[0])

    async def test_record_execution_seen_key(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(rowcount=0)
        assert await WorldStateRepository().record_execution(db, "job-1:0", 4, 5) is False

    async def test_get_missing_row(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)
        assert await WorldStateRepository().get(db) is None

    async def test_resolve_tick_explicit_skips_db(self) -> None:
        db = AsyncMock()
        assert await resolve_tick(db, 9) == 9
        db.execute.assert_not_called()

    async def test_resolve_tick_reads_world(self) -> None:
        db = AsyncMock()
        row = SimpleNamespace(id=1, current_tick=12, lock_version=12, last_advanced_at=None)
        db.execute.return_value = _result(row)
        assert await resolve_tick(db, None) == 12


class TestAccountRepository:
    async def test_reserve_cash_maps_returning_row(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_company_row(reserved_cash_cents=700))
        company = await AccountRepository().reserve_cash(db, "co-1", 500)
        assert company.reserved_cash_cents == 700
        assert company.available_cash_cents == 300

    async def test_reserve_cash_guard_rejects(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(None), _result(_company_row())]
        with pytest.raises(InsufficientFundsError):
            await AccountRepository().reserve_cash(db, "co-1", 5_000)

    async def test_reserve_cash_unknown_company(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(None), _result(None)]
        with pytest.raises(NotFoundError):
            await AccountRepository().reserve_cash(db, "ghost", 1)


class TestJobRepositories:
    async def test_production_close_job_guard(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(SimpleNamespace(id="job-1"))
        assert await ProductionRepository().close_job(db, "job-1", "COMPLETED", 3) is True
        db.execute.return_value = _result(None)
        assert await ProductionRepository().close_job(db, "job-1", "COMPLETED", 3) is False

    async def test_research_close_job_guard(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)
        assert await ResearchRepository().close_job(db, "job-1", "CANCELLED", 3) is False

    async def test_research_node_hydrates_edges(self) -> None:
        db = AsyncMock()
        node = SimpleNamespace(id="n2", code="N2", cost_cash_cents=100, duration_ticks=2)
        db.execute.side_effect = [
            _result(node),
            _result(rows=[SimpleNamespace(node_id="n2", prerequisite_node_id="n1")]),
            _result(rows=[SimpleNamespace(node_id="n2", recipe_id="recipe_steel")]),
        ]
        loaded = await ResearchRepository().get_node(db, "n2")
        assert loaded is not None
        assert loaded.prerequisite_ids == ["n1"]
        assert loaded.unlock_recipe_ids == ["recipe_steel"]


class TestCandleRepository:
    async def test_list_range_returns_oldest_first(self) -> None:
        db = AsyncMock()
        rows = [
            SimpleNamespace(
                item_id="ore", region_id="r1", tick=tick, open_cents=1, high_cents=2,
                low_cents=1, close_cents=2, volume_qty=3, trade_count=1, vwap_cents=2,
            )
            for tick in (5, 4)
        ]
        db.execute.return_value = _result(rows=rows)
        candles = await CandleRepository().list_range(db, "ore", "r1", None, None, 2)
        assert [c.tick for c in candles] == [4, 5]
