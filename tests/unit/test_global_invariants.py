# tests/unit/test_global_invariants.py
"""Unit tests for the invariant auditor: pure collectors and DB-backed checks."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from src.sim_clearing.domain.global_invariants import (
    DEFAULT_SCAN_LIMIT,
    MAX_SCAN_LIMIT,
    collect_company_invariant_issues,
    collect_inventory_invariant_issues,
    normalize_scan_limit,
    scan_simulation_invariants,
    verify_global_invariants,
    verify_ledger_replay,
)


def _scalars(*values: int) -> list[MagicMock]:
    results = []
    for value in values:
        result = MagicMock()
        result.scalar_one.return_value = value
        results.append(result)
    return results


def _rows(rows: list) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = rows
    return result


def _company(id: str, cash: int, reserved: int) -> SimpleNamespace:
    return SimpleNamespace(id=id, cash_cents=cash, reserved_cash_cents=reserved)


def _inventory(quantity: int, reserved: int) -> SimpleNamespace:
    return SimpleNamespace(
        company_id="co-1", item_id="ore", region_id="r1",
        quantity=quantity, reserved_quantity=reserved,
    )


class TestCollectors:
    def test_healthy_company(self) -> None:
        assert collect_company_invariant_issues([_company("co-1", 100, 100)]) == []

    def test_company_issue_codes(self) -> None:
        issues = collect_company_invariant_issues([_company("co-1", -5, 10)])
        assert [i.code for i in issues] == [
            "COMPANY_CASH_NEGATIVE",
            "COMPANY_RESERVED_EXCEEDS_CASH",
        ]
        assert issues[0].entity_type == "company"
        assert issues[0].item_id is None

    def test_inventory_issue_codes(self) -> None:
        issues = collect_inventory_invariant_issues([_inventory(3, -1), _inventory(2, 5)])
        assert [i.code for i in issues] == [
            "INVENTORY_RESERVED_NEGATIVE",
            "INVENTORY_RESERVED_EXCEEDS_QUANTITY",
        ]
        assert issues[1].item_id == "ore"

    def test_normalize_scan_limit(self) -> None:
        assert normalize_scan_limit(5) == 5
        assert normalize_scan_limit(0) == DEFAULT_SCAN_LIMIT
        assert normalize_scan_limit("x") == DEFAULT_SCAN_LIMIT
        assert normalize_scan_limit(10_000) == MAX_SCAN_LIMIT


class TestScan:
    async def test_clean_scan(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_rows([]), _rows([])]
        result = await scan_simulation_invariants(db)
        assert result.issues == []
        assert not result.has_violations
        assert not result.truncated

    async def test_truncated_scan(self) -> None:
        db = AsyncMock()
        bad = [_company(f"co-{i}", -1, 0) for i in range(3)]
        db.execute.side_effect = [_rows(bad), _rows([])]
        result = await scan_simulation_invariants(db, limit=2)
        assert len(result.issues) == 2
        assert result.has_violations
        assert result.truncated


class TestLedgerReplay:
    async def test_mismatch_reported(self) -> None:
        db = AsyncMock()
        row = SimpleNamespace(
            id="co-1", cash_cents=900, replayed_cash=1000,
            reserved_cash_cents=0, replayed_reserved=0,
        )
        db.execute.return_value = _rows([row])
        [violation] = await verify_ledger_replay(db)
        assert "co-1" in violation
        assert "replayed=1000" in violation

    async def test_no_mismatch(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _rows([])
        assert await verify_ledger_replay(db) == []


class TestGlobalInvariants:
    async def test_balanced_returns_empty(self) -> None:
        db = AsyncMock()
        # settlement net, total cash, initial, ledger delta, reserved, open buy, open sell, inv
        db.execute.side_effect = _scalars(0, 1500, 1000, 500, 300, 300, 4, 4)
        assert await verify_global_invariants(db) == []

    async def test_cash_not_conserved(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = _scalars(0, 1600, 1000, 500, 300, 300, 4, 4)
        [violation] = await verify_global_invariants(db)
        assert "total cash 1600" in violation

    async def test_every_check_can_fail(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = _scalars(7, 1600, 1000, 500, 300, 200, 5, 4)
        violations = await verify_global_invariants(db)
        assert len(violations) == 4
        assert "net to zero" in violations[0]
        assert "open buy order reservations" in violations[2]
        assert "exceed reserved inventory" in violations[3]
