# src/sim_clearing/domain/global_invariants.py
"""World invariant auditor — read-only checks over balances and the ledger.

- scan_simulation_invariants: per-row balance checks on companies and inventories.
- verify_ledger_replay: every company's ledger replays to its cash and reserved cash.
- verify_global_invariants: cross-table conservation sums.
"""
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_common.cents import is_int

logger = logging.getLogger(__name__)

DEFAULT_SCAN_LIMIT = 20
MAX_SCAN_LIMIT = 50


@dataclass(frozen=True)
class InvariantIssue:
    code: str
    entity_type: str  # "company" / "inventory"
    company_id: str
    item_id: str | None
    region_id: str | None
    message: str


@dataclass(frozen=True)
class InvariantScanResult:
    issues: list[InvariantIssue]
    has_violations: bool
    truncated: bool


# ---------------------------------------------------------------------------
# Pure collectors
# ---------------------------------------------------------------------------


def _company_issue(row: Any, code: str, message: str) -> InvariantIssue:
    return InvariantIssue(code, "company", row.id, None, None, message)


def _inventory_issue(row: Any, code: str, message: str) -> InvariantIssue:
    return InvariantIssue(code, "inventory", row.company_id, row.item_id, row.region_id, message)


def collect_company_invariant_issues(rows: Iterable[Any]) -> list[InvariantIssue]:
    """rows: objects with id, cash_cents, reserved_cash_cents."""
    issues: list[InvariantIssue] = []
    for row in rows:
        if row.cash_cents < 0:
            issues.append(
                _company_issue(row, "COMPANY_CASH_NEGATIVE", f"cash_cents={row.cash_cents}")
            )
        if row.reserved_cash_cents < 0:
            issues.append(
                _company_issue(
                    row,
                    "COMPANY_RESERVED_CASH_NEGATIVE",
                    f"reserved_cash_cents={row.reserved_cash_cents}",
                )
            )
        if row.reserved_cash_cents > row.cash_cents:
            issues.append(
                _company_issue(
                    row,
                    "COMPANY_RESERVED_EXCEEDS_CASH",
                    f"reserved_cash_cents={row.reserved_cash_cents} > "
                    f"cash_cents={row.cash_cents}",
                )
            )
    return issues


def collect_inventory_invariant_issues(rows: Iterable[Any]) -> list[InvariantIssue]:
    """rows: objects with company_id, item_id, region_id, quantity, reserved_quantity."""
    issues: list[InvariantIssue] = []
    for row in rows:
        if row.quantity < 0:
            issues.append(
                _inventory_issue(row, "INVENTORY_QUANTITY_NEGATIVE", f"quantity={row.quantity}")
            )
        if row.reserved_quantity < 0:
            issues.append(
                _inventory_issue(
                    row,
                    "INVENTORY_RESERVED_NEGATIVE",
                    f"reserved_quantity={row.reserved_quantity}",
                )
            )
        if row.reserved_quantity > row.quantity:
            issues.append(
                _inventory_issue(
                    row,
                    "INVENTORY_RESERVED_EXCEEDS_QUANTITY",
                    f"reserved_quantity={row.reserved_quantity} > quantity={row.quantity}",
                )
            )
    return issues


def normalize_scan_limit(limit: object) -> int:
    if not is_int(limit) or limit <= 0:  # type: ignore[operator]
        return DEFAULT_SCAN_LIMIT
    return min(limit, MAX_SCAN_LIMIT)  # type: ignore[type-var]


# ---------------------------------------------------------------------------
# DB-backed checks
# ---------------------------------------------------------------------------

_BAD_COMPANIES_SQL = text("""
    SELECT id, cash_cents, reserved_cash_cents
    FROM companies
    WHERE cash_cents < 0 OR reserved_cash_cents < 0 OR reserved_cash_cents > cash_cents
    ORDER BY id ASC
    LIMIT :limit
""")

_BAD_INVENTORIES_SQL = text("""
    SELECT company_id, item_id, region_id, quantity, reserved_quantity
    FROM inventories
    WHERE quantity < 0 OR reserved_quantity < 0 OR reserved_quantity > quantity
    ORDER BY company_id ASC, item_id ASC, region_id ASC
    LIMIT :limit
""")

_LEDGER_REPLAY_SQL = text("""
    SELECT c.id,
           c.cash_cents,
           c.reserved_cash_cents,
           c.initial_cash_cents + COALESCE(SUM(l.delta_cash_cents), 0) AS replayed_cash,
           COALESCE(SUM(l.delta_reserved_cash_cents), 0) AS replayed_reserved
    FROM companies c
    LEFT JOIN ledger_entries l ON l.company_id = c.id
    GROUP BY c.id, c.cash_cents, c.reserved_cash_cents, c.initial_cash_cents
    HAVING c.cash_cents <> c.initial_cash_cents + COALESCE(SUM(l.delta_cash_cents), 0)
        OR c.reserved_cash_cents <> COALESCE(SUM(l.delta_reserved_cash_cents), 0)
    ORDER BY c.id ASC
""")

_TRADE_SETTLEMENT_NET_SQL = text("""
    SELECT COALESCE(SUM(delta_cash_cents), 0)
    FROM ledger_entries
    WHERE entry_type = 'TRADE_SETTLEMENT'
""")

_TOTAL_CASH_SQL = text("SELECT COALESCE(SUM(cash_cents), 0) FROM companies")

_TOTAL_INITIAL_CASH_SQL = text("SELECT COALESCE(SUM(initial_cash_cents), 0) FROM companies")

_TOTAL_LEDGER_DELTA_SQL = text("SELECT COALESCE(SUM(delta_cash_cents), 0) FROM ledger_entries")

_TOTAL_RESERVED_CASH_SQL = text("SELECT COALESCE(SUM(reserved_cash_cents), 0) FROM companies")

_OPEN_BUY_RESERVED_SQL = text("""
    SELECT COALESCE(SUM(reserved_cash_cents), 0)
    FROM market_orders
    WHERE status = 'OPEN' AND side = 'BUY'
""")

_OPEN_SELL_RESERVED_SQL = text("""
    SELECT COALESCE(SUM(reserved_quantity), 0)
    FROM market_orders
    WHERE status = 'OPEN' AND side = 'SELL'
""")

_TOTAL_RESERVED_INVENTORY_SQL = text(
    "SELECT COALESCE(SUM(reserved_quantity), 0) FROM inventories"
)


async def scan_simulation_invariants(
    db: AsyncSession, limit: int = DEFAULT_SCAN_LIMIT
) -> InvariantScanResult:
    limit = normalize_scan_limit(limit)
    # One extra row per table tells us whether the result was cut short.
    companies = (await db.execute(_BAD_COMPANIES_SQL, {"limit": limit + 1})).fetchall()
    inventories = (await db.execute(_BAD_INVENTORIES_SQL, {"limit": limit + 1})).fetchall()

    issues = collect_company_invariant_issues(companies)
    issues += collect_inventory_invariant_issues(inventories)
    truncated = len(issues) > limit or len(companies) > limit or len(inventories) > limit
    issues = issues[:limit]
    if issues:
        logger.warning(
            "Invariant scan found %d issue(s)%s", len(issues), " (truncated)" if truncated else ""
        )
    return InvariantScanResult(issues=issues, has_violations=bool(issues), truncated=truncated)


async def verify_ledger_replay(db: AsyncSession) -> list[str]:
    violations: list[str] = []
    for row in (await db.execute(_LEDGER_REPLAY_SQL)).fetchall():
        msg = (
            f"ledger replay mismatch for company {row.id}: "
            f"cash={row.cash_cents} replayed={row.replayed_cash}, "
            f"reserved={row.reserved_cash_cents} replayed={row.replayed_reserved}"
        )
        violations.append(msg)
        logger.error(msg)
    return violations


async def verify_global_invariants(db: AsyncSession) -> list[str]:
    """Cross-table conservation checks. Returns list of violation strings."""
    violations: list[str] = []

    settlement_net = (await db.execute(_TRADE_SETTLEMENT_NET_SQL)).scalar_one()
    if settlement_net != 0:
        violations.append(f"trade settlements do not net to zero: {settlement_net}")

    total_cash = (await db.execute(_TOTAL_CASH_SQL)).scalar_one()
    initial_cash = (await db.execute(_TOTAL_INITIAL_CASH_SQL)).scalar_one()
    ledger_delta = (await db.execute(_TOTAL_LEDGER_DELTA_SQL)).scalar_one()
    if total_cash != initial_cash + ledger_delta:
        violations.append(
            f"total cash {total_cash} != initial {initial_cash} + ledger deltas {ledger_delta}"
        )

    reserved_cash = (await db.execute(_TOTAL_RESERVED_CASH_SQL)).scalar_one()
    open_buy_reserved = (await db.execute(_OPEN_BUY_RESERVED_SQL)).scalar_one()
    if reserved_cash != open_buy_reserved:
        violations.append(
            f"company reserved cash {reserved_cash} != open buy order reservations "
            f"{open_buy_reserved}"
        )

    open_sell_reserved = (await db.execute(_OPEN_SELL_RESERVED_SQL)).scalar_one()
    reserved_inventory = (await db.execute(_TOTAL_RESERVED_INVENTORY_SQL)).scalar_one()
    if open_sell_reserved > reserved_inventory:
        violations.append(
            f"open sell order reservations {open_sell_reserved} exceed reserved inventory "
            f"{reserved_inventory}"
        )

    for msg in violations:
        logger.error(msg)
    return violations
