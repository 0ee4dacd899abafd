"""LedgerRepository — append-only ledger_entries rows.

Every cash-affecting event (and every cash reservation move) appends exactly
one row per company inside the caller's transaction. Rows are never updated
or deleted; `initial_cash_cents + SUM(delta_cash_cents)` replays to the
company's current cash.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_account.domain.models import LedgerEntry
from src.sim_common.datetime_utils import utc_now
from src.sim_common.id_generator import generate_id

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (id, company_id, tick, entry_type, delta_cash_cents, delta_reserved_cash_cents,
         balance_after_cents, reference_type, reference_id, created_at)
    VALUES
        (:id, :company_id, :tick, :entry_type, :delta_cash_cents, :delta_reserved_cash_cents,
         :balance_after_cents, :reference_type, :reference_id, :created_at)
""")

_LIST_FOR_COMPANY_SQL = text("""
    SELECT id, company_id, tick, entry_type, delta_cash_cents, delta_reserved_cash_cents,
           balance_after_cents, reference_type, reference_id, created_at
    FROM ledger_entries
    WHERE company_id = :company_id
    ORDER BY created_at ASC, id ASC
""")


def _row_to_entry(row: Any) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        company_id=row.company_id,
        tick=row.tick,
        entry_type=row.entry_type,
        delta_cash_cents=row.delta_cash_cents,
        delta_reserved_cash_cents=row.delta_reserved_cash_cents,
        balance_after_cents=row.balance_after_cents,
        reference_type=row.reference_type,
        reference_id=row.reference_id,
        created_at=row.created_at,
    )


def new_entry(
    company_id: str,
    tick: int,
    entry_type: str,
    delta_cash_cents: int,
    balance_after_cents: int,
    reference_type: str | None,
    reference_id: str | None,
    delta_reserved_cash_cents: int = 0,
) -> LedgerEntry:
    """Build a ledger row with a fresh id and timestamp."""
    return LedgerEntry(
        id=generate_id(),
        company_id=company_id,
        tick=tick,
        entry_type=entry_type,
        delta_cash_cents=delta_cash_cents,
        delta_reserved_cash_cents=delta_reserved_cash_cents,
        balance_after_cents=balance_after_cents,
        reference_type=reference_type,
        reference_id=reference_id,
        created_at=utc_now(),
    )


class LedgerRepository:
    async def append(self, db: AsyncSession, entry: LedgerEntry) -> None:
        """Insert one row into ledger_entries within the caller's transaction."""
        await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "id": entry.id,
                "company_id": entry.company_id,
                "tick": entry.tick,
                "entry_type": entry.entry_type,
                "delta_cash_cents": entry.delta_cash_cents,
                "delta_reserved_cash_cents": entry.delta_reserved_cash_cents,
                "balance_after_cents": entry.balance_after_cents,
                "reference_type": entry.reference_type,
                "reference_id": entry.reference_id,
                "created_at": entry.created_at or utc_now(),
            },
        )

    async def list_for_company(self, db: AsyncSession, company_id: str) -> list[LedgerEntry]:
        rows = (await db.execute(_LIST_FOR_COMPANY_SQL, {"company_id": company_id})).fetchall()
        return [_row_to_entry(r) for r in rows]
