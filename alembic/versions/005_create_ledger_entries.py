"""005: create ledger entries

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ledger_entries (
            id                         VARCHAR(64) PRIMARY KEY,
            company_id                 VARCHAR(64) NOT NULL REFERENCES companies(id),
            tick                       BIGINT      NOT NULL,
            entry_type                 VARCHAR(40) NOT NULL,
            delta_cash_cents           BIGINT      NOT NULL DEFAULT 0,
            delta_reserved_cash_cents  BIGINT      NOT NULL DEFAULT 0,
            balance_after_cents        BIGINT      NOT NULL,
            reference_type             VARCHAR(40) NOT NULL,
            reference_id               VARCHAR(64) NOT NULL,
            created_at                 TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ledger_entries_type CHECK (entry_type IN (
                'ORDER_RESERVE', 'TRADE_SETTLEMENT', 'CONTRACT_SETTLEMENT', 'SHIPMENT_FEE',
                'RESEARCH_PAYMENT', 'PRODUCTION_COMPLETION', 'PRODUCTION_COST',
                'WORKFORCE_SALARY_EXPENSE', 'WORKFORCE_RECRUITMENT_EXPENSE', 'MANUAL_ADJUSTMENT'
            ))
        );
    """)
    op.execute("CREATE INDEX idx_ledger_entries_company ON ledger_entries (company_id, created_at, id);")
    op.execute("CREATE INDEX idx_ledger_entries_reference ON ledger_entries (reference_type, reference_id);")
    op.execute("COMMENT ON TABLE ledger_entries IS 'Append-only cash ledger; replays to companies.cash_cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
