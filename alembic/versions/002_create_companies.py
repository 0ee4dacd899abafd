"""002: create companies and inventories

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE companies (
            id                   VARCHAR(64) PRIMARY KEY,
            code                 VARCHAR(64) NOT NULL,
            region_id            VARCHAR(64) NOT NULL REFERENCES regions(id),
            cash_cents           BIGINT      NOT NULL DEFAULT 0,
            reserved_cash_cents  BIGINT      NOT NULL DEFAULT 0,
            initial_cash_cents   BIGINT      NOT NULL DEFAULT 0,
            is_player            BOOLEAN     NOT NULL DEFAULT FALSE,
            specialization       VARCHAR(16),
            created_at           TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at           TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_companies_code             UNIQUE (code),
            CONSTRAINT ck_companies_reserved_gte_0   CHECK (reserved_cash_cents >= 0),
            CONSTRAINT ck_companies_reserved_lte_cash CHECK (reserved_cash_cents <= cash_cents),
            CONSTRAINT ck_companies_specialization   CHECK (
                specialization IS NULL OR specialization IN ('LIQUIDITY', 'PRODUCER')
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_companies_updated_at
            BEFORE UPDATE ON companies
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE companies IS 'Simulated companies; all amounts in cents';")

    op.execute("""
        CREATE TABLE inventories (
            company_id         VARCHAR(64) NOT NULL REFERENCES companies(id),
            item_id            VARCHAR(64) NOT NULL REFERENCES items(id),
            region_id          VARCHAR(64) NOT NULL REFERENCES regions(id),
            quantity           BIGINT      NOT NULL DEFAULT 0,
            reserved_quantity  BIGINT      NOT NULL DEFAULT 0,
            created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (company_id, item_id, region_id),
            CONSTRAINT ck_inventories_quantity_gte_0      CHECK (quantity >= 0),
            CONSTRAINT ck_inventories_reserved_gte_0      CHECK (reserved_quantity >= 0),
            CONSTRAINT ck_inventories_reserved_lte_qty    CHECK (reserved_quantity <= quantity)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_inventories_updated_at
            BEFORE UPDATE ON inventories
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("CREATE INDEX idx_inventories_item ON inventories (item_id, region_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS inventories CASCADE;")
    op.execute("DROP TABLE IF EXISTS companies CASCADE;")
