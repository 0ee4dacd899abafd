"""007: create research tables

Revision ID: 007
Revises: 006
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE research_nodes (
            id               VARCHAR(64) PRIMARY KEY,
            code             VARCHAR(64) NOT NULL,
            cost_cash_cents  BIGINT      NOT NULL,
            duration_ticks   BIGINT      NOT NULL,
            CONSTRAINT uq_research_nodes_code       UNIQUE (code),
            CONSTRAINT ck_research_nodes_cost_gte_0 CHECK (cost_cash_cents >= 0),
            CONSTRAINT ck_research_nodes_duration   CHECK (duration_ticks >= 0)
        );
    """)
    op.execute("""
        CREATE TABLE research_prerequisites (
            node_id               VARCHAR(64) NOT NULL REFERENCES research_nodes(id),
            prerequisite_node_id  VARCHAR(64) NOT NULL REFERENCES research_nodes(id),
            PRIMARY KEY (node_id, prerequisite_node_id),
            CONSTRAINT ck_research_prerequisites_not_self CHECK (node_id <> prerequisite_node_id)
        );
    """)
    op.execute("""
        CREATE INDEX idx_research_prerequisites_reverse
            ON research_prerequisites (prerequisite_node_id);
    """)
    op.execute("""
        CREATE TABLE research_unlock_recipes (
            node_id    VARCHAR(64) NOT NULL REFERENCES research_nodes(id),
            recipe_id  VARCHAR(64) NOT NULL REFERENCES recipes(id),
            PRIMARY KEY (node_id, recipe_id)
        );
    """)
    op.execute("""
        CREATE TABLE company_research (
            company_id      VARCHAR(64) NOT NULL REFERENCES companies(id),
            node_id         VARCHAR(64) NOT NULL REFERENCES research_nodes(id),
            status          VARCHAR(16) NOT NULL,
            tick_started    BIGINT,
            tick_completes  BIGINT,
            updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (company_id, node_id),
            CONSTRAINT ck_company_research_status CHECK (
                status IN ('LOCKED', 'AVAILABLE', 'RESEARCHING', 'COMPLETED')
            )
        );
    """)
    op.execute("""
        CREATE TABLE research_jobs (
            id               VARCHAR(64) PRIMARY KEY,
            company_id       VARCHAR(64) NOT NULL REFERENCES companies(id),
            node_id          VARCHAR(64) NOT NULL REFERENCES research_nodes(id),
            status           VARCHAR(16) NOT NULL DEFAULT 'RUNNING',
            cost_cash_cents  BIGINT      NOT NULL,
            tick_started     BIGINT      NOT NULL,
            tick_completes   BIGINT      NOT NULL,
            tick_closed      BIGINT,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_research_jobs_status CHECK (
                status IN ('RUNNING', 'COMPLETED', 'CANCELLED')
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_research_jobs_updated_at
            BEFORE UPDATE ON research_jobs
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    # At most one running job per (company, node)
    op.execute("""
        CREATE UNIQUE INDEX uq_research_jobs_running
            ON research_jobs (company_id, node_id)
            WHERE status = 'RUNNING';
    """)
    op.execute("""
        CREATE INDEX idx_research_jobs_due
            ON research_jobs (tick_completes, created_at)
            WHERE status = 'RUNNING';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS research_jobs CASCADE;")
    op.execute("DROP TABLE IF EXISTS company_research CASCADE;")
    op.execute("DROP TABLE IF EXISTS research_unlock_recipes CASCADE;")
    op.execute("DROP TABLE IF EXISTS research_prerequisites CASCADE;")
    op.execute("DROP TABLE IF EXISTS research_nodes CASCADE;")
