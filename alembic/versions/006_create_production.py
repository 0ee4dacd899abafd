"""006: create production tables

Revision ID: 006
Revises: 005
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE recipes (
            id               VARCHAR(64) PRIMARY KEY,
            code             VARCHAR(64) NOT NULL,
            output_item_id   VARCHAR(64) NOT NULL REFERENCES items(id),
            output_quantity  BIGINT      NOT NULL,
            duration_ticks   BIGINT      NOT NULL,
            CONSTRAINT uq_recipes_code          UNIQUE (code),
            CONSTRAINT ck_recipes_output_gt_0   CHECK (output_quantity > 0),
            CONSTRAINT ck_recipes_duration_gte_0 CHECK (duration_ticks >= 0)
        );
    """)
    op.execute("""
        CREATE TABLE recipe_inputs (
            recipe_id  VARCHAR(64) NOT NULL REFERENCES recipes(id) ON DELETE CASCADE,
            item_id    VARCHAR(64) NOT NULL REFERENCES items(id),
            quantity   BIGINT      NOT NULL,
            PRIMARY KEY (recipe_id, item_id),
            CONSTRAINT ck_recipe_inputs_quantity_gt_0 CHECK (quantity > 0)
        );
    """)
    op.execute("""
        CREATE TABLE company_recipes (
            company_id   VARCHAR(64) NOT NULL REFERENCES companies(id),
            recipe_id    VARCHAR(64) NOT NULL REFERENCES recipes(id),
            is_unlocked  BOOLEAN     NOT NULL DEFAULT FALSE,
            PRIMARY KEY (company_id, recipe_id)
        );
    """)
    op.execute("""
        CREATE TABLE production_jobs (
            id              VARCHAR(64) PRIMARY KEY,
            company_id      VARCHAR(64) NOT NULL REFERENCES companies(id),
            recipe_id       VARCHAR(64) NOT NULL REFERENCES recipes(id),
            status          VARCHAR(16) NOT NULL DEFAULT 'IN_PROGRESS',
            runs            BIGINT      NOT NULL,
            started_tick    BIGINT      NOT NULL,
            due_tick        BIGINT      NOT NULL,
            completed_tick  BIGINT,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_production_jobs_status CHECK (
                status IN ('IN_PROGRESS', 'COMPLETED', 'CANCELLED')
            ),
            CONSTRAINT ck_production_jobs_runs_gt_0 CHECK (runs > 0),
            CONSTRAINT ck_production_jobs_due CHECK (due_tick >= started_tick)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_production_jobs_updated_at
            BEFORE UPDATE ON production_jobs
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE INDEX idx_production_jobs_due
            ON production_jobs (due_tick, created_at)
            WHERE status = 'IN_PROGRESS';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS production_jobs CASCADE;")
    op.execute("DROP TABLE IF EXISTS company_recipes CASCADE;")
    op.execute("DROP TABLE IF EXISTS recipe_inputs CASCADE;")
    op.execute("DROP TABLE IF EXISTS recipes CASCADE;")
