"""010: create tick executions

Revision ID: 010
Revises: 009
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "010"
down_revision: Union[str, None] = "009"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE tick_executions (
            execution_key  VARCHAR(96)  PRIMARY KEY,
            tick_before    BIGINT       NOT NULL,
            tick_after     BIGINT       NOT NULL,
            created_at     TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_tick_executions_one_tick CHECK (tick_after = tick_before + 1)
        );
    """)
    op.execute(
        "COMMENT ON TABLE tick_executions IS "
        "'One row per keyed tick advance; a repeated key is a no-op';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS tick_executions CASCADE;")
