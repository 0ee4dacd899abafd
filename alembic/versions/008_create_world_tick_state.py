"""008: create world tick state

Revision ID: 008
Revises: 007
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE world_tick_state (
            id                INTEGER     PRIMARY KEY,
            current_tick      BIGINT      NOT NULL DEFAULT 0,
            lock_version      BIGINT      NOT NULL DEFAULT 0,
            last_advanced_at  TIMESTAMPTZ,
            CONSTRAINT ck_world_tick_state_singleton CHECK (id = 1),
            CONSTRAINT ck_world_tick_state_tick_gte_0 CHECK (current_tick >= 0)
        );
    """)
    op.execute(
        "COMMENT ON TABLE world_tick_state IS "
        "'Singleton world clock; lock_version is the optimistic lock for tick advances';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS world_tick_state CASCADE;")
