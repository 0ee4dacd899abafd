"""004: create item tick candles

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE item_tick_candles (
            item_id      VARCHAR(64) NOT NULL REFERENCES items(id),
            region_id    VARCHAR(64) NOT NULL REFERENCES regions(id),
            tick         BIGINT      NOT NULL,
            open_cents   BIGINT      NOT NULL,
            high_cents   BIGINT      NOT NULL,
            low_cents    BIGINT      NOT NULL,
            close_cents  BIGINT      NOT NULL,
            volume_qty   BIGINT      NOT NULL,
            trade_count  INTEGER     NOT NULL,
            vwap_cents   BIGINT,
            updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (item_id, region_id, tick),
            CONSTRAINT ck_candles_range  CHECK (low_cents <= high_cents),
            CONSTRAINT ck_candles_volume CHECK (volume_qty > 0 AND trade_count > 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_item_tick_candles_updated_at
            BEFORE UPDATE ON item_tick_candles
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS item_tick_candles CASCADE;")
