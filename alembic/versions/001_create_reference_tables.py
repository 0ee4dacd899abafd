"""001: create reference tables

Revision ID: 001
Revises: 
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE regions (
            id          VARCHAR(64)  PRIMARY KEY,
            code        VARCHAR(64)  NOT NULL,
            name        VARCHAR(128) NOT NULL,
            created_at  TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_regions_code UNIQUE (code)
        );
    """)
    op.execute("""
        CREATE TABLE items (
            id          VARCHAR(64)  PRIMARY KEY,
            code        VARCHAR(64)  NOT NULL,
            name        VARCHAR(128) NOT NULL,
            created_at  TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_items_code UNIQUE (code)
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS items CASCADE;")
    op.execute("DROP TABLE IF EXISTS regions CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
