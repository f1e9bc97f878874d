"""chapter_store_tables

Create `store_snapshots` (JSON snapshot of the chapter store) and
`chapter_sync_logs` (one row per outbound sync attempt).

Revision ID: 5f1c0a9e2d41
Revises:
Create Date: 2026-02-05 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5f1c0a9e2d41"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "store_snapshots" not in existing_tables:
        op.create_table(
            "store_snapshots",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("payload", sa.JSON(), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("saved_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name", name="uq_store_snapshots_name"),
        )

    if "chapter_sync_logs" not in existing_tables:
        op.create_table(
            "chapter_sync_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("chapter_id", sa.String(length=120), nullable=False),
            sa.Column("event_kind", sa.String(length=40), nullable=False),
            sa.Column("target", sa.String(length=200), nullable=True),
            sa.Column("sync_status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_chapter_sync_logs_chapter_id", "chapter_sync_logs", ["chapter_id"])
        op.create_index(
            "ix_chapter_sync_logs_chapter_created",
            "chapter_sync_logs",
            ["chapter_id", "created_at"],
        )


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "chapter_sync_logs" in existing_tables:
        op.drop_index("ix_chapter_sync_logs_chapter_created", table_name="chapter_sync_logs")
        op.drop_index("ix_chapter_sync_logs_chapter_id", table_name="chapter_sync_logs")
        op.drop_table("chapter_sync_logs")

    if "store_snapshots" in existing_tables:
        op.drop_table("store_snapshots")
