"""Initial schema: holdings, prices, decisions, settings

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
import json
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from driftwatch.core.config import settings


# revision identifiers, used by Alembic.
revision: str = "3f1a9c2d7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OPEN_PREDICATE = sa.text("status IN ('open', 'ack', 'snoozed')")


def upgrade() -> None:
    op.create_table(
        "holdings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("symbol", sa.String(length=12), nullable=False),
        sa.Column("label", sa.String(length=120), nullable=True),
        sa.Column("shares", sa.Float(), nullable=False),
        sa.Column("target_weight", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("symbol"),
    )

    op.create_table(
        "prices",
        sa.Column("symbol", sa.String(length=12), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("close", sa.Float(), nullable=False),
        sa.Column("source", sa.String(length=50), nullable=False),
        sa.Column("ingested_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("symbol", "date"),
    )

    op.create_table(
        "decisions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("decision_type", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("rationale", sa.Text(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("subject_symbol", sa.String(length=12), nullable=True),
        sa.Column("as_of_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_decisions_status_created", "decisions", ["status", "created_at"])
    # At most one open-state decision per subject
    op.create_index(
        "uq_decisions_open_subject",
        "decisions",
        ["decision_type", "subject_symbol", "as_of_date"],
        unique=True,
        sqlite_where=OPEN_PREDICATE,
        postgresql_where=OPEN_PREDICATE,
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("value_json", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )

    # Seed the drift threshold default
    conn = op.get_bind()
    conn.execute(
        sa.text(
            "INSERT INTO settings (key, value_json, updated_at) "
            "VALUES (:key, :value_json, CURRENT_TIMESTAMP)"
        ),
        {
            "key": "drift_threshold",
            "value_json": json.dumps({"pct": settings.DRIFT_THRESHOLD_DEFAULT}),
        },
    )


def downgrade() -> None:
    op.drop_table("settings")
    op.drop_index("uq_decisions_open_subject", table_name="decisions")
    op.drop_index("ix_decisions_status_created", table_name="decisions")
    op.drop_table("decisions")
    op.drop_table("prices")
    op.drop_table("holdings")
