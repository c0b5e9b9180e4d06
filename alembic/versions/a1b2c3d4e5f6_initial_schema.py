"""Initial schema: activities and user_progress.

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    """Create activities and user_progress tables."""
    op.create_table(
        "activities",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(255),
            nullable=False,
            index=True,
            comment="Auth provider user ID",
        ),
        sa.Column("activity_type", sa.String(20), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("distance_km", sa.Float(), nullable=False, server_default="0"),
        sa.Column("duration_minutes", sa.Float(), nullable=False, server_default="0"),
        sa.Column("activity_date", sa.Date(), nullable=False, index=True),
        sa.Column("calories_estimate", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("source", sa.String(20), nullable=False, server_default="manual"),
        sa.Column("external_activity_id", sa.String(64), nullable=True, index=True),
        sa.Column(
            "qc_status",
            sa.String(32),
            nullable=False,
            server_default="accepted",
            comment="QC validation status: accepted, accepted_with_warnings",
        ),
        sa.Column("qc_warnings", sa.JSON(), nullable=True, comment="QC warnings (if any)"),
        sa.Column("qc_metrics", sa.JSON(), nullable=True, comment="Speed and pace"),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id", "source", "external_activity_id", name="uq_activities_user_external_id"
        ),
        comment="Manually logged and imported activities",
    )
    op.create_index("idx_activities_user_date", "activities", ["user_id", "activity_date"])

    op.create_table(
        "user_progress",
        sa.Column("user_id", sa.String(255), primary_key=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    """Drop activities and user_progress tables."""
    op.drop_table("user_progress")
    op.drop_index("idx_activities_user_date", table_name="activities")
    op.drop_table("activities")
