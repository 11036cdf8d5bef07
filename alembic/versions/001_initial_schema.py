"""Initial schema: profiles, split plans, generation queue and metrics

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if "generation_requests" in existing_tables:
        # Tables already exist, skip migration
        return

    # Create user_profiles table
    op.create_table(
        "user_profiles",
        sa.Column("user_id", sa.Text, primary_key=True),
        sa.Column("approach_id", sa.Text, nullable=False),
        sa.Column("weak_points", JSONType),
        sa.Column("available_equipment", JSONType),
        sa.Column("equipment_preferences", JSONType),
        sa.Column("strength_baseline", JSONType),
        sa.Column("first_name", sa.Text),
        sa.Column("gender", sa.Text),
        sa.Column("age", sa.Integer),
        sa.Column("weight", sa.Float),
        sa.Column("height", sa.Float),
        sa.Column("experience_years", sa.Float),
        sa.Column("preferred_split", sa.Text),
        sa.Column("preferred_language", sa.Text),
        sa.Column("active_split_plan_id", sa.Text),
        sa.Column("current_cycle_day", sa.Integer),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )

    # Create user_milestones table
    op.create_table(
        "user_milestones",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("milestone_type", sa.Text, nullable=False),
        sa.Column("metadata", JSONType),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "milestone_type", name="uq_user_milestones_user_type"),
    )

    # Create split_plans table
    op.create_table(
        "split_plans",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("approach_id", sa.Text, nullable=False),
        sa.Column("split_type", sa.Text, nullable=False),
        sa.Column("cycle_days", sa.Integer, nullable=False),
        sa.Column("sessions", JSONType, nullable=False),
        sa.Column("frequency_map", JSONType),
        sa.Column("volume_distribution", JSONType),
        sa.Column("rationale", sa.Text),
        sa.Column("active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_split_plans_user_id", "split_plans", ["user_id"])

    # Create generation_requests table
    op.create_table(
        "generation_requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("request_id", sa.Text, nullable=False, unique=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("context", JSONType, nullable=False),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("progress_percent", sa.Integer, nullable=False, server_default="0"),
        sa.Column("current_phase", sa.Text),
        sa.Column("output_id", sa.Text),
        sa.Column("error_message", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("started_at", sa.DateTime),
        sa.Column("completed_at", sa.DateTime),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_generation_requests_user_status", "generation_requests", ["user_id", "status"])

    # Create generation_metrics table
    op.create_table(
        "generation_metrics",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("request_id", sa.Text, nullable=False, unique=True),
        sa.Column("context_type", sa.Text, nullable=False),
        sa.Column("context", JSONType),
        sa.Column("started_at", sa.DateTime, nullable=False),
        sa.Column("completed_at", sa.DateTime),
        sa.Column("duration_ms", sa.Integer),
        sa.Column("success", sa.Boolean),
    )
    op.create_index("idx_generation_metrics_type_success", "generation_metrics", ["context_type", "success"])
    op.create_index("idx_generation_metrics_user", "generation_metrics", ["user_id"])


def downgrade() -> None:
    op.drop_table("generation_metrics")
    op.drop_table("generation_requests")
    op.drop_table("split_plans")
    op.drop_table("user_milestones")
    op.drop_table("user_profiles")
