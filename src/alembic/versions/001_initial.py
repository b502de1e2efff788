"""Initial migration: agents, agent instances, provisioning jobs

Revision ID: 001
Revises:
Create Date: 2026-01-15 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JOB_IN_FLIGHT = "status IN ('queued', 'provisioning')"
INSTANCE_ACTIVE = "status IN ('pending', 'provisioning', 'running')"


def upgrade() -> None:
    # 1. Agents (owned by the dashboard; status flipped to active on completion)
    op.create_table(
        "agents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column(
            "status",
            sqlmodel.sql.sqltypes.AutoString(length=20),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_agents_user_id", "agents", ["user_id"], unique=False)

    # 2. Agent instances (the VM backing an agent)
    op.create_table(
        "agent_instances",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agent_id", sa.Uuid(), nullable=False),
        sa.Column(
            "status",
            sqlmodel.sql.sqltypes.AutoString(length=20),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("server_id", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=True),
        sa.Column("server_ip", sqlmodel.sql.sqltypes.AutoString(length=45), nullable=True),
        sa.Column("tailscale_ip", sqlmodel.sql.sqltypes.AutoString(length=45), nullable=True),
        sa.Column(
            "region",
            sqlmodel.sql.sqltypes.AutoString(length=50),
            nullable=False,
            server_default="us-east",
        ),
        sa.Column("current_step", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=True),
        sa.Column("error", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("stopped_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["agent_id"], ["agents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_agent_instances_agent_id", "agent_instances", ["agent_id"], unique=False)
    op.create_index(
        "uq_agent_instances_agent_active",
        "agent_instances",
        ["agent_id"],
        unique=True,
        postgresql_where=sa.text(INSTANCE_ACTIVE),
        sqlite_where=sa.text(INSTANCE_ACTIVE),
    )

    # 3. Provisioning jobs (audit trail; never deleted once terminal)
    op.create_table(
        "provisioning_jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agent_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("stripe_event_id", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column(
            "region",
            sqlmodel.sql.sqltypes.AutoString(length=50),
            nullable=False,
            server_default="us-east",
        ),
        sa.Column(
            "status",
            sqlmodel.sql.sqltypes.AutoString(length=20),
            nullable=False,
            server_default="queued",
        ),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("workflow_run_id", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("error", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("failed_step", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=True),
        sa.Column("claimed_at", sa.DateTime(), nullable=True),
        sa.Column("last_heartbeat_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["agent_id"], ["agents.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("retry_count >= 0", name="ck_provisioning_jobs_retry_count"),
    )
    op.create_index(
        "ix_provisioning_jobs_agent_id", "provisioning_jobs", ["agent_id"], unique=False
    )
    op.create_index("ix_provisioning_jobs_user_id", "provisioning_jobs", ["user_id"], unique=False)
    op.create_index(
        "ix_provisioning_jobs_stripe_event_id",
        "provisioning_jobs",
        ["stripe_event_id"],
        unique=False,
    )
    op.create_index("ix_provisioning_jobs_status", "provisioning_jobs", ["status"], unique=False)
    op.create_index(
        "uq_provisioning_jobs_user_in_flight",
        "provisioning_jobs",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text(JOB_IN_FLIGHT),
        sqlite_where=sa.text(JOB_IN_FLIGHT),
    )


def downgrade() -> None:
    op.drop_index("uq_provisioning_jobs_user_in_flight", table_name="provisioning_jobs")
    op.drop_index("ix_provisioning_jobs_status", table_name="provisioning_jobs")
    op.drop_index("ix_provisioning_jobs_stripe_event_id", table_name="provisioning_jobs")
    op.drop_index("ix_provisioning_jobs_user_id", table_name="provisioning_jobs")
    op.drop_index("ix_provisioning_jobs_agent_id", table_name="provisioning_jobs")
    op.drop_table("provisioning_jobs")

    op.drop_index("uq_agent_instances_agent_active", table_name="agent_instances")
    op.drop_index("ix_agent_instances_agent_id", table_name="agent_instances")
    op.drop_table("agent_instances")

    op.drop_index("ix_agents_user_id", table_name="agents")
    op.drop_table("agents")
