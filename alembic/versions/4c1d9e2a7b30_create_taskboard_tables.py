"""create_taskboard_tables

Revision ID: 4c1d9e2a7b30
Revises:
Create Date: 2026-10-17 09:12:41.503114

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4c1d9e2a7b30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("leader", "member", name="userrole")
member_status = sa.Enum("pending", "approved", "rejected", name="memberstatus")
task_status = sa.Enum("active", "completed", name="taskstatus")
subtask_status = sa.Enum("available", "assigned", "taken", "completed", name="subtaskstatus")
subtask_progress = sa.Enum(
    "not_started", "assigned", "in_progress", "testing", "completed", name="subtaskprogress"
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("team_code", sa.String(length=10), nullable=False),
        sa.Column("status", member_status, nullable=False),
        sa.Column("approved_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("rejected_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("rejected_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_team_code", "users", ["team_code"])
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_status", "users", ["status"])
    op.create_index(
        "uq_users_team_leader",
        "users",
        ["team_code"],
        unique=True,
        postgresql_where=sa.text("role = 'leader'"),
        sqlite_where=sa.text("role = 'leader'"),
    )

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("team_code", sa.String(length=10), nullable=False, unique=True),
        sa.Column("team_name", sa.String(length=255), nullable=False),
        sa.Column("leader_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("team_code", sa.String(length=10), nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", task_status, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tasks_team_code", "tasks", ["team_code"])
    op.create_index("ix_tasks_created_by", "tasks", ["created_by"])

    op.create_table(
        "subtasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("assigned_to", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", subtask_status, nullable=False),
        sa.Column("progress", subtask_progress, nullable=False),
        sa.Column("deadline", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_subtasks_task_id", "subtasks", ["task_id"])
    op.create_index("ix_subtasks_assigned_to", "subtasks", ["assigned_to"])
    op.create_index("ix_subtasks_status", "subtasks", ["status"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("subtasks")
    op.drop_table("tasks")
    op.drop_table("teams")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (subtask_progress, subtask_status, task_status, member_status, user_role):
        enum_type.drop(bind, checkfirst=True)
