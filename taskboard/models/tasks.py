from datetime import datetime
from typing import Optional
from sqlmodel import Field
from .common import TimestampMixin, TaskStatus, SubtaskStatus, SubtaskProgress


class Task(TimestampMixin, table=True):
    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False, max_length=255)
    description: Optional[str] = Field(default=None)
    team_code: str = Field(nullable=False, max_length=10, index=True)
    created_by: Optional[int] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL", index=True
    )
    status: TaskStatus = Field(default=TaskStatus.active, nullable=False)


class Subtask(TimestampMixin, table=True):
    __tablename__ = "subtasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", ondelete="CASCADE", nullable=False, index=True)
    title: str = Field(nullable=False, max_length=255)
    description: Optional[str] = Field(default=None)
    assigned_to: Optional[int] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL", index=True
    )
    status: SubtaskStatus = Field(default=SubtaskStatus.available, nullable=False, index=True)
    progress: SubtaskProgress = Field(default=SubtaskProgress.not_started, nullable=False)
    deadline: Optional[datetime] = Field(default=None)
