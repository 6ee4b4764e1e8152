from datetime import datetime, timezone
from enum import Enum
from sqlmodel import SQLModel, Field
from sqlalchemy import event


class UserRole(str, Enum):
    leader = "leader"
    member = "member"


class MemberStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class TaskStatus(str, Enum):
    active = "active"
    completed = "completed"


class SubtaskStatus(str, Enum):
    available = "available"
    assigned = "assigned"
    taken = "taken"
    completed = "completed"


class SubtaskProgress(str, Enum):
    not_started = "not_started"
    assigned = "assigned"
    in_progress = "in_progress"
    testing = "testing"
    completed = "completed"


def utc_now():
    return datetime.now(timezone.utc)


class TimestampMixin(SQLModel):
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
    updated_at: datetime = Field(default_factory=utc_now, nullable=False)


@event.listens_for(TimestampMixin, "before_update", propagate=True)
def update_timestamp(mapper, connection, target):
    target.updated_at = datetime.now(timezone.utc)
