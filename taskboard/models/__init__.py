from .common import UserRole, MemberStatus, TaskStatus, SubtaskStatus, SubtaskProgress
from .users import User
from .team import Team
from .tasks import Task, Subtask

__all__ = [
    "UserRole",
    "MemberStatus",
    "TaskStatus",
    "SubtaskStatus",
    "SubtaskProgress",
    "User",
    "Team",
    "Task",
    "Subtask",
]
