from typing import Optional
from taskboard.errors import ForbiddenError
from taskboard.models import User, UserRole, Task, Subtask


def is_team_leader(user: Optional[User], team_code: str) -> bool:
    return (
        user is not None
        and user.role == UserRole.leader
        and user.team_code == team_code
    )


def can_modify_task(user: Optional[User], task: Task) -> bool:
    """Task creator or the leader of the task's team."""
    if user is None:
        return False
    return task.created_by == user.id or is_team_leader(user, task.team_code)


def can_modify_subtask(user: Optional[User], subtask: Subtask, task: Task) -> bool:
    # Subtask edits follow the owning task
    return subtask.task_id == task.id and can_modify_task(user, task)


def can_update_progress(user: Optional[User], subtask: Subtask, task: Task) -> bool:
    """Assignee, task creator or team leader."""
    if user is None:
        return False
    return subtask.assigned_to == user.id or can_modify_subtask(user, subtask, task)


def require_team_leader(user: Optional[User], team_code: str, detail: str) -> None:
    if not is_team_leader(user, team_code):
        raise ForbiddenError(detail)


def require_task_modifier(user: Optional[User], task: Task, detail: str) -> None:
    if not can_modify_task(user, task):
        raise ForbiddenError(detail)


def require_subtask_modifier(
    user: Optional[User], subtask: Subtask, task: Task, detail: str
) -> None:
    if not can_modify_subtask(user, subtask, task):
        raise ForbiddenError(detail)


def require_progress_updater(
    user: Optional[User], subtask: Subtask, task: Task, detail: str
) -> None:
    if not can_update_progress(user, subtask, task):
        raise ForbiddenError(detail)
