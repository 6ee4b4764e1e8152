import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlmodel import Session

from taskboard.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from taskboard.models import MemberStatus, Subtask, SubtaskProgress, Task, UserRole
from taskboard.repos import TasksRepo, UsersRepo
from taskboard.security.permissions import (
    require_progress_updater,
    require_subtask_modifier,
    require_task_modifier,
    require_team_leader,
)
from taskboard.services.subtask_state import (
    SubtaskEvent,
    SubtaskState,
    apply,
    initial_state,
    write_state,
)

logger = logging.getLogger(__name__)

TASK_COMPLETION_FILTERS = ("active", "completed")

tasks_repo = TasksRepo()
users_repo = UsersRepo()


def create_task(
    session: Session,
    *,
    title: str,
    description: Optional[str],
    team_code: str,
    created_by: int,
    subtasks: Iterable[Dict[str, Any]],
    assign_specific: bool = False,
) -> Dict[str, Any]:
    """Insert a task and all of its subtasks, or nothing at all."""
    subtasks = list(subtasks or [])
    if not subtasks:
        raise ValidationError("Missing required fields")

    if assign_specific:
        for entry in subtasks:
            if entry.get("assigned_to"):
                _load_team_member(session, entry["assigned_to"], team_code)

    try:
        task = tasks_repo.create_task(
            session,
            Task(
                title=title,
                description=description,
                team_code=team_code,
                created_by=created_by,
            ),
        )
        for entry in subtasks:
            assignee = entry.get("assigned_to") if assign_specific else None
            subtask = Subtask(
                task_id=task.id,
                title=entry["title"],
                description=entry.get("description") or None,
                assigned_to=assignee or None,
                deadline=entry.get("deadline"),
            )
            write_state(subtask, initial_state(assigned=bool(assignee)))
            tasks_repo.add_subtask(session, subtask)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        "Task %s created in team %s with %d subtasks", task.id, team_code, len(subtasks)
    )
    return tasks_repo.get_task_with_subtasks(session, task.id)


def list_tasks_for_team(session: Session, team_code: str) -> List[Dict[str, Any]]:
    return tasks_repo.list_for_team(session, team_code)


def list_tasks_by_status(session: Session, team_code: str, status: str) -> List[Dict[str, Any]]:
    """Tasks whose subtasks are all completed, or every other task.

    A task without subtasks counts as active.
    """
    if status not in TASK_COMPLETION_FILTERS:
        raise ValidationError("Status must be 'active' or 'completed'")
    return tasks_repo.list_for_team(session, team_code, completion=status)


def list_available_subtasks(session: Session, team_code: str) -> List[Dict[str, Any]]:
    return tasks_repo.list_available_for_team(session, team_code)


def list_user_subtasks(session: Session, user_id: int) -> List[Dict[str, Any]]:
    return tasks_repo.list_for_user(session, user_id)


def get_task(session: Session, task_id: int) -> Dict[str, Any]:
    task = tasks_repo.get_task_with_subtasks(session, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


def _load_subtask(session: Session, subtask_id: int):
    row = tasks_repo.get_subtask_with_task(session, subtask_id)
    if row is None:
        raise NotFoundError("Subtask not found")
    return row


def _load_caller(session: Session, user_id: int):
    user = users_repo.get(session, user_id)
    if user is None:
        raise ForbiddenError("User not found")
    return user


def _load_team_member(session: Session, user_id: int, team_code: str, error=ValidationError):
    """An approved user of ``team_code``; ``error`` is raised for anyone else."""
    user = users_repo.get(session, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.team_code != team_code or user.status != MemberStatus.approved:
        raise error("User is not an approved member of this team")
    return user


def take_subtask(session: Session, *, subtask_id: int, user_id: int) -> Dict[str, Any]:
    """Claim an available subtask for ``user_id``.

    The row is locked before its status is checked, so of two concurrent
    claims only the first commits and the second sees it already taken.
    """
    try:
        subtask = tasks_repo.get_subtask_for_update(session, subtask_id)
        if subtask is None:
            raise NotFoundError("Subtask not found")

        task = tasks_repo.get_task(session, subtask.task_id)
        _load_team_member(session, user_id, task.team_code, error=ForbiddenError)

        state = apply(SubtaskState.of(subtask), SubtaskEvent.TAKE)
        write_state(subtask, state)
        subtask.assigned_to = user_id
        tasks_repo.update(session, subtask)
        session.commit()
    except ConflictError:
        session.rollback()
        logger.warning("Subtask %s already claimed; user %s rejected", subtask_id, user_id)
        raise
    except Exception:
        session.rollback()
        raise

    logger.info("Subtask %s taken by user %s", subtask_id, user_id)
    return tasks_repo.get_subtask_details(session, subtask_id)


def assign_subtask(
    session: Session, *, subtask_id: int, user_id: int, assigned_by: int
) -> Dict[str, Any]:
    """Leader-directed assignment. Overwrites any current assignee."""
    subtask, task = _load_subtask(session, subtask_id)
    actor = _load_caller(session, assigned_by)
    require_team_leader(actor, task.team_code, "Only the team leader can assign subtasks")
    _load_team_member(session, user_id, task.team_code)

    try:
        write_state(subtask, apply(SubtaskState.of(subtask), SubtaskEvent.ASSIGN))
        subtask.assigned_to = user_id
        tasks_repo.update(session, subtask)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Subtask %s assigned to %s by %s", subtask_id, user_id, assigned_by)
    return tasks_repo.get_subtask_details(session, subtask_id)


def update_progress(
    session: Session, *, subtask_id: int, progress: SubtaskProgress, user_id: int
) -> Dict[str, Any]:
    subtask, task = _load_subtask(session, subtask_id)
    user = _load_caller(session, user_id)
    require_progress_updater(user, subtask, task, "Not authorized to update this subtask")

    try:
        state = apply(SubtaskState.of(subtask), SubtaskEvent.PROGRESS, progress=progress)
        write_state(subtask, state)
        tasks_repo.update(session, subtask)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        "Subtask %s progress -> %s (status %s) by %s",
        subtask_id,
        state.progress.value,
        state.status.value,
        user_id,
    )
    return tasks_repo.get_subtask_details(session, subtask_id)


def update_deadline(
    session: Session, *, subtask_id: int, deadline: datetime, user_id: int
) -> Dict[str, Any]:
    user = users_repo.get(session, user_id)
    if user is None or user.role != UserRole.leader:
        raise ForbiddenError("Only team leaders can update deadlines")

    subtask, task = _load_subtask(session, subtask_id)
    if task.team_code != user.team_code:
        raise ForbiddenError("Only team leaders can update deadlines")

    try:
        subtask.deadline = deadline
        tasks_repo.update(session, subtask)
        session.commit()
    except Exception:
        session.rollback()
        raise

    return tasks_repo.get_subtask_details(session, subtask_id)


def edit_task(
    session: Session,
    *,
    task_id: int,
    user_id: int,
    title: Optional[str],
    description: Optional[str],
) -> Dict[str, Any]:
    task = tasks_repo.get_task(session, task_id)
    if task is None:
        raise NotFoundError("Task not found")

    user = _load_caller(session, user_id)
    require_task_modifier(user, task, "Not authorized to edit this task")

    try:
        if title is not None:
            task.title = title
        task.description = description
        tasks_repo.update(session, task)
        session.commit()
    except Exception:
        session.rollback()
        raise

    return tasks_repo.get_task_with_subtasks(session, task_id)


def edit_subtask(
    session: Session,
    *,
    subtask_id: int,
    user_id: int,
    title: Optional[str],
    description: Optional[str],
    assigned_to: Optional[int],
) -> Dict[str, Any]:
    """Replace a subtask's fields and restart its lifecycle from the assignment.

    Any reported progress is discarded: the subtask goes back to
    assigned/assigned with an assignee, or available/not_started without one.
    """
    subtask, task = _load_subtask(session, subtask_id)
    user = _load_caller(session, user_id)
    require_subtask_modifier(user, subtask, task, "Not authorized to edit this subtask")
    if assigned_to:
        _load_team_member(session, assigned_to, task.team_code)

    try:
        if title is not None:
            subtask.title = title
        subtask.description = description
        subtask.assigned_to = assigned_to or None
        state = apply(
            SubtaskState.of(subtask), SubtaskEvent.EDIT, assigned=bool(assigned_to)
        )
        write_state(subtask, state)
        tasks_repo.update(session, subtask)
        session.commit()
    except Exception:
        session.rollback()
        raise

    return tasks_repo.get_subtask_details(session, subtask_id)


def delete_task(session: Session, *, task_id: int, user_id: int) -> None:
    task = tasks_repo.get_task(session, task_id)
    if task is None:
        raise NotFoundError("Task not found")

    user = _load_caller(session, user_id)
    require_task_modifier(user, task, "Not authorized to delete this task")

    try:
        removed = tasks_repo.delete_subtasks_for_task(session, task_id)
        tasks_repo.delete_task(session, task_id)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.expunge_all()
    logger.info("Task %s deleted by %s (%d subtasks)", task_id, user_id, removed)


def delete_subtask(session: Session, *, subtask_id: int, user_id: int) -> None:
    subtask, task = _load_subtask(session, subtask_id)
    user = _load_caller(session, user_id)
    require_subtask_modifier(user, subtask, task, "Not authorized to delete this subtask")

    try:
        if not tasks_repo.delete_subtask(session, subtask_id):
            raise NotFoundError("Subtask not found")
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.expunge_all()
    logger.info("Subtask %s deleted by %s", subtask_id, user_id)
