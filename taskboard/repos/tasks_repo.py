from typing import Optional, List, Dict, Any
from sqlalchemy import case, delete, update
from sqlalchemy.orm import aliased
from sqlmodel import Session, select, func
from taskboard.models import Task, Subtask, SubtaskStatus, SubtaskProgress, User

# Ordering for a member's personal subtask list
PROGRESS_RANK = {
    SubtaskProgress.not_started: 1,
    SubtaskProgress.assigned: 2,
    SubtaskProgress.in_progress: 3,
    SubtaskProgress.testing: 4,
    SubtaskProgress.completed: 5,
}


def _subtask_dict(subtask: Subtask) -> Dict[str, Any]:
    return {
        "id": subtask.id,
        "task_id": subtask.task_id,
        "title": subtask.title,
        "description": subtask.description,
        "assigned_to": subtask.assigned_to,
        "status": subtask.status.value,
        "progress": subtask.progress.value,
        "deadline": subtask.deadline,
        "created_at": subtask.created_at,
        "updated_at": subtask.updated_at,
    }


def _task_dict(task: Task) -> Dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "team_code": task.team_code,
        "created_by": task.created_by,
        "status": task.status.value,
        "created_at": task.created_at,
        "updated_at": task.updated_at,
    }


class TasksRepo:
    def create_task(self, session: Session, task: Task) -> Task:
        session.add(task)
        session.flush()
        session.refresh(task)
        return task

    def add_subtask(self, session: Session, subtask: Subtask) -> Subtask:
        session.add(subtask)
        session.flush()
        return subtask

    def get_task(self, session: Session, task_id: int) -> Optional[Task]:
        return session.get(Task, task_id)

    def get_subtask(self, session: Session, subtask_id: int) -> Optional[Subtask]:
        return session.get(Subtask, subtask_id)

    def get_subtask_for_update(self, session: Session, subtask_id: int) -> Optional[Subtask]:
        """Load a subtask with a row lock held until the transaction ends."""
        statement = (
            select(Subtask)
            .where(Subtask.id == subtask_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return session.exec(statement).first()

    def get_subtask_with_task(self, session: Session, subtask_id: int):
        statement = (
            select(Subtask, Task)
            .join(Task, Subtask.task_id == Task.id)
            .where(Subtask.id == subtask_id)
        )
        return session.exec(statement).first()

    def update(self, session: Session, obj):
        session.add(obj)
        session.flush()
        session.refresh(obj)
        return obj

    def list_subtasks_for_task(self, session: Session, task_id: int) -> List[Dict[str, Any]]:
        statement = (
            select(Subtask, User.name, User.email)
            .outerjoin(User, Subtask.assigned_to == User.id)
            .where(Subtask.task_id == task_id)
            .order_by(Subtask.created_at, Subtask.id)
        )
        subtasks = []
        for subtask, assignee_name, assignee_email in session.exec(statement).all():
            data = _subtask_dict(subtask)
            data["assigned_to_name"] = assignee_name
            data["assigned_to_email"] = assignee_email
            subtasks.append(data)
        return subtasks

    def get_task_with_subtasks(self, session: Session, task_id: int) -> Optional[Dict[str, Any]]:
        statement = (
            select(Task, User.name)
            .outerjoin(User, Task.created_by == User.id)
            .where(Task.id == task_id)
        )
        row = session.exec(statement).first()
        if row is None:
            return None

        task, creator_name = row
        data = _task_dict(task)
        data["created_by_name"] = creator_name
        data["subtasks"] = self.list_subtasks_for_task(session, task.id)
        return data

    def get_subtask_details(self, session: Session, subtask_id: int) -> Optional[Dict[str, Any]]:
        statement = (
            select(Subtask, User.name, User.email, Task.title, Task.description)
            .join(Task, Subtask.task_id == Task.id)
            .outerjoin(User, Subtask.assigned_to == User.id)
            .where(Subtask.id == subtask_id)
        )
        row = session.exec(statement).first()
        if row is None:
            return None

        subtask, assignee_name, assignee_email, task_title, task_description = row
        data = _subtask_dict(subtask)
        data.update(
            assigned_to_name=assignee_name,
            assigned_to_email=assignee_email,
            task_title=task_title,
            task_description=task_description,
        )
        return data

    def list_for_team(
        self,
        session: Session,
        team_code: str,
        *,
        completion: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Tasks of a team, newest first, with subtask counts and subtasks.

        ``completion`` is ``"completed"`` (at least one subtask and all of
        them completed), ``"active"`` (everything else) or None for all.
        """
        total_count = (
            select(func.count(Subtask.id))
            .where(Subtask.task_id == Task.id)
            .scalar_subquery()
        )
        completed_count = (
            select(func.count(Subtask.id))
            .where(
                Subtask.task_id == Task.id,
                Subtask.status == SubtaskStatus.completed,
            )
            .scalar_subquery()
        )

        statement = (
            select(
                Task,
                User.name,
                total_count.label("total_subtasks"),
                completed_count.label("completed_subtasks"),
            )
            .outerjoin(User, Task.created_by == User.id)
            .where(Task.team_code == team_code)
            .order_by(Task.created_at.desc(), Task.id.desc())
        )

        if completion == "completed":
            statement = statement.where(total_count > 0, total_count == completed_count)
        elif completion == "active":
            statement = statement.where((total_count == 0) | (total_count != completed_count))

        tasks = []
        for task, creator_name, total, completed in session.exec(statement).all():
            data = _task_dict(task)
            data["created_by_name"] = creator_name
            data["total_subtasks"] = total or 0
            data["completed_subtasks"] = completed or 0
            data["subtasks"] = self.list_subtasks_for_task(session, task.id)
            tasks.append(data)
        return tasks

    def list_available_for_team(self, session: Session, team_code: str) -> List[Dict[str, Any]]:
        statement = (
            select(Subtask, Task.title, Task.description, User.name)
            .join(Task, Subtask.task_id == Task.id)
            .outerjoin(User, Task.created_by == User.id)
            .where(
                Task.team_code == team_code,
                Subtask.status == SubtaskStatus.available,
            )
            .order_by(Subtask.created_at.desc(), Subtask.id.desc())
        )
        subtasks = []
        for subtask, task_title, task_description, creator_name in session.exec(statement).all():
            data = _subtask_dict(subtask)
            data.update(
                task_title=task_title,
                task_description=task_description,
                created_by_name=creator_name,
            )
            subtasks.append(data)
        return subtasks

    def list_for_user(self, session: Session, user_id: int) -> List[Dict[str, Any]]:
        assignee = aliased(User)
        creator = aliased(User)
        rank = case(
            *[(Subtask.progress == progress, value) for progress, value in PROGRESS_RANK.items()],
            else_=6,
        )
        statement = (
            select(
                Subtask,
                Task.title,
                Task.description,
                Task.team_code,
                assignee.name,
                creator.name,
            )
            .join(Task, Subtask.task_id == Task.id)
            .outerjoin(assignee, Subtask.assigned_to == assignee.id)
            .outerjoin(creator, Task.created_by == creator.id)
            .where(Subtask.assigned_to == user_id)
            .order_by(rank, Subtask.created_at.desc(), Subtask.id.desc())
        )
        subtasks = []
        for row in session.exec(statement).all():
            subtask, task_title, task_description, team_code, assignee_name, creator_name = row
            data = _subtask_dict(subtask)
            data.update(
                task_title=task_title,
                task_description=task_description,
                team_code=team_code,
                assigned_to_name=assignee_name,
                created_by_name=creator_name,
            )
            subtasks.append(data)
        return subtasks

    def release_assigned(self, session: Session, user_id: int, status, progress) -> int:
        """Unassign every subtask held by ``user_id`` and reset its state."""
        result = session.execute(
            update(Subtask)
            .where(Subtask.assigned_to == user_id)
            .values(assigned_to=None, status=status, progress=progress)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_subtasks_for_task(self, session: Session, task_id: int) -> int:
        result = session.execute(
            delete(Subtask)
            .where(Subtask.task_id == task_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_task(self, session: Session, task_id: int) -> bool:
        result = session.execute(
            delete(Task)
            .where(Task.id == task_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def delete_subtask(self, session: Session, subtask_id: int) -> bool:
        result = session.execute(
            delete(Subtask)
            .where(Subtask.id == subtask_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
