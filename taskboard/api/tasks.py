from typing import Any, Dict, List
from fastapi import APIRouter, Depends
from sqlmodel import Session

from taskboard.api.deps import get_db_session
from taskboard.schemas.tasks import (
    AssignSubtaskRequest,
    DeadlineUpdateRequest,
    ProgressUpdateRequest,
    SubtaskUpdateRequest,
    TaskCreateRequest,
    TaskUpdateRequest,
    UserActionRequest,
)
from taskboard.services import tasks as task_service


router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


@router.post("/create")
def create_task(
    request: TaskCreateRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    """Create a task together with its subtasks."""
    task = task_service.create_task(
        session,
        title=request.title,
        description=request.description,
        team_code=request.team_code,
        created_by=request.created_by,
        subtasks=[subtask.model_dump() for subtask in request.subtasks],
        assign_specific=request.assign_specific,
    )
    return {"message": "Task created successfully", "task": task}


@router.get("/team/{team_code}")
def list_team_tasks(team_code: str, session: Session = Depends(get_db_session)) -> List[Dict[str, Any]]:
    return task_service.list_tasks_for_team(session, team_code)


@router.get("/team/{team_code}/available")
def list_available_subtasks(team_code: str, session: Session = Depends(get_db_session)) -> List[Dict[str, Any]]:
    """Subtasks nobody has taken or been assigned yet."""
    return task_service.list_available_subtasks(session, team_code)


@router.get("/team/{team_code}/status/{status}")
def list_tasks_by_status(
    team_code: str, status: str, session: Session = Depends(get_db_session)
) -> List[Dict[str, Any]]:
    return task_service.list_tasks_by_status(session, team_code, status)


@router.get("/user/{user_id}/subtasks")
def list_user_subtasks(user_id: int, session: Session = Depends(get_db_session)) -> List[Dict[str, Any]]:
    return task_service.list_user_subtasks(session, user_id)


@router.put("/subtask/{subtask_id}/take")
def take_subtask(
    subtask_id: int, request: UserActionRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    subtask = task_service.take_subtask(session, subtask_id=subtask_id, user_id=request.user_id)
    return {"message": "Subtask assigned to you successfully!", "subtask": subtask}


@router.put("/subtask/{subtask_id}/assign-to")
def assign_subtask(
    subtask_id: int, request: AssignSubtaskRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    subtask = task_service.assign_subtask(
        session,
        subtask_id=subtask_id,
        user_id=request.user_id,
        assigned_by=request.assigned_by,
    )
    return {"message": "Subtask assigned to member successfully", "subtask": subtask}


@router.put("/subtask/{subtask_id}/progress")
def update_progress(
    subtask_id: int, request: ProgressUpdateRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    subtask = task_service.update_progress(
        session,
        subtask_id=subtask_id,
        progress=request.progress,
        user_id=request.user_id,
    )
    return {"message": "Progress updated successfully", "subtask": subtask}


@router.put("/subtask/{subtask_id}/deadline")
def update_deadline(
    subtask_id: int, request: DeadlineUpdateRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    subtask = task_service.update_deadline(
        session,
        subtask_id=subtask_id,
        deadline=request.deadline,
        user_id=request.user_id,
    )
    return {"message": "Deadline updated successfully", "subtask": subtask}


@router.put("/subtask/{subtask_id}")
def edit_subtask(
    subtask_id: int, request: SubtaskUpdateRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    subtask = task_service.edit_subtask(
        session,
        subtask_id=subtask_id,
        user_id=request.user_id,
        title=request.title,
        description=request.description,
        assigned_to=request.assigned_to,
    )
    return {"message": "Subtask updated successfully", "subtask": subtask}


@router.delete("/subtask/{subtask_id}")
def delete_subtask(
    subtask_id: int, request: UserActionRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    task_service.delete_subtask(session, subtask_id=subtask_id, user_id=request.user_id)
    return {"message": "Subtask deleted successfully"}


@router.get("/{task_id}")
def get_task(task_id: int, session: Session = Depends(get_db_session)) -> Dict[str, Any]:
    return task_service.get_task(session, task_id)


@router.put("/{task_id}")
def edit_task(
    task_id: int, request: TaskUpdateRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    task = task_service.edit_task(
        session,
        task_id=task_id,
        user_id=request.user_id,
        title=request.title,
        description=request.description,
    )
    return {"message": "Task updated successfully", "task": task}


@router.delete("/{task_id}")
def delete_task(
    task_id: int, request: UserActionRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    task_service.delete_task(session, task_id=task_id, user_id=request.user_id)
    return {"message": "Task deleted successfully"}
