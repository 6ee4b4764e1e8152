from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from taskboard.models import SubtaskProgress


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SubtaskCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    assigned_to: Optional[int] = None
    deadline: Optional[datetime] = None


class TaskCreateRequest(_Request):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    team_code: str = Field(alias="teamCode", min_length=1)
    created_by: int = Field(alias="createdBy")
    subtasks: List[SubtaskCreate] = Field(min_length=1)
    assign_specific: bool = Field(default=False, alias="assignSpecific")


class TaskUpdateRequest(_Request):
    title: Optional[str] = None
    description: Optional[str] = None
    user_id: int = Field(alias="userId")


class SubtaskUpdateRequest(_Request):
    title: Optional[str] = None
    description: Optional[str] = None
    assigned_to: Optional[int] = None
    user_id: int = Field(alias="userId")


class UserActionRequest(_Request):
    user_id: int = Field(alias="userId")


class AssignSubtaskRequest(_Request):
    user_id: int = Field(alias="userId")
    assigned_by: int = Field(alias="assignedBy")


class ProgressUpdateRequest(_Request):
    progress: SubtaskProgress
    user_id: int = Field(alias="userId")


class DeadlineUpdateRequest(_Request):
    deadline: datetime
    user_id: int = Field(alias="userId")
