from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field
from .common import utc_now


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    team_code: str = Field(nullable=False, unique=True, max_length=10)
    team_name: str = Field(nullable=False, max_length=255)
    leader_id: Optional[int] = Field(default=None, foreign_key="users.id", unique=True)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
