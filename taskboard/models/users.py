from datetime import datetime
from typing import Optional
from sqlmodel import Field
from sqlalchemy import Index, text
from .common import TimestampMixin, UserRole, MemberStatus


class User(TimestampMixin, table=True):
    __tablename__ = "users"
    __table_args__ = (
        # One leader per team code
        Index(
            "uq_users_team_leader",
            "team_code",
            unique=True,
            postgresql_where=text("role = 'leader'"),
            sqlite_where=text("role = 'leader'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(nullable=False, unique=True, max_length=255)
    password_hash: str = Field(nullable=False, max_length=255)
    name: str = Field(nullable=False, max_length=255)
    role: UserRole = Field(nullable=False, index=True)
    team_code: str = Field(nullable=False, max_length=10, index=True)
    status: MemberStatus = Field(default=MemberStatus.pending, nullable=False, index=True)
    approved_by: Optional[int] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    approved_at: Optional[datetime] = Field(default=None)
    rejected_by: Optional[int] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    rejected_at: Optional[datetime] = Field(default=None)

    def public_dict(self) -> dict:
        """Everything except the password hash."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "team_code": self.team_code,
            "status": self.status.value,
            "approved_by": self.approved_by,
            "approved_at": self.approved_at,
            "rejected_by": self.rejected_by,
            "rejected_at": self.rejected_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
