from typing import Optional, List, Dict, Any
from sqlalchemy import update, delete
from sqlmodel import Session, select, func
from taskboard.models import User, UserRole, MemberStatus, Subtask, SubtaskStatus
from taskboard.models.common import utc_now


class UsersRepo:
    def create(self, session: Session, user: User) -> User:
        session.add(user)
        session.flush()
        session.refresh(user)
        return user

    def get(self, session: Session, user_id: int) -> Optional[User]:
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> Optional[User]:
        statement = select(User).where(User.email == email)
        return session.exec(statement).first()

    def get_in_team(
        self,
        session: Session,
        user_id: int,
        team_code: str,
        *,
        role: Optional[UserRole] = None,
    ) -> Optional[User]:
        statement = select(User).where(User.id == user_id, User.team_code == team_code)
        if role is not None:
            statement = statement.where(User.role == role)
        return session.exec(statement).first()

    def get_by_email_and_team(
        self, session: Session, email: str, team_code: str
    ) -> Optional[User]:
        statement = select(User).where(User.email == email, User.team_code == team_code)
        return session.exec(statement).first()

    def list_members(
        self,
        session: Session,
        team_code: str,
        status: MemberStatus,
        *,
        order_by=None,
    ) -> List[User]:
        statement = select(User).where(
            User.team_code == team_code,
            User.role == UserRole.member,
            User.status == status,
        )
        statement = statement.order_by(
            order_by if order_by is not None else User.created_at.desc()
        )
        return session.exec(statement).all()

    def list_members_with_counts(
        self, session: Session, team_code: str
    ) -> List[Dict[str, Any]]:
        assigned_count = (
            select(func.count(Subtask.id))
            .where(Subtask.assigned_to == User.id)
            .scalar_subquery()
        )
        completed_count = (
            select(func.count(Subtask.id))
            .where(
                Subtask.assigned_to == User.id,
                Subtask.status == SubtaskStatus.completed,
            )
            .scalar_subquery()
        )

        statement = (
            select(
                User,
                assigned_count.label("assigned_tasks"),
                completed_count.label("completed_tasks"),
            )
            .where(
                User.team_code == team_code,
                User.role == UserRole.member,
                User.status == MemberStatus.approved,
            )
            .order_by(User.created_at.desc())
        )

        results = []
        for user, assigned_tasks, completed_tasks in session.exec(statement).all():
            results.append(
                {
                    "id": user.id,
                    "name": user.name,
                    "email": user.email,
                    "role": user.role.value,
                    "status": user.status.value,
                    "created_at": user.created_at,
                    "assigned_tasks": assigned_tasks or 0,
                    "completed_tasks": completed_tasks or 0,
                }
            )
        return results

    def transition_status(
        self,
        session: Session,
        user_id: int,
        team_code: str,
        *,
        from_status: MemberStatus,
        to_status: MemberStatus,
        actor_id: int,
    ) -> Optional[User]:
        """Move a member between statuses in one guarded UPDATE.

        Returns the refreshed user, or None when no member of ``team_code``
        was in ``from_status``.
        """
        now = utc_now()
        values: Dict[str, Any] = {"status": to_status, "updated_at": now}
        if to_status == MemberStatus.approved:
            values.update(approved_by=actor_id, approved_at=now, rejected_by=None, rejected_at=None)
        elif to_status == MemberStatus.rejected:
            values.update(rejected_by=actor_id, rejected_at=now)

        statement = (
            update(User)
            .where(
                User.id == user_id,
                User.team_code == team_code,
                User.role == UserRole.member,
                User.status == from_status,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(statement)
        if result.rowcount == 0:
            return None
        return session.get(User, user_id, populate_existing=True)

    def get_rejected(self, session: Session, user_id: int) -> Optional[User]:
        statement = select(User).where(
            User.id == user_id,
            User.role == UserRole.member,
            User.status == MemberStatus.rejected,
        )
        return session.exec(statement).first()

    def delete(self, session: Session, user_id: int) -> bool:
        result = session.execute(
            delete(User)
            .where(User.id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
