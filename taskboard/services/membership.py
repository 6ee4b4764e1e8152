"""Registration, login and the member approval workflow.

Members move through ``pending -> approved``, ``pending -> rejected`` and
``rejected -> approved``. Every transition is a single guarded UPDATE, so a
member that already left the expected status reports
:class:`AlreadyProcessedError` instead of being overwritten.
"""

import logging
import secrets
import string
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from taskboard.errors import (
    AlreadyProcessedError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from taskboard.models import MemberStatus, Team, User, UserRole
from taskboard.repos import TasksRepo, TeamsRepo, UsersRepo
from taskboard.security.jwt import create_access_token
from taskboard.security.passwords import hash_password, verify_password
from taskboard.security.permissions import require_team_leader
from taskboard.services import subtask_state

logger = logging.getLogger(__name__)

TEAM_CODE_LENGTH = 6
TEAM_CODE_ALPHABET = string.ascii_uppercase + string.digits
_TEAM_CODE_ATTEMPTS = 10

users_repo = UsersRepo()
teams_repo = TeamsRepo()
tasks_repo = TasksRepo()


def generate_team_code() -> str:
    return "".join(secrets.choice(TEAM_CODE_ALPHABET) for _ in range(TEAM_CODE_LENGTH))


def _unused_team_code(session: Session) -> str:
    for _ in range(_TEAM_CODE_ATTEMPTS):
        code = generate_team_code()
        if not teams_repo.code_exists(session, code):
            return code
    raise ConflictError("Could not allocate a team code")


def register_leader(
    session: Session, *, email: str, password: str, name: str, team_name: str
) -> Dict[str, Any]:
    """Create a team and its approved leader in one transaction."""
    if users_repo.get_by_email(session, email):
        raise ConflictError("User already exists")

    password_hash = hash_password(password)

    try:
        team_code = _unused_team_code(session)
        leader = users_repo.create(
            session,
            User(
                email=email,
                password_hash=password_hash,
                name=name,
                role=UserRole.leader,
                team_code=team_code,
                status=MemberStatus.approved,
            ),
        )
        teams_repo.create(
            session, Team(team_code=team_code, team_name=team_name, leader_id=leader.id)
        )
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("User already exists")
    except Exception:
        session.rollback()
        raise

    session.refresh(leader)
    logger.info("Registered leader %s for team %s", leader.id, team_code)
    return {"teamCode": team_code, "user": leader.public_dict()}


def register_member(
    session: Session, *, email: str, password: str, name: str, team_code: str
) -> Dict[str, Any]:
    if not teams_repo.code_exists(session, team_code):
        raise NotFoundError("Invalid team code")

    if users_repo.get_by_email(session, email):
        raise ConflictError("User already exists")

    try:
        member = users_repo.create(
            session,
            User(
                email=email,
                password_hash=hash_password(password),
                name=name,
                role=UserRole.member,
                team_code=team_code,
                status=MemberStatus.pending,
            ),
        )
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("User already exists")
    except Exception:
        session.rollback()
        raise

    session.refresh(member)
    logger.info("Member %s requested to join team %s", member.id, team_code)
    return {"user": member.public_dict()}


_BLOCKED_LOGIN_MESSAGES = {
    MemberStatus.pending: "Your membership is pending approval from the team leader",
    MemberStatus.rejected: "Your membership request was rejected. Please contact your team leader.",
}


def login(session: Session, *, email: str, password: str, team_code: str) -> Dict[str, Any]:
    user = users_repo.get_by_email_and_team(session, email, team_code)
    if not user or not verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")

    if user.role == UserRole.member and user.status != MemberStatus.approved:
        raise ForbiddenError(_BLOCKED_LOGIN_MESSAGES[user.status])

    token = create_access_token(user.id, email=user.email, role=user.role.value)
    logger.info("User %s logged in", user.id)
    return {"token": token, "user": user.public_dict()}


def check_member_status(session: Session, *, email: str, team_code: str) -> Dict[str, Any]:
    """Report whether ``email`` could log in to ``team_code``, ignoring the password."""
    user = users_repo.get_by_email_and_team(session, email, team_code)
    if not user:
        return {"canLogin": False, "message": "No account found with these credentials"}

    if user.role == UserRole.leader:
        return {"canLogin": True, "status": MemberStatus.approved.value, "role": user.role.value}

    if user.status == MemberStatus.approved:
        return {"canLogin": True, "status": user.status.value, "role": user.role.value}
    if user.status == MemberStatus.pending:
        return {"canLogin": False, "status": user.status.value, "message": "Membership pending approval"}
    return {"canLogin": False, "status": user.status.value, "message": "Membership request rejected"}


def get_user(session: Session, user_id: int) -> User:
    user = users_repo.get(session, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def list_team_members(session: Session, team_code: str) -> List[Dict[str, Any]]:
    return users_repo.list_members_with_counts(session, team_code)


def list_pending_requests(session: Session, team_code: str) -> List[Dict[str, Any]]:
    members = users_repo.list_members(session, team_code, MemberStatus.pending)
    return [
        {"id": m.id, "name": m.name, "email": m.email, "created_at": m.created_at}
        for m in members
    ]


def list_rejected_members(session: Session, team_code: str) -> List[Dict[str, Any]]:
    members = users_repo.list_members(
        session, team_code, MemberStatus.rejected, order_by=User.updated_at.desc()
    )
    return [
        {
            "id": m.id,
            "name": m.name,
            "email": m.email,
            "created_at": m.created_at,
            "updated_at": m.updated_at,
        }
        for m in members
    ]


def list_basic_members(session: Session, team_code: str) -> List[Dict[str, Any]]:
    members = users_repo.list_members(
        session, team_code, MemberStatus.approved, order_by=User.name
    )
    return [
        {
            "id": m.id,
            "name": m.name,
            "email": m.email,
            "role": m.role.value,
            "created_at": m.created_at,
        }
        for m in members
    ]


def _transition(
    session: Session,
    *,
    user_id: int,
    team_code: str,
    actor_id: int,
    from_status: MemberStatus,
    to_status: MemberStatus,
    not_found: str,
) -> User:
    actor = users_repo.get(session, actor_id)
    require_team_leader(actor, team_code, "Only the team leader can review members")

    try:
        member = users_repo.transition_status(
            session,
            user_id,
            team_code,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
        )
        if member is None:
            session.rollback()
            raise AlreadyProcessedError(not_found)
        session.commit()
    except AlreadyProcessedError:
        raise
    except Exception:
        session.rollback()
        raise

    logger.info(
        "Member %s moved %s -> %s by %s",
        user_id,
        from_status.value,
        to_status.value,
        actor_id,
    )
    return member


def approve_member(session: Session, *, user_id: int, team_code: str, approved_by: int) -> Dict[str, Any]:
    member = _transition(
        session,
        user_id=user_id,
        team_code=team_code,
        actor_id=approved_by,
        from_status=MemberStatus.pending,
        to_status=MemberStatus.approved,
        not_found="User not found or already processed",
    )
    return member.public_dict()


def reject_member(session: Session, *, user_id: int, team_code: str, rejected_by: int) -> Dict[str, Any]:
    member = _transition(
        session,
        user_id=user_id,
        team_code=team_code,
        actor_id=rejected_by,
        from_status=MemberStatus.pending,
        to_status=MemberStatus.rejected,
        not_found="User not found or already processed",
    )
    return member.public_dict()


def reapprove_member(session: Session, *, user_id: int, team_code: str, approved_by: int) -> Dict[str, Any]:
    member = _transition(
        session,
        user_id=user_id,
        team_code=team_code,
        actor_id=approved_by,
        from_status=MemberStatus.rejected,
        to_status=MemberStatus.approved,
        not_found="Rejected member not found or already processed",
    )
    return member.public_dict()


def _release_subtasks(session: Session, user_id: int) -> int:
    released = subtask_state.apply(None, subtask_state.SubtaskEvent.RELEASE)
    return tasks_repo.release_assigned(
        session, user_id, status=released.status, progress=released.progress
    )


def delete_rejected_member(session: Session, user_id: int) -> Dict[str, Any]:
    member = users_repo.get_rejected(session, user_id)
    if member is None:
        raise NotFoundError("Rejected member not found")
    deleted = member.public_dict()

    try:
        _release_subtasks(session, user_id)
        users_repo.delete(session, user_id)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.expunge_all()
    logger.info("Deleted rejected member %s", user_id)
    return deleted


def delete_team_member(
    session: Session, *, team_code: str, member_id: int, leader_id: Optional[int]
) -> None:
    """Remove a member from the team, releasing the subtasks it held."""
    if leader_id is None:
        raise ValidationError("Leader ID is required")

    leader = users_repo.get_in_team(session, leader_id, team_code, role=UserRole.leader)
    if not leader:
        raise ForbiddenError("Only team leader can delete members")

    if member_id == leader_id:
        raise ValidationError("Cannot delete yourself")

    member = users_repo.get_in_team(session, member_id, team_code, role=UserRole.member)
    if not member:
        raise NotFoundError("Member not found in your team")

    try:
        released = _release_subtasks(session, member_id)
        users_repo.delete(session, member_id)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.expunge_all()
    logger.info(
        "Leader %s deleted member %s from team %s (%d subtasks released)",
        leader_id,
        member_id,
        team_code,
        released,
    )
