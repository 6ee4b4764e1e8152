from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends
from sqlmodel import Session

from taskboard.api.deps import get_db_session, get_current_user
from taskboard.models import User
from taskboard.schemas.auth import (
    ApproveMemberRequest,
    CheckMemberStatusRequest,
    DeleteMemberRequest,
    LoginRequest,
    RegisterLeaderRequest,
    RegisterMemberRequest,
    RejectMemberRequest,
)
from taskboard.services import membership


router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register-leader")
def register_leader(
    request: RegisterLeaderRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    result = membership.register_leader(
        session,
        email=request.email,
        password=request.password,
        name=request.name,
        team_name=request.team_name,
    )
    return {"message": "Registration successful", **result}


@router.post("/register-member")
def register_member(
    request: RegisterMemberRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    result = membership.register_member(
        session,
        email=request.email,
        password=request.password,
        name=request.name,
        team_code=request.team_code,
    )
    return {
        "message": "Registration successful! Please wait for team leader approval.",
        **result,
    }


@router.post("/login")
def login(request: LoginRequest, session: Session = Depends(get_db_session)) -> Dict[str, Any]:
    result = membership.login(
        session,
        email=request.email,
        password=request.password,
        team_code=request.team_code,
    )
    return {"message": "Login successful", **result}


@router.post("/check-member-status")
def check_member_status(
    request: CheckMemberStatusRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    return membership.check_member_status(
        session, email=request.email, team_code=request.team_code
    )


@router.get("/me")
def read_current_user(current_user: User = Depends(get_current_user)) -> Dict[str, Any]:
    """Return the user identified by the bearer token."""
    return current_user.public_dict()


@router.get("/team/{team_code}/all-members")
def list_team_members(team_code: str, session: Session = Depends(get_db_session)) -> List[Dict[str, Any]]:
    """Approved members with their assigned and completed subtask counts."""
    return membership.list_team_members(session, team_code)


@router.get("/team/{team_code}/pending-requests")
def list_pending_requests(team_code: str, session: Session = Depends(get_db_session)) -> List[Dict[str, Any]]:
    return membership.list_pending_requests(session, team_code)


@router.get("/team/{team_code}/rejected-members")
def list_rejected_members(team_code: str, session: Session = Depends(get_db_session)) -> List[Dict[str, Any]]:
    return membership.list_rejected_members(session, team_code)


@router.get("/team/{team_code}/members")
def list_members(team_code: str, session: Session = Depends(get_db_session)) -> List[Dict[str, Any]]:
    return membership.list_basic_members(session, team_code)


@router.post("/approve-member")
def approve_member(
    request: ApproveMemberRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    user = membership.approve_member(
        session,
        user_id=request.user_id,
        team_code=request.team_code,
        approved_by=request.approved_by,
    )
    return {"message": "Member approved successfully", "user": user}


@router.post("/reject-member")
def reject_member(
    request: RejectMemberRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    user = membership.reject_member(
        session,
        user_id=request.user_id,
        team_code=request.team_code,
        rejected_by=request.rejected_by,
    )
    return {"message": "Member request rejected", "user": user}


@router.post("/approve-rejected-member")
def approve_rejected_member(
    request: ApproveMemberRequest, session: Session = Depends(get_db_session)
) -> Dict[str, Any]:
    user = membership.reapprove_member(
        session,
        user_id=request.user_id,
        team_code=request.team_code,
        approved_by=request.approved_by,
    )
    return {"message": "Member approved successfully", "user": user}


@router.delete("/delete-rejected-member/{user_id}")
def delete_rejected_member(user_id: int, session: Session = Depends(get_db_session)) -> Dict[str, Any]:
    user = membership.delete_rejected_member(session, user_id)
    return {"message": "Rejected member deleted permanently", "user": user}


@router.delete("/team/{team_code}/member/{member_id}")
def delete_team_member(
    team_code: str,
    member_id: int,
    request: Optional[DeleteMemberRequest] = Body(default=None),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    membership.delete_team_member(
        session,
        team_code=team_code,
        member_id=member_id,
        leader_id=request.leader_id if request else None,
    )
    return {"message": "Member deleted successfully"}
