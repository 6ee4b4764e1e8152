from pydantic import BaseModel, ConfigDict, EmailStr, Field


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterLeaderRequest(_Request):
    email: EmailStr
    password: str = Field(min_length=1)
    name: str = Field(min_length=1)
    team_name: str = Field(alias="teamName", min_length=1)


class RegisterMemberRequest(_Request):
    email: EmailStr
    password: str = Field(min_length=1)
    name: str = Field(min_length=1)
    team_code: str = Field(alias="teamCode", min_length=1)


class LoginRequest(_Request):
    email: EmailStr
    password: str
    team_code: str = Field(alias="teamCode")


class CheckMemberStatusRequest(_Request):
    email: str = Field(min_length=1)
    team_code: str = Field(alias="teamCode", min_length=1)


class ApproveMemberRequest(_Request):
    user_id: int = Field(alias="userId")
    team_code: str = Field(alias="teamCode", min_length=1)
    approved_by: int = Field(alias="approvedBy")


class RejectMemberRequest(_Request):
    user_id: int = Field(alias="userId")
    team_code: str = Field(alias="teamCode", min_length=1)
    rejected_by: int = Field(alias="rejectedBy")


class DeleteMemberRequest(_Request):
    leader_id: int = Field(alias="leaderId")
