from typing import Optional
from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from taskboard.database import engine
from taskboard.errors import NotFoundError
from taskboard.models import User
from taskboard.security.jwt import decode_access_token
from taskboard.services import membership


def get_db_session() -> Session:
    with Session(engine) as session:
        yield session


security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_db_session),
) -> User:
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Authorization token required")

    try:
        token_data = decode_access_token(credentials.credentials)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e))

    try:
        return membership.get_user(session, token_data.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=401, detail=e.message)
