import jwt as pyjwt
import datetime as dt
from pydantic import BaseModel, ConfigDict, Field
import os

DEFAULT_EXPIRE_MINUTES = 24 * 60


class TokenData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sub: str  # user_id
    user_id: int = Field(alias="userId")
    email: str
    role: str
    exp: int


def _secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET environment variable is required")
    return secret


def create_access_token(
    user_id: int, *, email: str, role: str, expires_minutes: int = None
) -> str:
    if expires_minutes is None:
        expires_minutes = int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(DEFAULT_EXPIRE_MINUTES))
        )

    expire = dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=expires_minutes)

    payload = {
        "sub": str(user_id),
        "userId": user_id,
        "email": email,
        "role": role,
        "exp": int(expire.timestamp()),
    }

    algorithm = os.getenv("JWT_ALG", "HS256")

    return pyjwt.encode(payload, _secret(), algorithm=algorithm)


def decode_access_token(token: str) -> TokenData:
    secret = _secret()
    algorithm = os.getenv("JWT_ALG", "HS256")

    try:
        payload = pyjwt.decode(token, secret, algorithms=[algorithm])
        return TokenData(**payload)
    except pyjwt.ExpiredSignatureError:
        raise ValueError("Token has expired")
    except pyjwt.InvalidTokenError:
        raise ValueError("Invalid token")
