from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Annotated

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from statusboard.config import get_settings

settings = get_settings()

# auto_error=False: a missing token becomes an anonymous caller, rejected later as Unauthorized
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class CallerIdentity:
    """What the identity provider knows about the caller."""
    caller_id: str | None = None
    org_key: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.caller_id is not None


ANONYMOUS = CallerIdentity()


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)
    return encoded_jwt


def get_caller_from_token(token: str | None) -> CallerIdentity:
    """
    Decode a bearer token into a caller identity.
    Usable without Depends, e.g. for WebSocket authentication.
    """
    if not token:
        return ANONYMOUS

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return ANONYMOUS

    caller_id = payload.get("sub")
    if caller_id is None:
        return ANONYMOUS
    return CallerIdentity(caller_id=str(caller_id), org_key=payload.get("org"))


async def get_caller(token: Annotated[str | None, Depends(oauth2_scheme)]) -> CallerIdentity:
    return get_caller_from_token(token)
