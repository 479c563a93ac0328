from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.auth.security import decode_access_token


bearer_scheme = HTTPBearer(auto_error=False)


def _to_int(val) -> Optional[int]:
    if val is None or val == "":
        return None
    return int(val)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """Resolve the caller identity, role and hostel scope from the access token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token is required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        raise credentials_exception

    try:
        user_id = _to_int(payload.get("user_id") or payload.get("sub"))
        role_id = _to_int(payload.get("role_id"))
        hostel_id = _to_int(payload.get("hostel_id"))
    except (TypeError, ValueError):
        raise credentials_exception
    if user_id is None or role_id is None:
        raise credentials_exception

    return CurrentUser(
        user_id=user_id,
        email=payload.get("email"),
        role_id=role_id,
        hostel_id=hostel_id,
    )
