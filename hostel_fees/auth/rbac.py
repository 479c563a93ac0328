from typing import Optional

from fastapi import Depends, HTTPException, status

from hostel_fees.auth.dependencies import get_current_user
from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.core.exceptions import AuthorizationError


NOT_LINKED_MESSAGE = "Your account is not linked to any hostel."


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Require the admin role. Used for cross-hostel operations such as the monthly trigger."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def resolve_hostel(scope: CurrentUser, hostel_id: Optional[int]) -> Optional[int]:
    """
    Apply the caller's hostel scope to a requested hostel.

    Owners are pinned to their own hostel: no hostel_id means theirs, any other id is refused.
    Admins get back exactly what they asked for (None means every hostel).
    """
    if not scope.is_hostel_scoped:
        return hostel_id
    if scope.hostel_id is None:
        raise AuthorizationError(NOT_LINKED_MESSAGE)
    if hostel_id is not None and hostel_id != scope.hostel_id:
        raise AuthorizationError("You do not have access to this hostel")
    return scope.hostel_id
