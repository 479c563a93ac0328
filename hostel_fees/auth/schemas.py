from typing import Optional

from pydantic import BaseModel

from hostel_fees.core.enums import Role


class CurrentUser(BaseModel):
    """Caller identity resolved once per request from the access token.

    hostel_id is the hostel an owner account is bound to; admins are not scoped.
    """

    user_id: int
    email: Optional[str] = None
    role_id: int
    hostel_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role_id == Role.ADMIN

    @property
    def is_hostel_scoped(self) -> bool:
        return self.role_id == Role.OWNER
