from fastapi import Depends

from ..models.enums import Role
from ..models.user import User
from .dependencies import get_current_user
from .error_handlers import AuthorizationError


def role_required(*allowed: Role):
    def check_role(user: User = Depends(get_current_user)) -> User:
        try:
            role = Role(user.role)
        except ValueError:
            raise AuthorizationError("Access denied. Unknown role.")
        if role not in allowed:
            names = " or ".join(r.value for r in allowed)
            raise AuthorizationError(f"Access denied. {names} role required.")
        return user
    return check_role


recruiter_only = role_required(Role.RECRUITER)
jobseeker_only = role_required(Role.JOBSEEKER)
admin_only = role_required(Role.ADMIN)
