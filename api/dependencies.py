from typing import Iterable
from fastapi import Depends, HTTPException, status

from core.actor import ActorContext, Role
from core.security import get_current_actor


class RoleChecker:
    def __init__(self, allowed_roles: Iterable[Role]):
        self.allowed_roles = frozenset(allowed_roles)

    def __call__(self, actor: ActorContext = Depends(get_current_actor)) -> ActorContext:
        if actor.role not in self.allowed_roles:
            allowed = sorted(role.value for role in self.allowed_roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Operation not permitted. Required roles: {allowed}"
            )
        return actor


# Define reusable dependencies
require_admin = RoleChecker([Role.ADMIN])
