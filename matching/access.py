"""
Caller capability passed explicitly into every service entry point.

Roles mirror the campaign app: admin manages alumni links, campaigners may
edit (and merge) members, viewers only read.
"""
from dataclasses import dataclass

from .errors import AuthorizationError

ROLE_ADMIN = "admin"
ROLE_CAMPAIGNER = "campaigner"
ROLE_VIEWER = "viewer"

ROLES = (ROLE_ADMIN, ROLE_CAMPAIGNER, ROLE_VIEWER)


@dataclass(frozen=True)
class Caller:
    username: str
    role: str = ROLE_VIEWER

    @property
    def can_edit(self) -> bool:
        return self.role in (ROLE_ADMIN, ROLE_CAMPAIGNER)

    @property
    def can_manage(self) -> bool:
        return self.role == ROLE_ADMIN


SYSTEM_CALLER = Caller(username="cli", role=ROLE_ADMIN)


def require_manage(caller: Caller) -> None:
    if not caller.can_manage:
        raise AuthorizationError("Admin role required to manage alumni links")


def require_edit(caller: Caller) -> None:
    if not caller.can_edit:
        raise AuthorizationError("Editor role required to merge members")
