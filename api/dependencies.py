"""
Shared FastAPI dependencies for authentication.

The auth middleware decodes the token into request.state; get_caller turns
that into the Caller capability every linkage service takes explicitly.

Usage in routers:
    from ..dependencies import get_caller

    @router.get("/api/alumni/link/preview")
    def preview(caller: Caller = Depends(get_caller)):
        ...
"""
from fastapi import HTTPException, Request

from matching.access import ROLE_ADMIN, ROLE_VIEWER, ROLES, Caller

from .config import JWT_SECRET


def get_caller(request: Request) -> Caller:
    """Require an authenticated user and return its Caller.

    When auth is disabled (JWT_SECRET empty), returns a synthetic dev admin.
    Unknown roles are downgraded to viewer.
    """
    if not JWT_SECRET:
        return Caller(username="dev", role=ROLE_ADMIN)

    user = getattr(request.state, "user", None)
    role = getattr(request.state, "role", None)
    if not user or user == "anonymous":
        raise HTTPException(status_code=401, detail="Authentication required")
    return Caller(username=user, role=role if role in ROLES else ROLE_VIEWER)
