"""
Bearer-token check for the linkage API.

Tokens are issued by the campaign app and carry the caller's role:
    {"sub": "ana", "role": "admin|campaigner|viewer", "iat": ..., "exp": ...}

The middleware only records who is calling (request.state.user / .role);
what that role may do is decided per operation by matching.access
(admin links alumni, admin or campaigner merges members). Unknown roles
fall through to viewer there.

Auth is off when LINKAGE_JWT_SECRET is empty or DISABLE_AUTH=true.

Issue a token for an operator or a test run:
    python -m api.middleware.auth --user ana --role campaigner --hours 2
"""
import time

import jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from matching.access import ROLE_VIEWER, ROLES, Caller

from ..config import JWT_ALGORITHM, JWT_EXPIRY_HOURS, JWT_SECRET

# Health check and API docs stay reachable without a token
PUBLIC_PATHS = frozenset({
    "/api/health",
    "/docs",
    "/openapi.json",
    "/redoc",
})


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(status_code=401, content={"detail": detail})


class AuthMiddleware(BaseHTTPMiddleware):
    """Attach the token's user and role to the request. No-op when JWT_SECRET is empty."""

    async def dispatch(self, request: Request, call_next):
        if not JWT_SECRET:
            return await call_next(request)

        is_public = request.url.path in PUBLIC_PATHS

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            try:
                claims = jwt.decode(auth_header[7:], JWT_SECRET, algorithms=[JWT_ALGORITHM])
            except jwt.PyJWTError:
                if not is_public:
                    return _unauthorized("Invalid or expired token")
            else:
                request.state.user = claims.get("sub", "anonymous")
                request.state.role = claims.get("role", ROLE_VIEWER)
        elif not is_public:
            return _unauthorized("Missing or invalid Authorization header")

        return await call_next(request)


def generate_token(user: str, role: str = ROLE_VIEWER, secret: str = None,
                   hours: int = JWT_EXPIRY_HOURS) -> str:
    """Sign a caller token for `user` acting as `role`, valid for `hours`."""
    issued = int(time.time())
    claims = {
        "sub": user,
        "role": role,
        "iat": issued,
        "exp": issued + hours * 3600,
    }
    return jwt.encode(claims, secret or JWT_SECRET, algorithm=JWT_ALGORITHM)


def describe_caller(user: str, role: str) -> str:
    """One line summarising what a token for this caller unlocks."""
    caller = Caller(username=user, role=role)
    allowed = []
    if caller.can_manage:
        allowed.append("preview/confirm alumni links, alumni stats")
    if caller.can_edit:
        allowed.append("merge members")
    return f"{user} ({role}): {', '.join(allowed) or 'read-only'}"


if __name__ == "__main__":
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Issue a caller token for the linkage API")
    parser.add_argument("--user", required=True, help="Campaign app username (sub claim)")
    parser.add_argument("--role", default=ROLE_VIEWER, choices=list(ROLES), help="Caller role")
    parser.add_argument("--hours", type=int, default=JWT_EXPIRY_HOURS, help="Token lifetime")
    args = parser.parse_args()

    if not JWT_SECRET:
        print("ERROR: LINKAGE_JWT_SECRET not set (or DISABLE_AUTH=true). Auth is off.")
        sys.exit(1)

    print(describe_caller(args.user, args.role))
    print(generate_token(args.user, args.role, hours=args.hours))
