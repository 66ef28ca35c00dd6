"""
Liveness endpoint. Public: the auth middleware lets /api/health through.
"""
from datetime import datetime, timezone

from fastapi import APIRouter

from matching.config import LinkConfig, fetch_page_size

from ..config import AUTH_DISABLED
from ..database import get_db

router = APIRouter()


@router.get("/api/health")
def system_health_check():
    """API status, DB reachability and the active matching thresholds."""
    db_ok = False
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                db_ok = cur.fetchone() is not None
    except Exception:
        db_ok = False

    return {
        "status": "ok",
        "db": db_ok,
        "auth_enabled": not AUTH_DISABLED,
        "link_config": LinkConfig.from_env().to_dict(),
        "fetch_page_size": fetch_page_size(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
