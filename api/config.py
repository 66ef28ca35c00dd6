"""
Application configuration loaded from environment / .env file.
"""
import os
import sys
from pathlib import Path

# Add project root for db_config import
_project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_project_root))

from db_config import DB_CONFIG  # noqa: E402

PROJECT_ROOT = _project_root

# JWT auth -- requires LINKAGE_JWT_SECRET in .env (32+ chars).
# Set DISABLE_AUTH=true to bypass auth in development.
AUTH_DISABLED = os.environ.get("DISABLE_AUTH", "").lower() == "true"
_jwt_from_env = os.environ.get("LINKAGE_JWT_SECRET") or ""
JWT_SECRET = "" if AUTH_DISABLED else _jwt_from_env
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = 8

# CORS allowed origins (comma-separated in env, or default for local dev)
_origins_raw = os.environ.get("ALLOWED_ORIGINS", "")
if _origins_raw:
    ALLOWED_ORIGINS = [o.strip() for o in _origins_raw.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://localhost:8001",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8001",
    ]

# DB pool sizing
DB_POOL_MIN = int(os.environ.get("DB_POOL_MIN", "1"))
DB_POOL_MAX = int(os.environ.get("DB_POOL_MAX", "10"))
