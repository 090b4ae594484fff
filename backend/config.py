"""
Central configuration for the request runner backend.

All settings loaded from .env file or environment variables.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from backend directory
load_dotenv(Path(__file__).parent / ".env")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Outbound request execution
# Default bound for a single execution, callers may override per request
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
FOLLOW_REDIRECTS = _env_bool("FOLLOW_REDIRECTS", True)
VERIFY_TLS = _env_bool("VERIFY_TLS", True)

# Identity (tokens are issued elsewhere, we only verify them)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-change-me-before-deploying")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
# Checked only when set
JWT_ISSUER = os.getenv("JWT_ISSUER", "")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "")

# Unauthenticated websocket connections are accepted but never join a user group
ALLOW_ANONYMOUS_CONNECTIONS = _env_bool("ALLOW_ANONYMOUS_CONNECTIONS", False)

# HTTP server
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
