"""
Environment configuration for the To-Do backend.

All settings are read once at import time from environment variables (an optional
.env file is loaded first). Out-of-range or malformed values fall back to safe
defaults with a logged warning instead of failing startup.
"""

import logging
import os
import secrets
from typing import List

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def is_production_like() -> bool:
    """
    Check if the current environment is production-like (production or staging).

    Used for security-sensitive decisions such as requiring JWT_SECRET_KEY and
    skipping automatic schema creation.
    """
    env = os.environ.get("ENVIRONMENT", "development").lower()
    return env in ("production", "staging")


def _int_from_env(name: str, default: int, minimum: int, maximum: int) -> int:
    """Read an integer setting, falling back to the default when missing or out of range."""
    raw = os.environ.get(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"⚠️  Invalid {name} value in environment ({raw!r}). Using default of {default}.")
        return default

    if value < minimum or value > maximum:
        logger.warning(
            f"⚠️  {name}={value} is outside safe range ({minimum}-{maximum}). "
            f"Using default of {default}."
        )
        return default
    return value


def _bool_from_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# ============== Database ==============

DB_USER = os.environ.get("DB_USER", "todo_user")
DB_PASSWORD = os.environ.get("DB_PASSWORD", "todo_pass")
DB_HOST = os.environ.get("DB_HOST", "localhost")
DB_PORT = _int_from_env("DB_PORT", 5432, 1, 65535)
DB_NAME = os.environ.get("DB_NAME", "todo_db")

DATABASE_URL = os.environ.get(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
DB_POOL_SIZE = _int_from_env("DB_POOL_SIZE", 5, 1, 100)

# init.sql owns the schema in production; development creates tables on startup
CREATE_SCHEMA_ON_STARTUP = _bool_from_env("CREATE_SCHEMA_ON_STARTUP", not is_production_like())

# ============== JWT ==============

JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY")
if not JWT_SECRET_KEY:
    if is_production_like():
        raise ValueError(
            "JWT_SECRET_KEY environment variable is required in production. "
            "Generate a secure key with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )
    JWT_SECRET_KEY = "dev-insecure-key-" + secrets.token_urlsafe(32)
    logger.warning(
        "⚠️  JWT_SECRET_KEY not set! Using temporary development key. "
        "Tokens will not survive a restart. Set JWT_SECRET_KEY environment variable."
    )

SUPPORTED_ALGORITHMS = ["HS256", "HS384", "HS512"]
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
if JWT_ALGORITHM not in SUPPORTED_ALGORITHMS:
    logger.warning(
        f"⚠️  Unsupported JWT_ALGORITHM={JWT_ALGORITHM}. Using HS256. "
        f"Supported: {', '.join(SUPPORTED_ALGORITHMS)}"
    )
    JWT_ALGORITHM = "HS256"

# 1 minute to 7 days
ACCESS_TOKEN_EXPIRE_MINUTES = _int_from_env("ACCESS_TOKEN_EXPIRE_MINUTES", 1440, 1, 10080)

# ============== HTTP ==============

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


def _cors_origins() -> List[str]:
    raw = os.environ.get("CORS_ORIGINS") or os.environ.get("FRONTEND_URL")
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


CORS_ORIGINS = _cors_origins()

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = _int_from_env("PORT", 8000, 1, 65535)
