"""Application configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_bool_env(name: str, default: bool) -> bool:
    """Parse boolean flag from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'assessments.db'}"
)

# Authentication
SECRET_KEY = os.environ.get(
    "SECRET_KEY",
    "CHANGE_ME_IN_PRODUCTION_USE_openssl_rand_hex_32"
)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _parse_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60)
SESSION_EXTEND_MINUTES = _parse_int_env("SESSION_EXTEND_MINUTES", 60)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Attempts
# Seconds between sweeps that move overdue attempts to "timeout"; 0 disables.
ATTEMPT_EXPIRY_INTERVAL_SECONDS = _parse_int_env(
    "ATTEMPT_EXPIRY_INTERVAL_SECONDS", 5 * 60
)

# Statistics
# In-progress attempts score 0 until answered; set to false to keep them
# out of averageScore/passRate.
STATS_INCLUDE_IN_PROGRESS = _parse_bool_env("STATS_INCLUDE_IN_PROGRESS", True)
