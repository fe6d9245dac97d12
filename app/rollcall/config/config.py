import os
import string
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Settings read straight from environment variables (a .env file is loaded first).
    """
    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL")
    APPLY_SCHEMA_ON_STARTUP: bool = _env_bool("APPLY_SCHEMA_ON_STARTUP", True)

    # Redis: token revocations and rate limiter counters
    APPLICATION_REDIS_URL: str = os.environ.get("APPLICATION_REDIS_URL")
    RATE_LIMITER_REDIS_URL: str = os.environ.get("RATE_LIMITER_REDIS_URL", "memory://")
    RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", True)

    # JWTs issued by the identity provider
    SECRET_KEY: str = os.environ.get("SECRET_KEY")
    ALGORITHM: str = os.environ.get("ALGORITHM", "HS256")

    # Attendance sessions
    SESSION_CODE_LENGTH: int = int(os.environ.get("SESSION_CODE_LENGTH", 6))
    SESSION_CODE_ALPHABET: str = os.environ.get("SESSION_CODE_ALPHABET", string.ascii_uppercase + string.digits)
    SESSION_CODE_MAX_ATTEMPTS: int = int(os.environ.get("SESSION_CODE_MAX_ATTEMPTS", 5))
    SESSION_TTL_MIN_MINUTES: int = int(os.environ.get("SESSION_TTL_MIN_MINUTES", 1))
    SESSION_TTL_MAX_MINUTES: int = int(os.environ.get("SESSION_TTL_MAX_MINUTES", 240))
    SESSION_TTL_DEFAULT_MINUTES: int = int(os.environ.get("SESSION_TTL_DEFAULT_MINUTES", 60))
    SESSION_SWEEP_INTERVAL_MINUTES: int = int(os.environ.get("SESSION_SWEEP_INTERVAL_MINUTES", 5))

    # Logging
    LOG_DIR: str = os.environ.get("LOG_DIR", "logs")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

# Single importable instance
settings = Config()
