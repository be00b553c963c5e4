import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    cache_backend: str
    redis_url: str
    cache_default_ttl: int

    session_max_age_days: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///kothler.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        cache_backend=_getenv("CACHE_BACKEND", "memory").lower(),
        redis_url=_getenv("REDIS_URL", ""),
        cache_default_ttl=_getenv_int("CACHE_DEFAULT_TTL", 1800),
        session_max_age_days=_getenv_int("SESSION_MAX_AGE_DAYS", 30),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "CACHE_BACKEND": s.cache_backend,
        "REDIS_URL": s.redis_url,
        "CACHE_DEFAULT_TTL": s.cache_default_ttl,
        "SESSION_MAX_AGE_DAYS": s.session_max_age_days,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # JSON bodies only; no uploads
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
