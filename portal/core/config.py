from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    insights_cache_ttl: int = 300
    jwt_public_key: str | None = None
    cors_origins: tuple[str, ...] = field(default=("http://localhost:5173",))

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _parse_int(name: str, raw: str, *, minimum: int = 0) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    log_json = _parse_bool("LOG_JSON", _getenv("LOG_JSON", "false"))
    port = _parse_int("PORT", _getenv("PORT", "8000"), minimum=1)
    insights_cache_ttl = _parse_int(
        "INSIGHTS_CACHE_TTL", _getenv("INSIGHTS_CACHE_TTL", "300")
    )

    cors_origins = tuple(
        origin.strip()
        for origin in _getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
        if origin.strip()
    )

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    # PEM; single-line env values may carry literal \n escapes.
    jwt_public_key = _getenv("JWT_PUBLIC_KEY", "").replace("\\n", "\n") or None
    if jwt_public_key is None and app_env_raw == "prod":
        raise ValueError("JWT_PUBLIC_KEY is required when APP_ENV=prod")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        insights_cache_ttl=insights_cache_ttl,
        jwt_public_key=jwt_public_key,
        cors_origins=cors_origins,
    )


SETTINGS = load_settings()
