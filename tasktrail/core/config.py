from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class ConfigurationError(Exception):
    """Raised when environment configuration cannot be turned into settings."""


def _load_env_file() -> None:
    env_file = Path(os.getenv("TASKTRAIL_ENV_FILE", ".env"))
    if env_file.is_file():
        load_dotenv(env_file, override=False)


_load_env_file()

Environment = Literal["development", "test", "production"]
LogFormat = Literal["json", "console"]
NotificationTransport = Literal["log", "smtp"]

DEFAULT_CORS_ALLOW_ORIGINS: tuple[str, ...] = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


class Settings(BaseModel):
    app_name: str = Field(default="TaskTrail Backend")
    app_env: Environment = Field(default="development")
    debug: bool = Field(default=True)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    database_url: str = Field(default="sqlite:///./tasktrail.db")
    testing: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="json")
    log_file: str | None = Field(default=None)
    sqlalchemy_echo: bool | None = Field(default=None)  # None = auto (debug mode)
    db_auto_init: bool = Field(default=True)
    db_auto_seed: bool = Field(default=True)
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ALLOW_ORIGINS)
    )
    cors_allow_credentials: bool = Field(default=True)
    notification_transport: NotificationTransport = Field(default="log")
    notification_workers: int = Field(default=2, ge=1, le=32)
    smtp_host: str | None = Field(default=None)
    smtp_port: int = Field(default=587)
    smtp_username: str | None = Field(default=None)
    smtp_password: str | None = Field(default=None)
    smtp_from: str | None = Field(default=None)
    smtp_starttls: bool = Field(default=True)
    smtp_timeout_s: float = Field(default=15.0, gt=0)


def _to_bool(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _to_bool_or_none(value: str | None) -> bool | None:
    """Parse boolean from env var, return None if not set (for auto behavior)."""
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return None


def _to_int(name: str, *, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}.") from exc


def _to_float(name: str, *, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}.") from exc


def _normalize_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized if normalized else None


def _normalize_env(value: str | None) -> Environment:
    if value is None:
        return "development"
    lowered = value.strip().lower()
    if lowered == "test":
        return "test"
    if lowered == "production":
        return "production"
    return "development"


def _normalize_log_format(value: str | None, app_env: Environment) -> LogFormat:
    if value is not None:
        lowered = value.strip().lower()
        if lowered == "console":
            return "console"
        if lowered == "json":
            return "json"
    return "console" if app_env == "development" else "json"


def _normalize_notification_transport(value: str | None) -> NotificationTransport:
    if value is None:
        return "log"
    lowered = value.strip().lower()
    if lowered == "smtp":
        return "smtp"
    return "log"


def _parse_csv_list(value: str | None, *, default: list[str]) -> list[str]:
    if value is None:
        return list(default)
    items = [part.strip() for part in value.split(",")]
    normalized = [item for item in items if item]
    return normalized or list(default)


def _default_database_url(app_env: Environment) -> str:
    if app_env == "test":
        return "sqlite:///./tasktrail_test.db"
    return "sqlite:///./tasktrail.db"


def load_settings() -> Settings:
    app_env = _normalize_env(os.getenv("APP_ENV"))
    default_debug = app_env != "production"
    default_testing = app_env == "test"
    default_db_auto_init = app_env == "development"
    default_db_auto_seed = app_env == "development"

    notification_transport = _normalize_notification_transport(
        os.getenv("NOTIFICATION_TRANSPORT")
    )
    smtp_host = _normalize_optional_text(os.getenv("SMTP_HOST"))
    smtp_from = _normalize_optional_text(os.getenv("SMTP_FROM"))
    if notification_transport == "smtp" and (smtp_host is None or smtp_from is None):
        raise ConfigurationError(
            "NOTIFICATION_TRANSPORT=smtp requires SMTP_HOST and SMTP_FROM to be set."
        )

    return Settings(
        app_name=os.getenv("APP_NAME", "TaskTrail Backend"),
        app_env=app_env,
        debug=_to_bool(os.getenv("DEBUG"), default=default_debug),
        host=os.getenv("HOST", "127.0.0.1"),
        port=_to_int("PORT", default=8000),
        database_url=_normalize_optional_text(os.getenv("DATABASE_URL"))
        or _default_database_url(app_env),
        testing=_to_bool(os.getenv("TESTING"), default=default_testing),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_format=_normalize_log_format(os.getenv("LOG_FORMAT"), app_env),
        log_file=_normalize_optional_text(os.getenv("LOG_FILE")),
        sqlalchemy_echo=_to_bool_or_none(os.getenv("SQLALCHEMY_ECHO")),
        db_auto_init=_to_bool(os.getenv("DB_AUTO_INIT"), default=default_db_auto_init),
        db_auto_seed=_to_bool(os.getenv("DB_AUTO_SEED"), default=default_db_auto_seed),
        cors_allow_origins=_parse_csv_list(
            os.getenv("CORS_ALLOW_ORIGINS"),
            default=list(DEFAULT_CORS_ALLOW_ORIGINS),
        ),
        cors_allow_credentials=_to_bool(
            os.getenv("CORS_ALLOW_CREDENTIALS"),
            default=True,
        ),
        notification_transport=notification_transport,
        notification_workers=_to_int("NOTIFICATION_WORKERS", default=2),
        smtp_host=smtp_host,
        smtp_port=_to_int("SMTP_PORT", default=587),
        smtp_username=_normalize_optional_text(os.getenv("SMTP_USERNAME")),
        smtp_password=os.getenv("SMTP_PASSWORD"),
        smtp_from=smtp_from,
        smtp_starttls=_to_bool(os.getenv("SMTP_STARTTLS"), default=True),
        smtp_timeout_s=_to_float("SMTP_TIMEOUT_S", default=15.0),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
