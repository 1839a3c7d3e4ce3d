from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import os

from dotenv import load_dotenv

load_dotenv()


def _getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _normalize_level(raw: str | None) -> str:
    value = (raw or "INFO").strip().upper()
    return value if value in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO"


@dataclass(frozen=True)
class Settings:
    db_path: str
    per_page: int
    chart_limit: int
    roles_config: str | None
    host: str
    port: int
    log_level: str


settings = Settings(
    db_path=os.getenv("DB_PATH", "data.db"),
    per_page=_getenv_int("PER_PAGE", 50),
    chart_limit=_getenv_int("CHART_LIMIT", 50),
    roles_config=os.getenv("ROLES_CONFIG") or None,
    host=os.getenv("HOST", "127.0.0.1"),
    port=_getenv_int("PORT", 8080),
    log_level=_normalize_level(os.getenv("LOG_LEVEL")),
)

_RUNTIME_OVERRIDES: dict[str, Any] = {}


def get_settings() -> Settings:
    if not _RUNTIME_OVERRIDES:
        return settings
    base = settings
    return Settings(
        db_path=_RUNTIME_OVERRIDES.get("db_path", base.db_path),
        per_page=_RUNTIME_OVERRIDES.get("per_page", base.per_page),
        chart_limit=_RUNTIME_OVERRIDES.get("chart_limit", base.chart_limit),
        roles_config=_RUNTIME_OVERRIDES.get("roles_config", base.roles_config),
        host=_RUNTIME_OVERRIDES.get("host", base.host),
        port=_RUNTIME_OVERRIDES.get("port", base.port),
        log_level=_RUNTIME_OVERRIDES.get("log_level", base.log_level),
    )


def update_settings(overrides: dict[str, Any]) -> Settings:
    normalized: dict[str, Any] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if key == "log_level":
            normalized[key] = _normalize_level(str(value))
        elif key in {"per_page", "chart_limit", "port"}:
            normalized[key] = int(value)
        elif key == "db_path":
            normalized[key] = str(value)
        else:
            normalized[key] = value
    _RUNTIME_OVERRIDES.update(normalized)
    return get_settings()


def reset_settings() -> Settings:
    _RUNTIME_OVERRIDES.clear()
    return get_settings()
