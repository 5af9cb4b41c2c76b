from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

DEFAULT_JWT_SECRET = "taskdesk-dev-secret-change-me"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - JWT_SECRET: signing key for access tokens (a development default is used when unset)
    - JWT_ALGORITHM: JWT signing algorithm, 'HS256' by default
    - ACCESS_TOKEN_EXPIRE_MINUTES: token lifetime in minutes, 7 days by default
    - LOG_LEVEL: level for the 'taskdesk' logger, 'INFO' by default
    """

    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    jwt_secret: str
    jwt_algorithm: str
    access_token_expire_minutes: int
    log_level: str

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET


@dataclass(frozen=True)
class ClientSettings:
    """
    Settings for the task client.

    Env vars:
    - TASKDESK_API_URL: base URL of the task API, 'http://localhost:5000/api' by default
    - TASKDESK_SESSION_FILE: optional path where the client session is persisted
    """

    api_url: str
    session_file: Optional[str]


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/tasks.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        jwt_secret=_get_env("JWT_SECRET", DEFAULT_JWT_SECRET),
        jwt_algorithm=_get_env("JWT_ALGORITHM", "HS256").strip(),
        access_token_expire_minutes=_parse_int(_get_env("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"), 10080),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )


# PUBLIC_INTERFACE
def get_client_settings() -> ClientSettings:
    """Return task client settings loaded from environment variables."""
    session_file = os.getenv("TASKDESK_SESSION_FILE") or None
    return ClientSettings(
        api_url=_get_env("TASKDESK_API_URL", "http://localhost:5000/api").rstrip("/"),
        session_file=session_file,
    )
