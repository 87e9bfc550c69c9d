from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Todo API configuration, read once from the process environment.

    Variables:
    - DATABASE_PATH: path to the sqlite db file. Default './data/todos.db'
    - CORS_ALLOW_ORIGINS: "*" (default) or comma-separated origins; cookies need explicit ones
    - SESSION_COOKIE_NAME: cookie carrying the session token (default: session_token)
    - OPENAI_API_KEY: API key for the chat endpoint (optional)
    - CHAT_MODEL: model used by the chat endpoint (default: gpt-4.1-nano)
    - LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    - ENVIRONMENT: deployment name, e.g. development or production
    """

    database_path: str
    cors_allow_origins: List[str]
    session_cookie_name: str
    openai_api_key: Optional[str]
    chat_model: str
    log_level: str
    environment: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_origins(origins_value: str) -> List[str]:
    """Turn CORS_ALLOW_ORIGINS into a list; a lone "*" stays a wildcard."""
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_log_level(value: str) -> str:
    level = value.strip().upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return "INFO"
    return level


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Build a Settings from the current environment."""
    api_key = os.getenv("OPENAI_API_KEY") or None

    return Settings(
        database_path=_get_env("DATABASE_PATH", "./data/todos.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        session_cookie_name=_get_env("SESSION_COOKIE_NAME", "session_token").strip(),
        openai_api_key=api_key.strip() if api_key else None,
        chat_model=_get_env("CHAT_MODEL", "gpt-4.1-nano").strip(),
        log_level=_parse_log_level(_get_env("LOG_LEVEL", "INFO")),
        environment=_get_env("ENVIRONMENT", "development").strip().lower(),
    )
