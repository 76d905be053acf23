"""Environment-driven settings for the contract lifecycle service.

Values come from the process environment (a local ``.env`` is loaded first)
and are validated once; ``get_config`` caches the result per environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from app.core.exceptions import ConfigurationError

load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_DATABASE_SCHEMES = {"sqlite", "postgresql", "postgresql+psycopg2"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}.") from exc


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip()


@dataclass(frozen=True)
class Config:
    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    DB_CONNECTIVITY_REQUIRED: bool
    JWT_SECRET: str
    JWT_ACCESS_TTL_MINUTES: int
    JWT_PERMISSIONS_VERSION: int
    API_HOST: str
    API_PORT: int
    API_PREFIX: str
    LOG_LEVEL: str
    LOG_FILE: str
    # Contract lifecycle
    CONTRACT_MAX_REACTIVATIONS: int
    CONTRACT_NUMBER_PREFIX: str
    CONTRACT_NUMBER_MAX_ATTEMPTS: int
    CONTRACT_EXPIRING_DEFAULT_DAYS: int

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or _env_str("ENV", "development")).lower()
    production = resolved_env == "production"
    return Config(
        APP_NAME="CRM Contracts",
        APP_VERSION=_env_str("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=False if production else _env_bool("DEBUG", True),
        DATABASE_URL=_env_str("DATABASE_URL", "sqlite:///./crm_contracts.db"),
        DB_CONNECTIVITY_REQUIRED=_env_bool("DB_CONNECTIVITY_REQUIRED", production),
        JWT_SECRET=_env_str("JWT_SECRET", "change_me_jwt_secret"),
        JWT_ACCESS_TTL_MINUTES=_env_int("JWT_ACCESS_TTL_MINUTES", 15),
        JWT_PERMISSIONS_VERSION=_env_int("JWT_PERMISSIONS_VERSION", 1),
        API_HOST=_env_str("API_HOST", "0.0.0.0"),
        API_PORT=_env_int("API_PORT", 8000),
        API_PREFIX=_env_str("API_PREFIX", "/api/v1"),
        LOG_LEVEL=_env_str("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=_env_str("LOG_FILE", "crm_contracts.log"),
        CONTRACT_MAX_REACTIVATIONS=_env_int("CONTRACT_MAX_REACTIVATIONS", 3),
        CONTRACT_NUMBER_PREFIX=_env_str("CONTRACT_NUMBER_PREFIX", "CNT"),
        CONTRACT_NUMBER_MAX_ATTEMPTS=_env_int("CONTRACT_NUMBER_MAX_ATTEMPTS", 5),
        CONTRACT_EXPIRING_DEFAULT_DAYS=_env_int("CONTRACT_EXPIRING_DEFAULT_DAYS", 30),
    )


def _validate_config(config: Config) -> None:
    parsed = urlparse(config.DATABASE_URL)
    if parsed.scheme not in _DATABASE_SCHEMES:
        raise ConfigurationError("DATABASE_URL must use sqlite:// or postgresql:// style URL.")
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")

    minimums = {
        "JWT_ACCESS_TTL_MINUTES": 1,
        "CONTRACT_MAX_REACTIVATIONS": 0,
        "CONTRACT_NUMBER_MAX_ATTEMPTS": 1,
        "CONTRACT_EXPIRING_DEFAULT_DAYS": 0,
    }
    for key, minimum in minimums.items():
        if getattr(config, key) < minimum:
            raise ConfigurationError(f"{key} must be >= {minimum}.")

    if config.LOG_LEVEL not in _LOG_LEVELS:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if not config.CONTRACT_NUMBER_PREFIX:
        raise ConfigurationError("CONTRACT_NUMBER_PREFIX must not be empty.")
    if config.is_production:
        if "change_me" in config.JWT_SECRET.lower():
            raise ConfigurationError("Production JWT_SECRET uses a placeholder value.")
        if "change_me" in config.DATABASE_URL.lower():
            raise ConfigurationError("Production DATABASE_URL uses placeholder credentials.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    config = _build_config(env)
    _validate_config(config)
    return config
