"""
Configuration Management.

Two sources, nothing hardcoded:

* config/.env holds secrets only (DB_PASSWORD, IDENTITY_JWT_SECRET,
  SUPABASE_SERVICE_ROLE_KEY), read through pydantic-settings.
* config/settings/<section>.yaml holds everything else. Each file is
  validated by its schema in config_schema.py when AppConfig is built,
  so a typo fails at startup rather than on first use.

Sections: application, database, logging, features, security, storage,
observability, concurrency.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from notesapp.backend.core.config_schema import (
    ApplicationSchema,
    ConcurrencySchema,
    DatabaseSchema,
    FeaturesSchema,
    LoggingSchema,
    ObservabilitySchema,
    SecuritySchema,
    StorageSchema,
)

PROJECT_ROOT_MARKER = ".project_root"

# Attribute name on AppConfig -> schema; the file is <name>.yaml
CONFIG_SECTIONS: dict[str, type[BaseModel]] = {
    "application": ApplicationSchema,
    "database": DatabaseSchema,
    "logging": LoggingSchema,
    "features": FeaturesSchema,
    "security": SecuritySchema,
    "storage": StorageSchema,
    "observability": ObservabilitySchema,
    "concurrency": ConcurrencySchema,
}


def find_project_root() -> Path:
    """Walk up from the working directory to the .project_root marker."""
    for directory in (Path.cwd(), *Path.cwd().parents):
        if (directory / PROJECT_ROOT_MARKER).exists():
            return directory
    raise RuntimeError(f"Project root not found. Ensure {PROJECT_ROOT_MARKER} file exists.")


def validate_project_root() -> Path:
    """find_project_root for entry scripts: exits with a message instead of raising."""
    try:
        return find_project_root()
    except RuntimeError as e:
        raise SystemExit(f"Error: {e}") from e


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Read one file from config/settings/ as a dict (empty file gives {})."""
    config_path = find_project_root() / "config" / "settings" / filename
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def _load_section(name: str, schema_cls: type[BaseModel]) -> BaseModel:
    filename = f"{name}.yaml"
    try:
        return schema_cls(**load_yaml_config(filename))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {filename}:\n{e}") from e


class Settings(BaseSettings):
    """Secrets from config/.env or the environment."""

    db_password: str
    # Only needed when the identity provider signs with HS256
    identity_jwt_secret: str = ""
    supabase_service_role_key: str

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class AppConfig:
    """
    Validated YAML settings, one typed attribute per section.

    Raises ValueError naming the file when any section fails validation.
    """

    application: ApplicationSchema
    database: DatabaseSchema
    logging: LoggingSchema
    features: FeaturesSchema
    security: SecuritySchema
    storage: StorageSchema
    observability: ObservabilitySchema
    concurrency: ConcurrencySchema

    def __init__(self) -> None:
        for name, schema_cls in CONFIG_SECTIONS.items():
            setattr(self, name, _load_section(name, schema_cls))


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=str(find_project_root() / "config" / ".env"))


@lru_cache
def get_app_config() -> AppConfig:
    return AppConfig()


def get_database_url(async_driver: bool = True) -> str:
    """
    PostgreSQL URL from database.yaml plus DB_PASSWORD.

    Args:
        async_driver: asyncpg when True (the app), plain driver for tooling
    """
    db = get_app_config().database
    scheme = "postgresql+asyncpg" if async_driver else "postgresql"
    return f"{scheme}://{db.user}:{get_settings().db_password}@{db.host}:{db.port}/{db.name}"


def get_server_base_url() -> tuple[str, float]:
    """(base_url, timeout_seconds) the client and CLI use to reach the API."""
    application = get_app_config().application
    base_url = f"http://{application.server.host}:{application.server.port}"
    return base_url, float(application.timeouts.external_api)
