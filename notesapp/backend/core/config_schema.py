"""
Configuration Schemas.

Pydantic models defining the expected structure of each YAML config file.
Used by AppConfig to validate configuration at load time. If a YAML file
has missing keys, wrong types, or unknown fields, a clear ValidationError
is raised at startup instead of a cryptic KeyError deep in application code.

Each top-level class corresponds to one file in config/settings/:
    ApplicationSchema   → application.yaml
    DatabaseSchema      → database.yaml
    LoggingSchema       → logging.yaml
    FeaturesSchema      → features.yaml
    SecuritySchema      → security.yaml
    StorageSchema       → storage.yaml
    ObservabilitySchema → observability.yaml
    ConcurrencySchema   → concurrency.yaml
"""

from pydantic import BaseModel, ConfigDict


class _StrictBase(BaseModel):
    """Base with extra='forbid' so unknown YAML keys are caught immediately."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# application.yaml
# =============================================================================


class ServerSchema(_StrictBase):
    host: str
    port: int


class CorsSchema(_StrictBase):
    origins: list[str]


class TimeoutsSchema(_StrictBase):
    external_api: int


class NotesLimitsSchema(_StrictBase):
    title_max_length: int
    content_max_length: int


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    environment: str
    debug: bool
    api_prefix: str
    server: ServerSchema
    cors: CorsSchema
    timeouts: TimeoutsSchema
    notes: NotesLimitsSchema


# =============================================================================
# database.yaml
# =============================================================================


class DatabaseSchema(_StrictBase):
    host: str
    port: int
    name: str
    user: str
    pool_size: int
    max_overflow: int
    pool_timeout: int
    pool_recycle: int
    echo: bool


# =============================================================================
# logging.yaml
# =============================================================================


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool


class FileHandlerSchema(_StrictBase):
    enabled: bool
    path: str
    max_bytes: int
    backup_count: int


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema
    file: FileHandlerSchema


class LoggingSchema(_StrictBase):
    level: str
    format: str
    handlers: HandlersSchema


# =============================================================================
# features.yaml
# =============================================================================


class FeaturesSchema(_StrictBase):
    api_request_logging: bool
    api_docs_enabled: bool
    notes_lazy_user_upsert: bool
    storage_cleanup_on_failure: bool


# =============================================================================
# security.yaml
# =============================================================================


class IdentitySchema(_StrictBase):
    algorithms: list[str]
    issuer: str | None = None
    audience: str | None = None
    jwks_url: str | None = None
    jwks_cache_seconds: int


class SecuritySchema(_StrictBase):
    identity: IdentitySchema


# =============================================================================
# storage.yaml
# =============================================================================


class StorageCircuitBreakerSchema(_StrictBase):
    fail_max: int
    timeout_duration: int


class StorageSchema(_StrictBase):
    url: str
    bucket: str
    path_prefix: str
    signed_url_ttl_seconds: int
    circuit_breaker: StorageCircuitBreakerSchema


# =============================================================================
# observability.yaml
# =============================================================================


class HealthChecksSchema(_StrictBase):
    ready_timeout_seconds: int


class ObservabilitySchema(_StrictBase):
    health_checks: HealthChecksSchema


# =============================================================================
# concurrency.yaml
# =============================================================================


class ThreadPoolSchema(_StrictBase):
    max_workers: int


class SemaphoresSchema(_StrictBase):
    storage: int
    identity: int


class ConcurrencySchema(_StrictBase):
    thread_pool: ThreadPoolSchema
    semaphores: SemaphoresSchema
