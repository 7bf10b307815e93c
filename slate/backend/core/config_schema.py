"""
Configuration Schemas.

Pydantic models defining the expected structure of each YAML config file.
Used by AppConfig to validate configuration at load time. If a YAML file
has missing keys, wrong types, or unknown fields, a clear ValidationError
is raised at startup instead of a cryptic KeyError deep in application code.

Each top-level class corresponds to one file in config/settings/:
    ApplicationSchema  → application.yaml
    DatabaseSchema     → database.yaml
    LoggingSchema      → logging.yaml
    FeaturesSchema     → features.yaml
    SecuritySchema     → security.yaml
    ConcurrencySchema  → concurrency.yaml
    IntakeSchema       → intake.yaml
    EmbeddingsSchema   → embeddings.yaml
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


class NotesQuerySchema(_StrictBase):
    default_limit: int
    max_limit: int


class TimeoutsSchema(_StrictBase):
    database: int
    external_api: int


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    environment: str
    debug: bool
    api_prefix: str
    docs_enabled: bool
    server: ServerSchema
    cors: CorsSchema
    notes: NotesQuerySchema
    timeouts: TimeoutsSchema


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
    echo_pool: bool


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
    api_detailed_errors: bool
    api_request_logging: bool
    intake_llm_enabled: bool
    intake_plan_mode_enabled: bool
    embeddings_enabled: bool
    sync_enabled: bool


# =============================================================================
# security.yaml
# =============================================================================


class JwtSchema(_StrictBase):
    algorithm: str
    access_token_expire_minutes: int
    audience: str


class ApiKeySchema(_StrictBase):
    prefix: str
    random_bytes: int


class SecuritySchema(_StrictBase):
    jwt: JwtSchema
    api_keys: ApiKeySchema


# =============================================================================
# concurrency.yaml
# =============================================================================


class SemaphoresSchema(_StrictBase):
    database: int
    external_api: int
    llm: int


class ShutdownSchema(_StrictBase):
    drain_seconds: int


class ConcurrencySchema(_StrictBase):
    semaphores: SemaphoresSchema
    shutdown: ShutdownSchema


# =============================================================================
# intake.yaml
# =============================================================================


class ParserCircuitBreakerSchema(_StrictBase):
    fail_max: int
    timeout_duration: int


class ParserSchema(_StrictBase):
    model: str
    timeout_seconds: float
    circuit_breaker: ParserCircuitBreakerSchema


class IntakeSessionsSchema(_StrictBase):
    ttl_seconds: int


class IntakeSchema(_StrictBase):
    parser: ParserSchema
    sessions: IntakeSessionsSchema


# =============================================================================
# embeddings.yaml
# =============================================================================


class EmbeddingsRetrySchema(_StrictBase):
    max_attempts: int
    backoff_max: int


class EmbeddingsSchema(_StrictBase):
    endpoint: str
    timeout_seconds: float
    retry: EmbeddingsRetrySchema
