"""Application settings using pydantic-settings.

Settings are loaded from environment variables (and an optional .env file)
with sensible defaults for development. Production deployments should set
the connection settings explicitly.
"""

from functools import lru_cache
from typing import Literal
from urllib.parse import urlsplit

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SslMode = Literal["auto", "disable", "require"]

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


class OutboxDatabaseSettings(BaseSettings):
    """Outbox (PostgreSQL) connection settings.

    Environment variables:
        INDEXER_DB_URL or DATABASE_URL: PostgreSQL DSN
        INDEXER_DB_SSL_MODE: auto | disable | require (default: auto)
        INDEXER_DB_CONNECT_TIMEOUT_SECONDS: Connect timeout (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="INDEXER_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    url: SecretStr = Field(
        default=SecretStr("postgresql://indexer@localhost:5432/indexer"),
        validation_alias=AliasChoices("INDEXER_DB_URL", "DATABASE_URL", "url"),
        description="PostgreSQL connection string (may contain credentials)",
    )
    ssl_mode: SslMode = Field(
        default="auto",
        description="TLS policy; auto disables TLS for local and *.internal hosts",
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for establishing the connection",
        gt=0,
    )

    @field_validator("url")
    @classmethod
    def validate_scheme(cls, value: SecretStr) -> SecretStr:
        """Only PostgreSQL DSNs are accepted."""
        scheme = urlsplit(value.get_secret_value()).scheme
        if scheme not in ("postgres", "postgresql", "postgresql+asyncpg"):
            raise ValueError(f"Unsupported database URL scheme: {scheme!r}")
        return value

    @property
    def host(self) -> str:
        """Host name of the outbox database."""
        return urlsplit(self.url.get_secret_value()).hostname or "localhost"

    @property
    def database(self) -> str:
        """Database name of the outbox database."""
        return urlsplit(self.url.get_secret_value()).path.lstrip("/")

    @property
    def use_ssl(self) -> bool:
        """Resolve the TLS policy for the configured host."""
        if self.ssl_mode == "auto":
            host = self.host
            return not (host in _LOCAL_HOSTS or host.endswith(".internal"))
        return self.ssl_mode == "require"

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        parts = urlsplit(self.url.get_secret_value())
        user = f"{parts.username}@" if parts.username else ""
        port = f":{parts.port}" if parts.port else ""
        return f"postgresql://{user}{self.host}{port}/{self.database}"


class GraphStoreSettings(BaseSettings):
    """Graph store (Neo4j) connection settings.

    Environment variables:
        NEO4J_URI: Bolt/neo4j URI (default: bolt://localhost:7687)
        NEO4J_USER: Username (default: neo4j)
        NEO4J_PASSWORD: Password
        NEO4J_DATABASE: Database name (default: server default database)
    """

    model_config = SettingsConfigDict(
        env_prefix="NEO4J_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    uri: str = Field(default="bolt://localhost:7687", description="Neo4j URI")
    user: str = Field(default="neo4j", description="Neo4j username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Neo4j password",
    )
    database: str | None = Field(
        default=None,
        description="Neo4j database name (None uses the server default)",
    )
    connection_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for establishing a connection",
        gt=0,
    )


class WorkerSettings(BaseSettings):
    """Outbox worker settings.

    Environment variables:
        INDEXER_BATCH_SIZE or BATCH_SIZE: Records claimed per cycle (default: 500)
        INDEXER_POLL_INTERVAL_MS or POLL_INTERVAL_MS: Idle wait (default: 2000)
        INDEXER_MAX_ATTEMPTS or MAX_ATTEMPTS: Attempts before dead-letter (default: 5)
        INDEXER_NOTIFY_CHANNEL: Optional NOTIFY channel used to wake up early
    """

    model_config = SettingsConfigDict(
        env_prefix="INDEXER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    batch_size: int = Field(
        default=500,
        validation_alias=AliasChoices("INDEXER_BATCH_SIZE", "BATCH_SIZE", "batch_size"),
        description="Maximum records claimed per cycle",
        ge=1,
    )
    poll_interval_ms: int = Field(
        default=2000,
        validation_alias=AliasChoices(
            "INDEXER_POLL_INTERVAL_MS", "POLL_INTERVAL_MS", "poll_interval_ms"
        ),
        description="Wait before polling again after an empty or failed claim",
        ge=1,
    )
    max_attempts: int = Field(
        default=5,
        validation_alias=AliasChoices(
            "INDEXER_MAX_ATTEMPTS", "MAX_ATTEMPTS", "max_attempts"
        ),
        description="Attempts before a failing record is dead-lettered",
        ge=1,
    )
    notify_channel: str | None = Field(
        default=None,
        description="PostgreSQL NOTIFY channel that signals new outbox rows",
    )

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000


class LoggingSettings(BaseSettings):
    """Logging settings.

    Environment variables:
        INDEXER_LOG_LEVEL: Minimum level (default: INFO)
        INDEXER_LOG_JSON: Force JSON output even in a TTY (default: false)
    """

    model_config = SettingsConfigDict(
        env_prefix="INDEXER_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )
    json_output: bool = Field(
        default=False,
        validation_alias=AliasChoices("INDEXER_LOG_JSON", "json_output"),
        description="Always render JSON",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.upper()
        return value


@lru_cache
def get_database_settings() -> OutboxDatabaseSettings:
    """Get cached outbox database settings."""
    return OutboxDatabaseSettings()


@lru_cache
def get_graph_settings() -> GraphStoreSettings:
    """Get cached graph store settings."""
    return GraphStoreSettings()


@lru_cache
def get_worker_settings() -> WorkerSettings:
    """Get cached worker settings."""
    return WorkerSettings()


@lru_cache
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()
