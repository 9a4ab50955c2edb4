"""Centralized operator settings using pydantic-settings.

This module provides a single source of truth for all operator configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rabbitmq_operator.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CREATING_REQUEUE_DELAY,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PERSISTENCE_STORAGE,
    DEFAULT_RABBITMQ_IMAGE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_REQUEUE_BASE_DELAY,
    DEFAULT_REQUEUE_MAX_DELAY,
    DEFAULT_TRANSIENT_RETRY_BUDGET,
    DEFAULT_WORKERS,
)


class Settings(BaseSettings):
    """Operator configuration loaded from environment variables.

    All settings have sensible defaults for production use. Override via
    environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Operator identification
    operator_name: str = Field(
        default="rabbitmq-operator",
        description="Operator name, used as the Kopf peering name",
        validation_alias="OPERATOR_NAME",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )
    log_health_probes: bool = Field(
        default=False,
        validation_alias="LOG_HEALTH_PROBES",
        description="Log health probe and metrics scrape requests",
    )

    # Namespace watching
    namespaces: str = Field(
        default="",
        validation_alias="RABBITMQ_OPERATOR_NAMESPACES",
        description="Comma-separated list of namespaces to watch (empty = all namespaces)",
    )

    # Metrics and observability
    metrics_port: int = Field(
        default=8081,
        validation_alias="METRICS_PORT",
        description="Port for Prometheus metrics endpoint",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Host address to bind metrics server",
    )

    # Work queue and workers
    workers: int = Field(
        default=DEFAULT_WORKERS,
        ge=1,
        validation_alias="RECONCILE_WORKERS",
        description="Number of concurrent reconcile workers draining the work queue",
    )
    request_timeout: int = Field(
        default=DEFAULT_REQUEST_TIMEOUT,
        validation_alias="KUBERNETES_REQUEST_TIMEOUT",
        description="Timeout in seconds for a single Kubernetes API request",
    )

    # Retry behavior
    child_max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        validation_alias="CHILD_MAX_RETRIES",
        description="In-pass retries for a transient failure on one child object",
    )
    child_initial_delay: float = Field(
        default=DEFAULT_INITIAL_DELAY,
        validation_alias="CHILD_RETRY_INITIAL_DELAY",
        description="Initial delay in seconds before retrying a child operation",
    )
    child_backoff_factor: float = Field(
        default=DEFAULT_BACKOFF_FACTOR,
        validation_alias="CHILD_RETRY_BACKOFF_FACTOR",
        description="Multiplier applied to the delay between child retries",
    )
    requeue_base_delay: float = Field(
        default=DEFAULT_REQUEUE_BASE_DELAY,
        validation_alias="REQUEUE_BASE_DELAY",
        description="Base delay in seconds for rate-limited requeue of a failing key",
    )
    requeue_max_delay: float = Field(
        default=DEFAULT_REQUEUE_MAX_DELAY,
        validation_alias="REQUEUE_MAX_DELAY",
        description="Upper bound in seconds for rate-limited requeue",
    )
    transient_retry_budget: int = Field(
        default=DEFAULT_TRANSIENT_RETRY_BUDGET,
        validation_alias="TRANSIENT_RETRY_BUDGET",
        description="Consecutive failed passes before a transient error is surfaced in status",
    )
    creating_requeue_delay: float = Field(
        default=DEFAULT_CREATING_REQUEUE_DELAY,
        validation_alias="CREATING_REQUEUE_DELAY",
        description="Delay in seconds before re-checking a cluster that is still creating",
    )

    # Cluster defaults
    default_image: str = Field(
        default=DEFAULT_RABBITMQ_IMAGE,
        validation_alias="RABBITMQ_DEFAULT_IMAGE",
        description="Image used when a RabbitmqCluster does not set spec.image",
    )
    default_storage: str = Field(
        default=DEFAULT_PERSISTENCE_STORAGE,
        validation_alias="RABBITMQ_DEFAULT_STORAGE",
        description="Volume size used when spec.persistence.storage is not set",
    )

    @property
    def watched_namespaces(self) -> list[str] | None:
        """Parse watched namespaces from comma-separated string.

        Returns:
            List of namespace names, or None to watch all namespaces
        """
        if self.namespaces:
            return [ns.strip() for ns in self.namespaces.split(",") if ns.strip()]
        return None


# Global settings instance - initialized once at module import
settings = Settings()
