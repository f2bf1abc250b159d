"""Configuration management for azdo-mcp with structured settings and validation."""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from dotenv import load_dotenv

from .errors import AdoConfigurationError

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

DEFAULT_COLLECTION = "DefaultCollection"

REQUIRED_ENV_VARS = {
    "AZURE_DEVOPS_URL": "Your Azure DevOps Server URL",
    "AZURE_DEVOPS_PAT": "Your Personal Access Token",
    "AZURE_DEVOPS_COLLECTION": f"Collection name (default: {DEFAULT_COLLECTION})",
}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ConnectionPoolConfig:
    """Configuration for HTTP connection pooling and session management."""

    max_pool_connections: int = 10
    max_pool_size: int = 20

    def __post_init__(self):
        """Validate connection pool configuration values."""
        if self.max_pool_connections <= 0:
            raise AdoConfigurationError(
                "max_pool_connections must be positive",
                context={"max_pool_connections": self.max_pool_connections},
            )

        if self.max_pool_size < self.max_pool_connections:
            raise AdoConfigurationError(
                "max_pool_size must be >= max_pool_connections",
                context={
                    "max_pool_size": self.max_pool_size,
                    "max_pool_connections": self.max_pool_connections,
                },
            )


@dataclass
class TelemetryConfig:
    """Configuration for telemetry and observability."""

    enabled: bool = False
    service_name: str = "azdo-mcp"
    service_version: str = "0.1.0"
    trace_sampling_rate: float = 1.0
    metrics_enabled: bool = True

    def __post_init__(self):
        """Validate telemetry configuration values."""
        if not 0.0 <= self.trace_sampling_rate <= 1.0:
            raise AdoConfigurationError(
                "trace_sampling_rate must be between 0.0 and 1.0",
                context={"trace_sampling_rate": self.trace_sampling_rate},
            )


@dataclass
class AdoMcpConfig:
    """
    Main configuration for azdo-mcp.

    Explicit constructor values win; anything left as ``None`` is read from the
    environment. Validation runs once, so a bad configuration fails before the
    client facade is built.
    """

    server_url: str | None = None
    pat: str | None = None
    collection: str | None = None
    default_project: str | None = None
    release_url: str | None = None
    verify_on_start: bool | None = None
    request_timeout_seconds: int | None = None

    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    connection_pool: ConnectionPoolConfig = field(default_factory=ConnectionPoolConfig)

    def __post_init__(self):
        """Load configuration from environment variables and validate."""
        if self.server_url is None:
            self.server_url = os.getenv("AZURE_DEVOPS_URL", "")
        if self.pat is None:
            self.pat = os.getenv("AZURE_DEVOPS_PAT", "")
        if self.collection is None:
            self.collection = os.getenv("AZURE_DEVOPS_COLLECTION") or DEFAULT_COLLECTION
        if self.default_project is None:
            self.default_project = os.getenv("AZURE_DEVOPS_PROJECT") or None
        if self.release_url is None:
            self.release_url = os.getenv("AZURE_DEVOPS_RELEASE_URL") or None
        if self.verify_on_start is None:
            self.verify_on_start = _env_flag("AZURE_DEVOPS_VERIFY_ON_START", False)
        if self.request_timeout_seconds is None:
            self.request_timeout_seconds = self._env_int("ADO_REQUEST_TIMEOUT", 30)

        # Remove trailing slash from URLs if present
        self.server_url = self.server_url.rstrip("/")
        if self.release_url:
            self.release_url = self.release_url.rstrip("/")

        self._validate()

        logger.info(
            f"Configuration loaded: server_url={self.server_url}, "
            f"collection={self.collection}, "
            f"default_project={self.default_project or '<none>'}, "
            f"telemetry_enabled={self.telemetry.enabled}"
        )

    @staticmethod
    def _env_int(name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError as e:
            raise AdoConfigurationError(
                f"{name} must be an integer", context={name: raw}, original_exception=e
            ) from e

    def _validate(self):
        """Validate the complete configuration."""
        errors = []

        parsed = urlparse(self.server_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append("AZURE_DEVOPS_URL: AZURE_DEVOPS_URL must be a valid URL")

        if not self.pat:
            errors.append("AZURE_DEVOPS_PAT: AZURE_DEVOPS_PAT is required")

        if not self.collection or "/" in self.collection:
            errors.append("AZURE_DEVOPS_COLLECTION: collection must be a single path segment")

        if self.release_url:
            parsed_release = urlparse(self.release_url)
            if parsed_release.scheme not in ("http", "https") or not parsed_release.netloc:
                errors.append("AZURE_DEVOPS_RELEASE_URL: must be a valid URL")

        if self.request_timeout_seconds <= 0:
            errors.append("ADO_REQUEST_TIMEOUT: request timeout must be positive")

        if errors:
            raise AdoConfigurationError(
                "Configuration error:\n" + "\n".join(errors),
                context={"errors": errors},
            )

    @classmethod
    def from_env(cls, **overrides) -> "AdoMcpConfig":
        """
        Create configuration from environment variables with optional overrides.

        Sub-configurations are also read from the environment here, so that a
        plain ``AdoMcpConfig(...)`` in tests is not affected by stray
        telemetry or pool variables.

        Args:
            **overrides: Configuration values to override

        Returns:
            AdoMcpConfig: Configured instance
        """
        overrides.setdefault(
            "telemetry",
            TelemetryConfig(
                enabled=_env_flag("ADO_TELEMETRY_ENABLED", False),
                service_name=os.getenv("ADO_TELEMETRY_SERVICE_NAME", "azdo-mcp"),
                trace_sampling_rate=float(os.getenv("ADO_TELEMETRY_TRACE_SAMPLING_RATE", "1.0")),
                metrics_enabled=_env_flag("ADO_TELEMETRY_METRICS_ENABLED", True),
            ),
        )
        overrides.setdefault(
            "connection_pool",
            ConnectionPoolConfig(
                max_pool_connections=cls._env_int("ADO_CONNECTION_POOL_MAX_CONNECTIONS", 10),
                max_pool_size=cls._env_int("ADO_CONNECTION_POOL_MAX_SIZE", 20),
            ),
        )
        return cls(**overrides)

    @property
    def collection_url(self) -> str:
        """Base URL for every collection-scoped REST call."""
        return f"{self.server_url}/{self.collection}"

    @property
    def release_collection_url(self) -> str:
        """Base URL for release management calls (a separate host on Azure DevOps Services)."""
        if self.release_url:
            return f"{self.release_url}/{self.collection}"
        return self.collection_url
