# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for database, health checks and background loops
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for the health subsystem. Every value can be
overridden through environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides via from_env()
- One lazily built Settings instance per process (get_settings)
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DatabaseDefaults:
    """
    Database connection settings.

    DATABASE_URL wins over the individual POSTGRES_* variables.
    """
    host: str = "localhost"
    port: int = 5432
    name: str = "todoapp"
    user: str = "postgres"
    password: str = ""
    sslmode: str = "prefer"
    url: Optional[str] = None

    pool_min_size: int = 1
    pool_max_size: int = 10
    # Seconds to wait for a pooled connection before giving up
    pool_timeout: float = 10.0
    # Upper bound for a single connectivity probe
    probe_timeout: float = 5.0

    @property
    def connection_string(self) -> str:
        """libpq connection URL."""
        if self.url:
            return self.url
        return (
            f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/"
            f"{self.name}?sslmode={self.sslmode}"
        )

    @classmethod
    def from_env(cls) -> "DatabaseDefaults":
        """Create from environment variables."""
        return cls(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", 5432)),
            name=os.getenv("POSTGRES_DB", "todoapp"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", ""),
            sslmode=os.getenv("POSTGRES_SSLMODE", "prefer"),
            url=os.getenv("DATABASE_URL") or None,
            pool_min_size=int(os.getenv("DB_POOL_MIN_SIZE", 1)),
            pool_max_size=int(os.getenv("DB_POOL_MAX_SIZE", 10)),
            pool_timeout=float(os.getenv("DB_POOL_TIMEOUT_SECONDS", 10.0)),
            probe_timeout=float(os.getenv("DB_PROBE_TIMEOUT_SECONDS", 5.0)),
        )


@dataclass(frozen=True)
class EnvironmentDefaults:
    """
    Runtime environment.

    Inside a container loki is reached through its compose service name
    instead of localhost.
    """
    environment: str = "Production"
    running_in_container: bool = False
    loki_url: Optional[str] = None

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def resolved_loki_url(self) -> str:
        if self.loki_url:
            return self.loki_url.rstrip("/")
        host = "loki" if self.running_in_container else "localhost"
        return f"http://{host}:3100"

    @property
    def loki_health_url(self) -> str:
        return f"{self.resolved_loki_url}/ready"

    @classmethod
    def from_env(cls) -> "EnvironmentDefaults":
        """Create from environment variables."""
        return cls(
            environment=os.getenv("APP_ENV", "Production"),
            running_in_container=_env_bool("RUNNING_IN_CONTAINER"),
            loki_url=os.getenv("LOKI_URL") or None,
        )


@dataclass(frozen=True)
class HealthCheckDefaults:
    """
    Thresholds and per-check timeouts.

    Memory status:
        rss > memory_limit_mb                      -> Unhealthy
        rss > memory_limit_mb * degraded_ratio     -> Degraded
    """
    memory_limit_mb: int = 1024
    memory_degraded_ratio: float = 0.8
    startup_grace_seconds: float = 10.0

    database_timeout: float = 10.0
    system_timeout: float = 5.0
    application_timeout: float = 2.0
    external_timeout: float = 5.0

    @classmethod
    def from_env(cls) -> "HealthCheckDefaults":
        """Create from environment variables."""
        return cls(
            memory_limit_mb=int(os.getenv("HEALTH_MEMORY_LIMIT_MB", 1024)),
            memory_degraded_ratio=float(os.getenv("HEALTH_MEMORY_DEGRADED_RATIO", 0.8)),
            startup_grace_seconds=float(os.getenv("HEALTH_STARTUP_GRACE_SECONDS", 10.0)),
            database_timeout=float(os.getenv("HEALTH_DATABASE_TIMEOUT_SECONDS", 10.0)),
            system_timeout=float(os.getenv("HEALTH_SYSTEM_TIMEOUT_SECONDS", 5.0)),
            application_timeout=float(os.getenv("HEALTH_APPLICATION_TIMEOUT_SECONDS", 2.0)),
            external_timeout=float(os.getenv("LOKI_TIMEOUT_SECONDS", 5.0)),
        )


@dataclass(frozen=True)
class InitializerDefaults:
    """
    Startup migration retry policy.

    Failed attempt n waits base_delay_seconds * 2**n before the next one.
    With the defaults: 2s, 4s, 8s ... 1024s over 10 retries.
    """
    retry_count: int = 10
    base_delay_seconds: float = 1.0

    @classmethod
    def from_env(cls) -> "InitializerDefaults":
        """Create from environment variables."""
        return cls(
            retry_count=int(os.getenv("DB_INIT_RETRY_COUNT", 10)),
            base_delay_seconds=float(os.getenv("DB_INIT_BASE_DELAY_SECONDS", 1.0)),
        )


@dataclass(frozen=True)
class MonitorDefaults:
    """Background database monitor cadence."""
    interval_seconds: float = 300.0
    failure_interval_seconds: float = 60.0

    @classmethod
    def from_env(cls) -> "MonitorDefaults":
        """Create from environment variables."""
        return cls(
            interval_seconds=float(os.getenv("DB_MONITOR_INTERVAL_SECONDS", 300.0)),
            failure_interval_seconds=float(os.getenv("DB_MONITOR_FAILURE_INTERVAL_SECONDS", 60.0)),
        )


@dataclass(frozen=True)
class PublisherDefaults:
    """Health report publishing schedule."""
    delay_seconds: float = 10.0
    period_seconds: float = 60.0
    history_size: int = 50

    @classmethod
    def from_env(cls) -> "PublisherDefaults":
        """Create from environment variables."""
        return cls(
            delay_seconds=float(os.getenv("HEALTH_PUBLISH_DELAY_SECONDS", 10.0)),
            period_seconds=float(os.getenv("HEALTH_PUBLISH_PERIOD_SECONDS", 60.0)),
            history_size=int(os.getenv("HEALTH_HISTORY_SIZE", 50)),
        )


# ============================================================================
# GLOBAL SETTINGS INSTANCE
# ============================================================================

@dataclass
class Settings:
    """Container for all configuration sections."""
    database: DatabaseDefaults = field(default_factory=DatabaseDefaults)
    environment: EnvironmentDefaults = field(default_factory=EnvironmentDefaults)
    health: HealthCheckDefaults = field(default_factory=HealthCheckDefaults)
    initializer: InitializerDefaults = field(default_factory=InitializerDefaults)
    monitor: MonitorDefaults = field(default_factory=MonitorDefaults)
    publisher: PublisherDefaults = field(default_factory=PublisherDefaults)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create all sections from environment variables."""
        return cls(
            database=DatabaseDefaults.from_env(),
            environment=EnvironmentDefaults.from_env(),
            health=HealthCheckDefaults.from_env(),
            initializer=InitializerDefaults.from_env(),
            monitor=MonitorDefaults.from_env(),
            publisher=PublisherDefaults.from_env(),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "DatabaseDefaults",
    "EnvironmentDefaults",
    "HealthCheckDefaults",
    "InitializerDefaults",
    "MonitorDefaults",
    "PublisherDefaults",
    "Settings",
    "get_settings",
    "reset_settings",
]
