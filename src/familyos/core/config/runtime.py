"""
Runtime configuration sections for FamilyOS.

Each section validates itself on construction and raises ConfigurationError
for values the core cannot operate with.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from ..exceptions import ConfigurationError
from .base import ENV_DATA_DIR, ENV_ENCRYPTION_KEY, ENV_FILTER_URL


def _require_positive(section: str, name: str, value: float) -> None:
    if value <= 0:
        raise ConfigurationError(
            f"{section}.{name} must be positive, got {value}",
            error_code="INVALID_CONFIG",
            details={"section": section, "field": name, "value": value},
            component="Config",
        )


@dataclass
class CacheConfig:
    """Decision cache sizing and per-purpose TTLs."""

    max_entries: int = 10000
    access_ttl_seconds: float = 600.0  # 10 minutes
    screen_time_ttl_seconds: float = 60.0  # 1 minute
    crypto_ttl_seconds: float = 600.0  # 10 minutes
    pin_ttl_seconds: float = 300.0  # 5 minutes

    def __post_init__(self) -> None:
        """Validate cache configuration."""
        _require_positive("cache", "max_entries", self.max_entries)
        _require_positive("cache", "access_ttl_seconds", self.access_ttl_seconds)
        _require_positive(
            "cache", "screen_time_ttl_seconds", self.screen_time_ttl_seconds
        )
        _require_positive("cache", "crypto_ttl_seconds", self.crypto_ttl_seconds)
        _require_positive("cache", "pin_ttl_seconds", self.pin_ttl_seconds)


@dataclass
class AuditConfig:
    """Audit trail batching configuration."""

    flush_interval_seconds: float = 30.0
    batch_size: int = 100
    shutdown_timeout_seconds: float = 5.0
    audit_file_name: str = "audit_logs.json"

    def __post_init__(self) -> None:
        """Validate audit configuration."""
        _require_positive("audit", "flush_interval_seconds", self.flush_interval_seconds)
        _require_positive("audit", "batch_size", self.batch_size)
        _require_positive(
            "audit", "shutdown_timeout_seconds", self.shutdown_timeout_seconds
        )


@dataclass
class CryptoConfig:
    """Symmetric encryption configuration."""

    # Empty secret means a random key for the lifetime of the process
    secret: str = field(default_factory=lambda: os.environ.get(ENV_ENCRYPTION_KEY, ""))
    # SHA-256 hex digest of the parent PIN
    parent_pin_hash: str = ""


@dataclass
class ContentFilterConfig:
    """Remote content-filter service configuration."""

    base_url: str = field(default_factory=lambda: os.environ.get(ENV_FILTER_URL, ""))
    timeout_seconds: float = 2.0

    def __post_init__(self) -> None:
        """Validate content filter configuration."""
        _require_positive("content_filter", "timeout_seconds", self.timeout_seconds)

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)


@dataclass
class PathsConfig:
    """Filesystem paths for persisted family data."""

    data_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get(ENV_DATA_DIR, str(Path.cwd() / "FamilyData"))
        )
    )
    state_name: str = "parental_controls_state"

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir)
