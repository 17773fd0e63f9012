"""
Main configuration class for FamilyOS.

Contains the Config class that groups every configuration section and knows
how to build itself from a YAML file.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import yaml

from ..exceptions import ConfigurationError
from .base import ENV_LOG_LEVEL, Environment
from .runtime import (
    AuditConfig,
    CacheConfig,
    ContentFilterConfig,
    CryptoConfig,
    PathsConfig,
)
from .yaml_loader import YAMLConfigLoader

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Main configuration class for FamilyOS."""

    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False
    log_level: str = field(
        default_factory=lambda: os.environ.get(ENV_LOG_LEVEL, "WARNING")
    )

    cache: CacheConfig = field(default_factory=CacheConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    crypto: CryptoConfig = field(default_factory=CryptoConfig)
    content_filter: ContentFilterConfig = field(default_factory=ContentFilterConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)

    def __post_init__(self) -> None:
        """Validate the log level and apply environment-specific defaults."""
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level: {self.log_level}",
                error_code="INVALID_CONFIG",
                details={"field": "log_level", "value": self.log_level},
                component="Config",
            )

        if self.environment == Environment.PRODUCTION:
            self.debug = False
            if not self.crypto.secret:
                logger.warning(
                    "No encryption secret configured in production; "
                    "persisted data will be unreadable after restart"
                )
        elif self.environment == Environment.TESTING:
            self.debug = True
            self.audit.flush_interval_seconds = min(
                self.audit.flush_interval_seconds, 0.1
            )
            self.audit.shutdown_timeout_seconds = min(
                self.audit.shutdown_timeout_seconds, 1.0
            )

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        try:
            data = YAMLConfigLoader.load_yaml(config_path)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Cannot read configuration {config_path}: {e}",
                error_code="INVALID_CONFIG",
                component="Config",
            ) from e

        try:
            environment = Environment(data.get("environment", "development"))
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown environment: {data.get('environment')}",
                error_code="INVALID_CONFIG",
                component="Config",
            ) from e

        paths_data = dict(data.get("paths", {}) or {})
        if "data_dir" in paths_data:
            paths_data["data_dir"] = Path(paths_data["data_dir"])

        try:
            return cls(
                environment=environment,
                debug=data.get("debug", False),
                log_level=data.get(
                    "log_level", os.environ.get(ENV_LOG_LEVEL, "WARNING")
                ),
                cache=CacheConfig(**(data.get("cache", {}) or {})),
                audit=AuditConfig(**(data.get("audit", {}) or {})),
                crypto=CryptoConfig(**(data.get("crypto", {}) or {})),
                content_filter=ContentFilterConfig(
                    **(data.get("content_filter", {}) or {})
                ),
                paths=PathsConfig(**paths_data),
            )
        except TypeError as e:
            raise ConfigurationError(
                f"Invalid configuration in {config_path}: {e}",
                error_code="INVALID_CONFIG",
                component="Config",
            ) from e
