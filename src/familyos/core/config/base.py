"""
Base configuration infrastructure for FamilyOS.

Contains the Environment enum and the environment variable names that
override file-based configuration.
"""

from enum import Enum

# Environment variable overrides
ENV_ENCRYPTION_KEY = "FAMILYOS_ENCRYPTION_KEY"
ENV_DATA_DIR = "FAMILYOS_DATA_DIR"
ENV_FILTER_URL = "FAMILYOS_FILTER_URL"
ENV_LOG_LEVEL = "FAMILYOS_LOG_LEVEL"


class Environment(Enum):
    """Environment types for configuration."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"
