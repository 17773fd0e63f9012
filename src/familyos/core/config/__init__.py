"""
Configuration management for FamilyOS.

Provides a clean public API for all configuration components.
"""

from .base import Environment
from .main import Config
from .runtime import (
    AuditConfig,
    CacheConfig,
    ContentFilterConfig,
    CryptoConfig,
    PathsConfig,
)

__all__ = [
    "Config",
    "Environment",
    "AuditConfig",
    "CacheConfig",
    "ContentFilterConfig",
    "CryptoConfig",
    "PathsConfig",
]
