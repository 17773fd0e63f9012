"""Caching components for decision and crypto results."""

from .decision_cache import CacheEntry, DecisionCache

__all__ = [
    "CacheEntry",
    "DecisionCache",
]
