"""Remote content-filter client used before local policy for URLs and text."""

from .client import RemoteContentFilter
from .types import FilterVerdict

__all__ = ["FilterVerdict", "RemoteContentFilter"]
