"""Persistence utilities for FamilyOS services."""

from .base_manager import BaseDataManager
from .storage import FileStorage

__all__ = ["BaseDataManager", "FileStorage"]
