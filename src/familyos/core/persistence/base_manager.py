"""
Base service class for common lifecycle functionality.

Provides the initialize/shutdown pattern shared by the FamilyOS services.
"""

import logging
from abc import ABC, abstractmethod

from .storage import FileStorage

logger = logging.getLogger(__name__)


class BaseDataManager(ABC):
    """Base class for services that load on start and persist on shutdown."""

    def __init__(self, storage: FileStorage, manager_name: str):
        """
        Initialize base data manager.

        Args:
            storage: Durable storage shared by the services
            manager_name: Name of the manager for logging
        """
        self.storage = storage
        self.manager_name = manager_name
        self._initialized = False

    @property
    def is_active(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Initialize the data manager."""
        if not self._initialized:
            self.storage.ensure_storage_exists()

            await self._load_data()

            self._initialized = True
            logger.info(
                f"{self.manager_name} initialized with storage: {self.storage.data_dir}"
            )

    async def shutdown(self) -> None:
        """Shutdown the data manager."""
        if self._initialized:
            await self._save_data()

            self._initialized = False
            logger.info(f"{self.manager_name} shutdown")

    async def health_check(self) -> bool:
        """Check if the data manager is healthy."""
        return self._initialized and self.storage.data_dir.exists()

    @abstractmethod
    async def _load_data(self) -> None:
        """Load data during initialization. Must be implemented by subclasses."""
        pass

    @abstractmethod
    async def _save_data(self) -> None:
        """Save data during shutdown. Must be implemented by subclasses."""
        pass
