"""
System security service.

Owns the crypto gateway and the audit trail, and runs the audit flusher for
the lifetime of the service.
"""

import hashlib
import hmac
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from ...core.caching import DecisionCache
from ...core.config import Config
from ...core.exceptions import InvalidInputError
from ...core.logging import get_logger
from ...core.persistence import BaseDataManager, FileStorage
from .audit import AuditTrail
from .crypto import CryptoGateway
from .types import AuditEvent

if TYPE_CHECKING:
    from ..parental_controls.types import FamilyMember

logger = get_logger(__name__)

PIN_CACHE_PREFIX = "pin:"


def hash_pin(pin: str) -> str:
    """SHA-256 hex digest used to store the parent PIN in configuration."""
    return hashlib.sha256(pin.encode("utf-8")).hexdigest()


class SystemSecurityService(BaseDataManager):
    """Encryption, audit logging and parent verification for the family."""

    def __init__(
        self,
        config: Optional[Config] = None,
        cache: Optional[DecisionCache] = None,
        storage: Optional[FileStorage] = None,
    ):
        self.config = config or Config()
        storage = storage or FileStorage(
            self.config.paths.data_dir, self.config.audit.audit_file_name
        )
        super().__init__(storage, "SystemSecurityService")

        self.cache = cache or DecisionCache(self.config.cache.max_entries)
        self.crypto = CryptoGateway(
            self.cache,
            secret=self.config.crypto.secret,
            cache_ttl_seconds=self.config.cache.crypto_ttl_seconds,
        )
        self.audit = AuditTrail(self.crypto, storage, self.config.audit)

    async def _load_data(self) -> None:
        """Start the audit flusher."""
        self.audit.start()

    async def _save_data(self) -> None:
        """Stop the flusher with a bounded final flush."""
        await self.audit.stop()

    def encrypt(self, data: str) -> str:
        return self.crypto.encrypt(data)

    def decrypt(self, data: str) -> str:
        return self.crypto.decrypt(data)

    def record(
        self, activity: str, member: Optional["FamilyMember"] = None
    ) -> AuditEvent:
        """Fire-and-forget audit entry."""
        return self.audit.record(activity, member)

    async def get_activity_logs(self, since: datetime) -> List[AuditEvent]:
        return await self.audit.get_activity_logs(since)

    def verify_parent_permission(self, pin: str) -> bool:
        """Check a parent PIN against the configured hash."""
        if not pin:
            raise InvalidInputError("pin", pin, "PIN must not be empty")

        pin_hash = hash_pin(pin)
        cache_key = f"{PIN_CACHE_PREFIX}{pin_hash}"
        cached, found = self.cache.get(cache_key)
        if found:
            return cached

        expected = self.config.crypto.parent_pin_hash
        is_valid = bool(expected) and hmac.compare_digest(pin_hash, expected.lower())

        self.cache.put(cache_key, is_valid, self.config.cache.pin_ttl_seconds)
        self.record(
            f"Parent permission verification: {'Success' if is_valid else 'Failed'}"
        )
        if not is_valid:
            logger.log_security_event("parent_pin_rejected")
        return is_valid
