"""
Security feature package.

Provides encryption of persisted family data, the batched audit trail and
parent verification.
"""

from .audit import AuditTrail
from .crypto import CryptoGateway
from .manager import SystemSecurityService, hash_pin
from .types import AuditEvent, AuditLevel

__all__ = [
    "AuditEvent",
    "AuditLevel",
    "AuditTrail",
    "CryptoGateway",
    "SystemSecurityService",
    "hash_pin",
]
