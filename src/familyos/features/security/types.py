"""
Security types and data structures.

Contains the audit level enum and the immutable audit event record.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict


class AuditLevel(Enum):
    """Severity classes for audit events."""

    INFORMATION = "information"
    WARNING = "warning"
    SECURITY = "security"
    BLOCKED = "blocked"

    @classmethod
    def classify(cls, activity: str) -> "AuditLevel":
        """Derive the level from keywords in the activity text."""
        activity_lower = activity.lower()
        if "blocked" in activity_lower:
            return cls.BLOCKED
        if "failed" in activity_lower or "error" in activity_lower:
            return cls.SECURITY
        if "warning" in activity_lower:
            return cls.WARNING
        return cls.INFORMATION


@dataclass(frozen=True)
class AuditEvent:
    """A single audit record. Never mutated after creation."""

    member_id: str
    activity: str
    details: str
    level: AuditLevel
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_id": self.event_id,
            "member_id": self.member_id,
            "activity": self.activity,
            "details": self.details,
            "level": self.level.value,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEvent":
        """Create from dictionary."""
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            member_id=data["member_id"],
            activity=data["activity"],
            details=data.get("details", ""),
            level=AuditLevel(data["level"]),
            timestamp=timestamp,
            event_id=data.get("event_id", uuid.uuid4().hex),
        )
