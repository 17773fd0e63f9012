"""
Parental controls types and data structures.

Contains enums and data classes describing family members as supplied by
the family roster.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, List, Optional


@total_ordering
class AgeGroup(Enum):
    """Age groups, ordered from youngest to parent."""

    TODDLER = "toddler"  # 2-4 years
    PRESCHOOL = "preschool"  # 4-6 years
    ELEMENTARY = "elementary"  # 6-11 years
    MIDDLE_SCHOOL = "middle_school"  # 11-14 years
    HIGH_SCHOOL = "high_school"  # 14-18 years
    PARENT = "parent"

    @property
    def rank(self) -> int:
        return list(AgeGroup).index(self)

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, AgeGroup):
            return NotImplemented
        return self.rank < other.rank


class FamilyRole(Enum):
    """Roles within the family."""

    PARENT = "parent"
    TEEN = "teen"
    CHILD = "child"


@dataclass
class ScreenTimeSettings:
    """Daily screen-time budget configuration."""

    weekday_limit: timedelta = field(default_factory=lambda: timedelta(hours=2))
    weekend_limit: timedelta = field(default_factory=lambda: timedelta(hours=3))
    enforce: bool = True

    def limit_for(self, day: datetime) -> timedelta:
        """Return the budget that applies on ``day`` (Saturday/Sunday use the weekend limit)."""
        return self.weekend_limit if day.weekday() >= 5 else self.weekday_limit

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "weekday_limit_minutes": self.weekday_limit.total_seconds() / 60,
            "weekend_limit_minutes": self.weekend_limit.total_seconds() / 60,
            "enforce": self.enforce,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScreenTimeSettings":
        """Create from dictionary."""
        return cls(
            weekday_limit=timedelta(minutes=data.get("weekday_limit_minutes", 120)),
            weekend_limit=timedelta(minutes=data.get("weekend_limit_minutes", 180)),
            enforce=data.get("enforce", True),
        )


@dataclass
class FamilyMember:
    """A family member as supplied by the roster provider."""

    id: str
    username: str
    age_group: AgeGroup
    role: FamilyRole
    display_name: str = ""
    allowed_apps: List[str] = field(default_factory=list)
    blocked_apps: List[str] = field(default_factory=list)
    allowed_websites: List[str] = field(default_factory=list)
    screen_time: ScreenTimeSettings = field(default_factory=ScreenTimeSettings)

    # Runtime fields
    last_login: Optional[datetime] = None
    is_online: bool = False

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.username.title()

    @property
    def is_parent(self) -> bool:
        return self.role == FamilyRole.PARENT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.display_name,
            "age_group": self.age_group.value,
            "role": self.role.value,
            "allowed_apps": list(self.allowed_apps),
            "blocked_apps": list(self.blocked_apps),
            "allowed_websites": list(self.allowed_websites),
            "screen_time": self.screen_time.to_dict(),
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "is_online": self.is_online,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FamilyMember":
        """Create from dictionary."""
        last_login = data.get("last_login")
        return cls(
            id=str(data["id"]),
            username=data["username"],
            display_name=data.get("display_name", ""),
            age_group=AgeGroup(data["age_group"]),
            role=FamilyRole(data["role"]),
            allowed_apps=list(data.get("allowed_apps", [])),
            blocked_apps=list(data.get("blocked_apps", [])),
            allowed_websites=list(data.get("allowed_websites", [])),
            screen_time=ScreenTimeSettings.from_dict(data.get("screen_time", {})),
            last_login=datetime.fromisoformat(last_login) if last_login else None,
            is_online=data.get("is_online", False),
        )
