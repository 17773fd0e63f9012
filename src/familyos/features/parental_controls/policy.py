"""
Age-based policy tables.

The tables are built once, frozen, and handed to the decision engine by
reference. Lookups are keyed by AgeGroup; an age group that has no entry in a
table has no rule of that kind.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import AbstractSet, Iterable, Mapping, Optional

from .types import AgeGroup

_CORE_APPS = (
    "Safe Browser",
    "Educational Hub",
    "Family Game Center",
    "Family Chat",
    "Family File Manager",
    "Screen Time Manager",
)

_SOCIAL_DOMAINS = (
    "facebook.com",
    "twitter.com",
    "instagram.com",
    "tiktok.com",
    "reddit.com",
    "discord.com",
)

BASE_KEYWORDS = (
    "violence",
    "drugs",
    "alcohol",
    "gambling",
    "inappropriate",
    "adult",
)

_YOUNG_CHILD_KEYWORDS = ("scary", "monster", "nightmare", "fight", "weapon")
_ELEMENTARY_KEYWORDS = ("dating", "romance", "social media", "chat")


def _folded(items: Iterable[str]) -> frozenset:
    return frozenset(item.lower() for item in items)


def _freeze(table: Mapping[AgeGroup, Iterable[str]]) -> Mapping[AgeGroup, frozenset]:
    return MappingProxyType({group: _folded(items) for group, items in table.items()})


DEFAULT_ALLOWED_APPS = {
    AgeGroup.TODDLER: ("Educational Hub", "Screen Time Manager"),
    AgeGroup.PRESCHOOL: (
        "Safe Browser",
        "Educational Hub",
        "Family Game Center",
        "Screen Time Manager",
    ),
    AgeGroup.ELEMENTARY: _CORE_APPS,
    AgeGroup.MIDDLE_SCHOOL: _CORE_APPS,
    AgeGroup.HIGH_SCHOOL: _CORE_APPS,
}

DEFAULT_BLOCKED_DOMAINS = {
    AgeGroup.TODDLER: _SOCIAL_DOMAINS + ("youtube.com",),
    AgeGroup.PRESCHOOL: _SOCIAL_DOMAINS,
    AgeGroup.ELEMENTARY: _SOCIAL_DOMAINS,
    AgeGroup.MIDDLE_SCHOOL: ("tiktok.com", "reddit.com", "discord.com"),
}

DEFAULT_KEYWORDS = {
    AgeGroup.TODDLER: BASE_KEYWORDS + _YOUNG_CHILD_KEYWORDS,
    AgeGroup.PRESCHOOL: BASE_KEYWORDS + _YOUNG_CHILD_KEYWORDS,
    AgeGroup.ELEMENTARY: BASE_KEYWORDS + _ELEMENTARY_KEYWORDS,
    AgeGroup.MIDDLE_SCHOOL: BASE_KEYWORDS,
    AgeGroup.HIGH_SCHOOL: (),
    AgeGroup.PARENT: (),
}

DEFAULT_RESTRICTION_SUMMARIES = {
    AgeGroup.TODDLER: "Very restricted - Educational content only, 15-minute sessions",
    AgeGroup.PRESCHOOL: "Highly restricted - Basic educational content, 30-minute sessions",
    AgeGroup.ELEMENTARY: "Restricted - Age-appropriate educational and entertainment content",
    AgeGroup.MIDDLE_SCHOOL: "Moderate restrictions - Supervised social media and research access",
    AgeGroup.HIGH_SCHOOL: "Light restrictions - Most content allowed with monitoring",
    AgeGroup.PARENT: "No restrictions - Full administrative access",
}


@dataclass(frozen=True)
class AgePolicyTable:
    """Immutable per-age-group rule sets. All names are stored lower-cased."""

    allowed_apps: Mapping[AgeGroup, frozenset] = field(
        default_factory=lambda: _freeze(DEFAULT_ALLOWED_APPS)
    )
    blocked_domains: Mapping[AgeGroup, frozenset] = field(
        default_factory=lambda: _freeze(DEFAULT_BLOCKED_DOMAINS)
    )
    keywords: Mapping[AgeGroup, frozenset] = field(
        default_factory=lambda: _freeze(DEFAULT_KEYWORDS)
    )
    restriction_summaries: Mapping[AgeGroup, str] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_RESTRICTION_SUMMARIES))
    )

    @classmethod
    def build(
        cls,
        allowed_apps: Optional[Mapping[AgeGroup, Iterable[str]]] = None,
        blocked_domains: Optional[Mapping[AgeGroup, Iterable[str]]] = None,
        keywords: Optional[Mapping[AgeGroup, Iterable[str]]] = None,
    ) -> "AgePolicyTable":
        """Build a table from plain iterables, falling back to the defaults."""
        return cls(
            allowed_apps=_freeze(
                DEFAULT_ALLOWED_APPS if allowed_apps is None else allowed_apps
            ),
            blocked_domains=_freeze(
                DEFAULT_BLOCKED_DOMAINS if blocked_domains is None else blocked_domains
            ),
            keywords=_freeze(DEFAULT_KEYWORDS if keywords is None else keywords),
        )

    def app_rule(self, age_group: AgeGroup, app_name: str) -> Optional[bool]:
        """Return whether the age group's allow-set contains the app, or None without a rule."""
        allowed = self.allowed_apps.get(age_group)
        if allowed is None:
            return None
        return app_name.lower() in allowed

    def blocked_domains_for(self, age_group: AgeGroup) -> AbstractSet[str]:
        return self.blocked_domains.get(age_group, frozenset())

    def keywords_for(self, age_group: AgeGroup) -> AbstractSet[str]:
        return self.keywords.get(age_group, frozenset())

    def restriction_summary(self, age_group: AgeGroup) -> str:
        return self.restriction_summaries.get(age_group, "Standard restrictions")


DEFAULT_POLICY = AgePolicyTable()
