"""
Tests for the access-decision engine.
"""

from datetime import datetime, timezone
from typing import List, Optional
from unittest.mock import Mock

import pytest

from familyos.core.caching import DecisionCache
from familyos.core.exceptions import InvalidInputError, TransientUpstreamError
from familyos.features.content_filter import FilterVerdict
from familyos.features.parental_controls import (
    AccessDecisionEngine,
    AgeGroup,
    AgePolicyTable,
    FamilyMember,
    FamilyRole,
)
from familyos.features.parental_controls.engine import extract_host
from familyos.features.security import AuditLevel, AuditTrail

from conftest import FakeClock

KHAN_ACADEMY = "https://www.khanacademy.org/learn"


async def recorded(audit: AuditTrail) -> List[tuple]:
    """Flush the trail and return (activity, level) pairs read back from storage."""
    await audit.flush()
    events = await audit.get_activity_logs(datetime.min.replace(tzinfo=timezone.utc))
    return [(event.activity, event.level) for event in events]


class StubFilter:
    """Stands in for the remote content-filter service."""

    def __init__(
        self,
        verdict: Optional[FilterVerdict] = None,
        error: Optional[Exception] = None,
    ):
        self.verdict = verdict
        self.error = error
        self.urls: List[str] = []
        self.texts: List[str] = []

    async def filter_url(self, url: str) -> FilterVerdict:
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.verdict

    async def filter_text(self, text: str) -> FilterVerdict:
        self.texts.append(text)
        if self.error:
            raise self.error
        return self.verdict


def member(
    age_group: AgeGroup,
    role: FamilyRole = FamilyRole.CHILD,
    **kwargs,
) -> FamilyMember:
    return FamilyMember(
        id=f"member-{age_group.value}-{role.value}",
        username=f"{age_group.value}_{role.value}",
        age_group=age_group,
        role=role,
        **kwargs,
    )


class TestAppAccess:
    """Test application decisions and precedence."""

    @pytest.mark.asyncio
    async def test_explicit_allow_beats_block_and_age(
        self, engine: AccessDecisionEngine
    ) -> None:
        """Test an explicit allow wins over every other rule."""
        toddler = member(
            AgeGroup.TODDLER,
            allowed_apps=["Family Chat"],
            blocked_apps=["Family Chat"],
        )
        assert await engine.can_access_app(toddler, "Family Chat") is True

    @pytest.mark.asyncio
    async def test_alex_blocked_app_beats_age_default(
        self, engine: AccessDecisionEngine, audit: AuditTrail, alex: FamilyMember
    ) -> None:
        """Test a member block wins over the age-group allow-set."""
        assert engine.policy.app_rule(AgeGroup.MIDDLE_SCHOOL, "Family Chat") is True
        assert await engine.can_access_app(alex, "Family Chat") is False

        assert await recorded(audit) == [
            ("Blocked app access: Family Chat", AuditLevel.BLOCKED)
        ]

    @pytest.mark.asyncio
    async def test_age_restriction(
        self, engine: AccessDecisionEngine, audit: AuditTrail, emma: FamilyMember
    ) -> None:
        """Test apps outside the age allow-set are denied and audited."""
        assert await engine.can_access_app(emma, "Safe Browser") is False
        assert await engine.can_access_app(emma, "Educational Hub") is True

        assert await recorded(audit) == [
            ("Age restriction: Safe Browser blocked for Toddler", AuditLevel.BLOCKED)
        ]

    @pytest.mark.asyncio
    async def test_age_rules_ignore_case(
        self, engine: AccessDecisionEngine, sarah: FamilyMember
    ) -> None:
        """Test the age allow-set matches regardless of case."""
        assert await engine.can_access_app(sarah, "family game center") is True

    @pytest.mark.asyncio
    async def test_parent_role_default(
        self, engine: AccessDecisionEngine, mom: FamilyMember
    ) -> None:
        """Test only the parent role is allowed where no age rule exists."""
        assert await engine.can_access_app(mom, "System Settings") is True

        not_a_parent = member(AgeGroup.PARENT, FamilyRole.TEEN)
        assert await engine.can_access_app(not_a_parent, "System Settings") is False

    @pytest.mark.asyncio
    async def test_allowed_decisions_are_not_audited(
        self, engine: AccessDecisionEngine, audit: AuditTrail, sarah: FamilyMember
    ) -> None:
        """Test only denials reach the audit trail."""
        await engine.can_access_app(sarah, "Educational Hub")
        assert audit.pending_count() == 0


class TestDecisionCaching:
    """Test bounded staleness of cached decisions."""

    @pytest.mark.asyncio
    async def test_cached_decision_survives_policy_change(
        self,
        engine: AccessDecisionEngine,
        clock: FakeClock,
        sarah: FamilyMember,
    ) -> None:
        """Test a change only takes effect once the cached entry expires."""
        assert await engine.can_access_app(sarah, "Family Game Center") is True

        sarah.blocked_apps.append("Family Game Center")
        clock.advance(minutes=9)
        assert await engine.can_access_app(sarah, "Family Game Center") is True

        clock.advance(minutes=2)
        assert await engine.can_access_app(sarah, "Family Game Center") is False

    @pytest.mark.asyncio
    async def test_cache_hit_skips_audit(
        self, engine: AccessDecisionEngine, audit: AuditTrail, alex: FamilyMember
    ) -> None:
        """Test a cached denial is not audited again."""
        await engine.can_access_app(alex, "Family Chat")
        await engine.can_access_app(alex, "Family Chat")
        assert audit.pending_count() == 1

    @pytest.mark.asyncio
    async def test_decisions_are_per_member(
        self, engine: AccessDecisionEngine, alex: FamilyMember, sarah: FamilyMember
    ) -> None:
        """Test one member's decision is never served to another."""
        assert await engine.can_access_app(alex, "Family Chat") is False
        assert await engine.can_access_app(sarah, "Family Chat") is True

    @pytest.mark.asyncio
    async def test_errors_fail_closed_and_are_not_cached(
        self, cache: DecisionCache, audit: AuditTrail, sarah: FamilyMember
    ) -> None:
        """Test an evaluation error denies without caching the denial."""
        policy = Mock(spec=AgePolicyTable)
        policy.app_rule.side_effect = RuntimeError("table corrupted")
        engine = AccessDecisionEngine(cache, audit, policy=policy)

        assert await engine.can_access_app(sarah, "Safe Browser") is False
        assert await engine.can_access_app(sarah, "Safe Browser") is False
        assert policy.app_rule.call_count == 2
        assert len(cache) == 0


class TestUrlAccess:
    """Test URL decisions."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("age_group", list(AgeGroup))
    async def test_khan_academy_allowed_for_everyone(
        self, engine: AccessDecisionEngine, age_group: AgeGroup
    ) -> None:
        """Test an educational site is not on any blocked-domain list."""
        assert await engine.can_access_url(member(age_group), KHAN_ACADEMY) is True

    @pytest.mark.asyncio
    async def test_blocked_domain(
        self, engine: AccessDecisionEngine, audit: AuditTrail, alex: FamilyMember
    ) -> None:
        """Test a blocked domain matches against the host."""
        url = "https://www.tiktok.com/@someone"
        assert await engine.can_access_url(alex, url) is False
        assert await engine.can_access_url(alex, "https://www.facebook.com") is True

        assert await recorded(audit) == [
            (f"Blocked URL access: {url}", AuditLevel.BLOCKED)
        ]

    @pytest.mark.asyncio
    async def test_host_match_ignores_case(
        self, engine: AccessDecisionEngine, sarah: FamilyMember
    ) -> None:
        """Test the host is lower-cased before matching."""
        assert await engine.can_access_url(sarah, "https://WWW.Instagram.COM/") is False

    @pytest.mark.asyncio
    async def test_allowed_website_beats_age_block(
        self, engine: AccessDecisionEngine
    ) -> None:
        """Test an allowed-website substring overrides the blocked domains."""
        toddler = member(AgeGroup.TODDLER, allowed_websites=["YouTube.com/kids"])

        assert await engine.can_access_url(toddler, "https://youtube.com/kids/abc") is True
        assert await engine.can_access_url(toddler, "https://youtube.com/watch") is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("blank", ["", "   "])
    async def test_blank_allowed_website_allows_nothing(
        self, engine: AccessDecisionEngine, blank: str
    ) -> None:
        """Test an empty allowed-website entry does not open every site."""
        toddler = member(AgeGroup.TODDLER, allowed_websites=[blank, "youtube.com/kids"])

        assert await engine.can_access_url(toddler, "https://youtube.com/watch") is False
        assert await engine.can_access_url(toddler, "https://youtube.com/kids/1") is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url", ["not a url", "www.example.com", "https://", "", "mailto:"]
    )
    async def test_malformed_url(
        self, engine: AccessDecisionEngine, cache: DecisionCache, url: str
    ) -> None:
        """Test malformed URLs are rejected and never cached."""
        with pytest.raises(InvalidInputError):
            await engine.can_access_url(member(AgeGroup.ELEMENTARY), url)
        assert len(cache) == 0

    def test_extract_host(self) -> None:
        """Test host extraction."""
        assert extract_host("https://Sub.Example.com:8443/path?q=1") == "sub.example.com"


class TestContentAccess:
    """Test text content decisions."""

    @pytest.mark.asyncio
    async def test_young_child_keywords(
        self, engine: AccessDecisionEngine, audit: AuditTrail, emma: FamilyMember
    ) -> None:
        """Test the younger keyword set applies to toddlers."""
        assert await engine.can_access_content(emma, "A SCARY story") is False
        assert await engine.can_access_content(emma, "Counting with friends") is True

        assert await recorded(audit) == [
            ("Blocked inappropriate content for Toddler", AuditLevel.BLOCKED)
        ]

    @pytest.mark.asyncio
    async def test_elementary_keywords(
        self, engine: AccessDecisionEngine, sarah: FamilyMember
    ) -> None:
        """Test the elementary additions."""
        assert await engine.can_access_content(sarah, "Join our social media") is False
        assert await engine.can_access_content(sarah, "A scary movie") is True

    @pytest.mark.asyncio
    async def test_high_school_has_no_keywords(
        self, engine: AccessDecisionEngine
    ) -> None:
        """Test older groups are not keyword filtered."""
        teen = member(AgeGroup.HIGH_SCHOOL, FamilyRole.TEEN)
        assert await engine.can_access_content(teen, "violence in history") is True

    @pytest.mark.asyncio
    async def test_allow_lists_never_apply(self, engine: AccessDecisionEngine) -> None:
        """Test allow lists do not override a keyword denial."""
        child = member(
            AgeGroup.MIDDLE_SCHOOL,
            allowed_apps=["gambling"],
            allowed_websites=["gambling"],
        )
        assert await engine.can_access_content(child, "gambling tips") is False

    @pytest.mark.asyncio
    async def test_non_string_content(self, engine: AccessDecisionEngine) -> None:
        """Test non-text content is rejected."""
        with pytest.raises(InvalidInputError):
            await engine.can_access_content(member(AgeGroup.TODDLER), None)  # type: ignore[arg-type]


class TestRemoteFilter:
    """Test the optional remote filter and its local fallback."""

    @pytest.mark.asyncio
    async def test_remote_verdict_decides_url(
        self, cache: DecisionCache, audit: AuditTrail, sarah: FamilyMember
    ) -> None:
        """Test a remote denial applies when no allow entry matches."""
        remote = StubFilter(FilterVerdict(is_allowed=False, reason="phishing"))
        engine = AccessDecisionEngine(cache, audit, remote_filter=remote)

        assert await engine.can_access_url(sarah, KHAN_ACADEMY) is False
        assert remote.urls == [KHAN_ACADEMY]

    @pytest.mark.asyncio
    async def test_allowed_website_skips_remote(
        self, cache: DecisionCache, audit: AuditTrail
    ) -> None:
        """Test an explicit allow never calls the remote filter."""
        remote = StubFilter(FilterVerdict(is_allowed=False))
        engine = AccessDecisionEngine(cache, audit, remote_filter=remote)
        child = member(AgeGroup.ELEMENTARY, allowed_websites=["khanacademy.org"])

        assert await engine.can_access_url(child, KHAN_ACADEMY) is True
        assert remote.urls == []

    @pytest.mark.asyncio
    async def test_url_falls_back_to_local_policy(
        self, cache: DecisionCache, audit: AuditTrail, sarah: FamilyMember
    ) -> None:
        """Test an unavailable filter falls back to the blocked domains."""
        remote = StubFilter(error=TransientUpstreamError("/api/filter/url", "down"))
        engine = AccessDecisionEngine(cache, audit, remote_filter=remote)

        assert await engine.can_access_url(sarah, KHAN_ACADEMY) is True
        assert await engine.can_access_url(sarah, "https://reddit.com/r/all") is False

    @pytest.mark.asyncio
    async def test_content_keywords_checked_before_remote(
        self, cache: DecisionCache, audit: AuditTrail, sarah: FamilyMember
    ) -> None:
        """Test a local keyword denial never reaches the remote filter."""
        remote = StubFilter(FilterVerdict(is_allowed=True))
        engine = AccessDecisionEngine(cache, audit, remote_filter=remote)

        assert await engine.can_access_content(sarah, "drugs") is False
        assert remote.texts == []

    @pytest.mark.asyncio
    async def test_remote_content_verdict(
        self, cache: DecisionCache, audit: AuditTrail, sarah: FamilyMember
    ) -> None:
        """Test the remote filter can deny text the keywords allow."""
        remote = StubFilter(FilterVerdict(is_allowed=False, threat_score=0.9))
        engine = AccessDecisionEngine(cache, audit, remote_filter=remote)

        assert await engine.can_access_content(sarah, "a friendly message") is False
        assert remote.texts == ["a friendly message"]

    @pytest.mark.asyncio
    async def test_content_falls_back_to_keywords(
        self, cache: DecisionCache, audit: AuditTrail, sarah: FamilyMember
    ) -> None:
        """Test an unavailable filter leaves the keyword decision in place."""
        remote = StubFilter(error=TransientUpstreamError("/api/filter/content", "down"))
        engine = AccessDecisionEngine(cache, audit, remote_filter=remote)

        assert await engine.can_access_content(sarah, "a friendly message") is True
