"""
Access-decision engine for apps, URLs and text content.

Precedence is fixed: an explicit allow on the member beats an explicit block,
which beats the age-group default. Every decision is cached for the access
TTL; there is no invalidation, so roster changes take effect once cached
entries expire.

Access checks fail closed. An unexpected error while evaluating policy is
logged and yields a denial that is not cached. InvalidInputError is the one
error passed back to the caller.
"""

from typing import Optional, Tuple
from urllib.parse import urlsplit

from ...core.caching import DecisionCache
from ...core.exceptions import InvalidInputError, TransientUpstreamError
from ...core.logging import get_logger
from ..content_filter import RemoteContentFilter
from ..security.audit import AuditTrail
from ..security.crypto import content_hash
from .policy import DEFAULT_POLICY, AgePolicyTable
from .types import FamilyMember, FamilyRole

logger = get_logger(__name__)

ACCESS_CACHE_PREFIX = "access:"
URL_CACHE_PREFIX = "url:"
CONTENT_CACHE_PREFIX = "content:"


def extract_host(url: str) -> str:
    """Return the lower-cased host of ``url``.

    Raises:
        InvalidInputError: if the URL has no scheme or no host
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidInputError("url", url, "URL must be a non-empty string")

    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except ValueError as e:
        raise InvalidInputError("url", url, f"unparseable URL: {e}") from e

    if not parts.scheme or not host:
        raise InvalidInputError("url", url, "URL must include a scheme and a host")
    return host.lower()


class AccessDecisionEngine:
    """Answers "can member M use resource R" for apps, URLs and text."""

    def __init__(
        self,
        cache: DecisionCache,
        audit: AuditTrail,
        policy: AgePolicyTable = DEFAULT_POLICY,
        access_ttl_seconds: float = 600.0,
        remote_filter: Optional[RemoteContentFilter] = None,
    ):
        self.cache = cache
        self.audit = audit
        self.policy = policy
        self.access_ttl_seconds = access_ttl_seconds
        self.remote_filter = remote_filter

    def _store(
        self,
        kind: str,
        cache_key: str,
        member: FamilyMember,
        resource: str,
        allowed: bool,
        source: str,
    ) -> bool:
        self.cache.put(cache_key, allowed, self.access_ttl_seconds)
        logger.log_policy_decision(kind, member.id, resource, allowed, source)
        return allowed

    def _fail_closed(
        self, kind: str, member: FamilyMember, resource: str, error: Exception
    ) -> bool:
        logger.error(
            f"Error evaluating {kind} access; denying",
            decision_member=member.id,
            resource=resource,
            error=str(error),
            error_type=type(error).__name__,
        )
        return False

    # Apps

    def _evaluate_app(self, member: FamilyMember, app_name: str) -> Tuple[bool, str]:
        if app_name in member.allowed_apps:
            return True, "member_allow"
        if app_name in member.blocked_apps:
            return False, "member_block"

        rule = self.policy.app_rule(member.age_group, app_name)
        if rule is None:
            return member.role == FamilyRole.PARENT, "role_default"
        return rule, "age_policy"

    async def can_access_app(self, member: FamilyMember, app_name: str) -> bool:
        """Decide whether ``member`` may open the application ``app_name``."""
        cache_key = f"{ACCESS_CACHE_PREFIX}{member.id}:{app_name}"
        cached, found = self.cache.get(cache_key)
        if found:
            return cached

        try:
            allowed, source = self._evaluate_app(member, app_name)
        except Exception as e:
            return self._fail_closed("app", member, app_name, e)

        if not allowed:
            if source == "member_block":
                self.audit.record(f"Blocked app access: {app_name}", member)
            else:
                self.audit.record(
                    f"Age restriction: {app_name} blocked for "
                    f"{member.age_group.display_name}",
                    member,
                )

        return self._store("app", cache_key, member, app_name, allowed, source)

    # URLs

    def _matches_allowed_website(self, member: FamilyMember, url: str) -> bool:
        url_lower = url.lower()
        # A blank entry would match every URL
        return any(
            site.strip().lower() in url_lower
            for site in member.allowed_websites
            if site.strip()
        )

    def _evaluate_url_locally(self, member: FamilyMember, host: str) -> bool:
        blocked = self.policy.blocked_domains_for(member.age_group)
        return not any(domain in host for domain in blocked)

    async def _ask_remote_url(self, url: str) -> Optional[bool]:
        if self.remote_filter is None:
            return None
        try:
            verdict = await self.remote_filter.filter_url(url)
        except TransientUpstreamError as e:
            logger.warning(
                "Content filter unavailable; using local URL policy", error=str(e)
            )
            return None
        return verdict.is_allowed

    async def can_access_url(self, member: FamilyMember, url: str) -> bool:
        """Decide whether ``member`` may open ``url``.

        Raises:
            InvalidInputError: if ``url`` is not an absolute URL
        """
        host = extract_host(url)

        cache_key = f"{URL_CACHE_PREFIX}{member.id}:{content_hash(url)}"
        cached, found = self.cache.get(cache_key)
        if found:
            return cached

        try:
            if self._matches_allowed_website(member, url):
                allowed, source = True, "member_allow"
            else:
                remote = await self._ask_remote_url(url)
                if remote is not None:
                    allowed, source = remote, "remote_filter"
                else:
                    allowed = self._evaluate_url_locally(member, host)
                    source = "age_policy"
        except Exception as e:
            return self._fail_closed("url", member, url, e)

        if not allowed:
            self.audit.record(f"Blocked URL access: {url}", member)

        return self._store("url", cache_key, member, url, allowed, source)

    # Content

    def _contains_blocked_keyword(self, member: FamilyMember, text: str) -> bool:
        text_lower = text.lower()
        return any(
            keyword in text_lower
            for keyword in self.policy.keywords_for(member.age_group)
        )

    async def _ask_remote_text(self, text: str) -> Optional[bool]:
        if self.remote_filter is None:
            return None
        try:
            verdict = await self.remote_filter.filter_text(text)
        except TransientUpstreamError as e:
            logger.warning(
                "Content filter unavailable; using local keyword policy", error=str(e)
            )
            return None
        return verdict.is_allowed

    async def can_access_content(self, member: FamilyMember, text: str) -> bool:
        """Decide whether ``member`` may view ``text``. Allow lists never apply."""
        if not isinstance(text, str):
            raise InvalidInputError("text", text, "content must be a string")

        cache_key = f"{CONTENT_CACHE_PREFIX}{member.id}:{content_hash(text)}"
        cached, found = self.cache.get(cache_key)
        if found:
            return cached

        resource = text[:64]
        try:
            if self._contains_blocked_keyword(member, text):
                allowed, source = False, "age_policy"
            else:
                remote = await self._ask_remote_text(text)
                if remote is not None:
                    allowed, source = remote, "remote_filter"
                else:
                    allowed, source = True, "age_policy"
        except Exception as e:
            return self._fail_closed("content", member, resource, e)

        if not allowed:
            self.audit.record(
                f"Blocked inappropriate content for {member.age_group.display_name}",
                member,
            )

        return self._store("content", cache_key, member, resource, allowed, source)
