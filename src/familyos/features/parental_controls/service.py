"""
Parental control service.

Ties the decision engine and the screen-time accountant to the security
service, and persists the screen-time state as an encrypted snapshot.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ...core.config import Config
from ...core.exceptions import CryptoError, PersistenceError
from ...core.logging import get_logger
from ...core.persistence import BaseDataManager
from ..content_filter import RemoteContentFilter
from ..security import SystemSecurityService
from .engine import AccessDecisionEngine
from .policy import DEFAULT_POLICY, AgePolicyTable
from .screen_time import ScreenTimeAccountant
from .types import FamilyMember

logger = get_logger(__name__)


class ParentalControlService(BaseDataManager):
    """Access decisions, screen time and restriction bookkeeping for the family."""

    def __init__(
        self,
        config: Optional[Config] = None,
        security: Optional[SystemSecurityService] = None,
        policy: AgePolicyTable = DEFAULT_POLICY,
        remote_filter: Optional[RemoteContentFilter] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or Config()
        # A security service passed in is owned by the caller
        self._owns_security = security is None
        self.security = security or SystemSecurityService(self.config)
        super().__init__(self.security.storage, "ParentalControlService")

        self._owns_remote_filter = False
        if remote_filter is None and self.config.content_filter.enabled:
            remote_filter = RemoteContentFilter(
                self.config.content_filter.base_url,
                self.config.content_filter.timeout_seconds,
            )
            self._owns_remote_filter = True

        self.policy = policy
        self.remote_filter = remote_filter
        self.engine = AccessDecisionEngine(
            self.security.cache,
            self.security.audit,
            policy=policy,
            access_ttl_seconds=self.config.cache.access_ttl_seconds,
            remote_filter=remote_filter,
        )
        self.screen_time = ScreenTimeAccountant(
            self.security.cache,
            cache_ttl_seconds=self.config.cache.screen_time_ttl_seconds,
            now=now,
        )

    async def _load_data(self) -> None:
        """Start owned collaborators and restore the saved screen-time state."""
        if self._owns_security:
            await self.security.initialize()
        await self._load_state()

    async def _save_data(self) -> None:
        """Save state, then stop owned collaborators."""
        await self.save_state()
        if self._owns_remote_filter and self.remote_filter is not None:
            await self.remote_filter.aclose()
        if self._owns_security:
            await self.security.shutdown()

    async def _load_state(self) -> None:
        state_name = self.config.paths.state_name
        try:
            blob = await self.storage.read_state(state_name)
        except PersistenceError as e:
            logger.error("Failed to read parental controls state", error=str(e))
            return

        if blob is None:
            logger.info("No saved parental controls state; starting fresh")
            return

        try:
            state = json.loads(self.security.decrypt(blob))
            self.screen_time.restore(state.get("session_starts", {}))
        except (ValueError, AttributeError) as e:
            logger.warning("Saved parental controls state is unreadable", error=str(e))
            return

        logger.info(
            "Restored parental controls state",
            members=len(self.screen_time.snapshot()),
            last_saved=state.get("last_saved"),
        )

    async def save_state(self) -> bool:
        """Write the encrypted state snapshot; a failed save is retried on the next call."""
        state = {
            "session_starts": self.screen_time.snapshot(),
            "last_saved": datetime.now(timezone.utc).isoformat(),
        }
        try:
            blob = self.security.encrypt(json.dumps(state))
            await self.storage.write_state(self.config.paths.state_name, blob)
        except (CryptoError, PersistenceError) as e:
            logger.error("Failed to save parental controls state", error=str(e))
            return False

        logger.debug("Parental controls state saved")
        return True

    def apply_restrictions(self, member: FamilyMember) -> None:
        """Start the member's session and mark them online."""
        started_at = self.screen_time.record_session_start(member)
        member.last_login = started_at
        member.is_online = True

        restrictions = self.policy.restriction_summary(member.age_group)
        logger.debug(
            f"Applied restrictions for {member.display_name}: {restrictions}",
            decision_member=member.id,
        )
        self.security.record(
            f"Parental controls applied for {member.display_name}", member
        )

    async def can_access_app(self, member: FamilyMember, app_name: str) -> bool:
        return await self.engine.can_access_app(member, app_name)

    async def can_access_url(self, member: FamilyMember, url: str) -> bool:
        return await self.engine.can_access_url(member, url)

    async def can_access_content(self, member: FamilyMember, text: str) -> bool:
        return await self.engine.can_access_content(member, text)

    def remaining_screen_time(self, member: FamilyMember) -> timedelta:
        return self.screen_time.remaining(member)


def create_parental_control_service(
    config: Optional[Config] = None,
    remote_filter: Optional[RemoteContentFilter] = None,
) -> ParentalControlService:
    """Create a parental control service with its own security service."""
    return ParentalControlService(config=config, remote_filter=remote_filter)
