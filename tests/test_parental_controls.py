"""
Tests for the parental control service.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from familyos.core.config import Config, CryptoConfig
from familyos.core.exceptions import PersistenceError
from familyos.features.parental_controls import (
    FamilyMember,
    ParentalControlService,
    create_parental_control_service,
)
from familyos.features.security import SystemSecurityService

from conftest import FakeClock

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestApplyRestrictions:
    """Test session start bookkeeping."""

    @pytest.mark.asyncio
    async def test_apply_restrictions(
        self, test_config: Config, clock: FakeClock, sarah: FamilyMember
    ) -> None:
        """Test the member is marked online and the session is audited."""
        service = ParentalControlService(test_config, now=clock.now)

        service.apply_restrictions(sarah)

        assert sarah.is_online is True
        assert sarah.last_login == clock.now()
        assert service.screen_time.session_start(sarah.id) == clock.now()

        await service.security.audit.flush()
        events = await service.security.get_activity_logs(EPOCH)
        assert [e.activity for e in events] == ["Parental controls applied for Sarah"]
        assert events[0].details == "User: Sarah, Age: Elementary"

    def test_remaining_screen_time(
        self, test_config: Config, clock: FakeClock, sarah: FamilyMember
    ) -> None:
        """Test the service reports the accountant's budget."""
        service = ParentalControlService(test_config, now=clock.now)
        service.apply_restrictions(sarah)
        clock.advance(minutes=20)

        assert service.remaining_screen_time(sarah) == timedelta(minutes=40)


class TestDecisions:
    """Test the service delegates to the engine."""

    @pytest.mark.asyncio
    async def test_decisions(
        self, test_config: Config, alex: FamilyMember, sarah: FamilyMember
    ) -> None:
        """Test app, URL and content decisions through the facade."""
        service = create_parental_control_service(test_config)

        assert await service.can_access_app(alex, "Family Chat") is False
        assert await service.can_access_app(sarah, "Family Chat") is True
        assert await service.can_access_url(alex, "https://reddit.com") is False
        assert await service.can_access_content(sarah, "romance novel") is False

    def test_decisions_share_the_security_cache(self, test_config: Config) -> None:
        """Test one cache serves decisions and crypto results."""
        service = ParentalControlService(test_config)
        assert service.engine.cache is service.security.cache
        assert service.screen_time.cache is service.security.cache


class TestStatePersistence:
    """Test the encrypted state snapshot."""

    @pytest.mark.asyncio
    async def test_state_round_trip(
        self, test_config: Config, clock: FakeClock, sarah: FamilyMember
    ) -> None:
        """Test session starts survive a restart."""
        service = ParentalControlService(test_config, now=clock.now)
        await service.initialize()
        service.apply_restrictions(sarah)
        await service.shutdown()

        state_path = test_config.paths.data_dir / "parental_controls_state.json"
        assert state_path.exists()
        assert "member-sarah" not in state_path.read_text(encoding="utf-8")

        restarted = ParentalControlService(test_config, now=clock.now)
        await restarted.initialize()
        assert restarted.screen_time.session_start(sarah.id) == clock.now()
        await restarted.shutdown()

    @pytest.mark.asyncio
    async def test_unreadable_state_starts_fresh(
        self, test_config: Config, clock: FakeClock, sarah: FamilyMember
    ) -> None:
        """Test state written under another key is ignored."""
        service = ParentalControlService(test_config, now=clock.now)
        service.apply_restrictions(sarah)
        assert await service.save_state() is True

        test_config.crypto = CryptoConfig(secret="a-different-secret")
        restarted = ParentalControlService(test_config, now=clock.now)
        await restarted.initialize()

        assert restarted.is_active
        assert restarted.screen_time.session_start(sarah.id) is None
        await restarted.shutdown()

    @pytest.mark.asyncio
    async def test_failed_save_is_retried(
        self, test_config: Config, sarah: FamilyMember
    ) -> None:
        """Test a failed save reports False and the next save succeeds."""
        service = ParentalControlService(test_config)
        service.apply_restrictions(sarah)

        real_write = service.storage.write_state
        service.storage.write_state = AsyncMock(  # type: ignore[method-assign]
            side_effect=PersistenceError("state", "read-only filesystem")
        )
        assert await service.save_state() is False

        service.storage.write_state = real_write  # type: ignore[method-assign]
        assert await service.save_state() is True


class TestLifecycle:
    """Test initialize/shutdown ownership rules."""

    @pytest.mark.asyncio
    async def test_owned_security_is_started_and_stopped(
        self, test_config: Config
    ) -> None:
        """Test a service without an injected security service manages its own."""
        service = ParentalControlService(test_config)
        await service.initialize()
        assert service.security.is_active

        await service.shutdown()
        assert not service.security.is_active

    @pytest.mark.asyncio
    async def test_injected_security_is_left_alone(self, test_config: Config) -> None:
        """Test an injected security service is owned by the caller."""
        security = SystemSecurityService(test_config)
        service = ParentalControlService(test_config, security=security)

        await service.initialize()
        assert not security.is_active
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_closes_owned_remote_filter(
        self, test_config: Config
    ) -> None:
        """Test the remote filter created from config is closed on shutdown."""
        test_config.content_filter.base_url = "http://filter.test"
        service = ParentalControlService(test_config)
        assert service.remote_filter is not None
        assert service.engine.remote_filter is service.remote_filter

        service.remote_filter.aclose = AsyncMock()  # type: ignore[method-assign]
        await service.initialize()
        await service.shutdown()

        service.remote_filter.aclose.assert_awaited_once()
