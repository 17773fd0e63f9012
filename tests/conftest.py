"""
Pytest configuration and fixtures for FamilyOS.
Only the remote content-filter service and storage failures are faked.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict

import pytest

from familyos.core.caching import DecisionCache
from familyos.core.config import (
    AuditConfig,
    Config,
    ContentFilterConfig,
    CryptoConfig,
    Environment,
    PathsConfig,
)
from familyos.core.persistence import FileStorage
from familyos.features.parental_controls import (
    AccessDecisionEngine,
    AgeGroup,
    FamilyMember,
    FamilyRole,
    ScreenTimeAccountant,
    ScreenTimeSettings,
)
from familyos.features.security import AuditTrail, CryptoGateway, hash_pin

TEST_SECRET = "unit-test-secret"
TEST_PIN = "4321"

# A Wednesday
WEEKDAY_MORNING = datetime(2024, 3, 6, 9, 0, 0)


class FakeClock:
    """Drives both the wall clock and the monotonic cache clock."""

    def __init__(self, start: datetime = WEEKDAY_MORNING):
        self.current = start
        self.elapsed = 1000.0

    def now(self) -> datetime:
        return self.current

    def monotonic(self) -> float:
        return self.elapsed

    def advance(self, **kwargs: Any) -> None:
        delta = timedelta(**kwargs)
        self.current += delta
        self.elapsed += delta.total_seconds()


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> DecisionCache:
    return DecisionCache(max_entries=1000, clock=clock.monotonic)


@pytest.fixture
def storage(temp_dir: Path) -> FileStorage:
    return FileStorage(temp_dir / "FamilyData")


@pytest.fixture
def crypto(cache: DecisionCache) -> CryptoGateway:
    return CryptoGateway(cache, secret=TEST_SECRET)


@pytest.fixture
def audit(crypto: CryptoGateway, storage: FileStorage) -> AuditTrail:
    return AuditTrail(
        crypto,
        storage,
        AuditConfig(flush_interval_seconds=30, batch_size=100),
    )


@pytest.fixture
def engine(cache: DecisionCache, audit: AuditTrail) -> AccessDecisionEngine:
    return AccessDecisionEngine(cache, audit)


@pytest.fixture
def accountant(cache: DecisionCache, clock: FakeClock) -> ScreenTimeAccountant:
    return ScreenTimeAccountant(cache, cache_ttl_seconds=60, now=clock.now)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    return Config(
        environment=Environment.TESTING,
        crypto=CryptoConfig(secret=TEST_SECRET, parent_pin_hash=hash_pin(TEST_PIN)),
        content_filter=ContentFilterConfig(base_url=""),
        paths=PathsConfig(data_dir=temp_dir / "FamilyData"),
    )


@pytest.fixture
def sarah() -> FamilyMember:
    """Elementary schooler with a one hour weekday budget."""
    return FamilyMember(
        id="member-sarah",
        username="sarah",
        age_group=AgeGroup.ELEMENTARY,
        role=FamilyRole.CHILD,
        screen_time=ScreenTimeSettings(
            weekday_limit=timedelta(minutes=60),
            weekend_limit=timedelta(minutes=120),
        ),
    )


@pytest.fixture
def alex() -> FamilyMember:
    """Middle schooler whose parents blocked the family chat."""
    return FamilyMember(
        id="member-alex",
        username="alex",
        age_group=AgeGroup.MIDDLE_SCHOOL,
        role=FamilyRole.TEEN,
        blocked_apps=["Family Chat"],
    )


@pytest.fixture
def emma() -> FamilyMember:
    return FamilyMember(
        id="member-emma",
        username="emma",
        age_group=AgeGroup.TODDLER,
        role=FamilyRole.CHILD,
    )


@pytest.fixture
def mom() -> FamilyMember:
    return FamilyMember(
        id="member-mom",
        username="mom",
        display_name="Mom",
        age_group=AgeGroup.PARENT,
        role=FamilyRole.PARENT,
    )


@pytest.fixture
def roster_data(
    sarah: FamilyMember, alex: FamilyMember, emma: FamilyMember, mom: FamilyMember
) -> Dict[str, Any]:
    return {"members": [m.to_dict() for m in (sarah, alex, emma, mom)]}
