"""
Daily screen-time accounting.

Usage is measured from the most recent session start; a session that started
on an earlier calendar day counts as no usage today.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from ...core.caching import DecisionCache
from .types import FamilyMember

logger = logging.getLogger(__name__)

SCREEN_TIME_CACHE_PREFIX = "screen:"

# Returned for members without a budget to keep the return type uniform
UNLIMITED = timedelta(hours=24)


class ScreenTimeAccountant:
    """Tracks session starts and computes the remaining budget for today."""

    def __init__(
        self,
        cache: DecisionCache,
        cache_ttl_seconds: float = 60.0,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self._now = now
        self._session_starts: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def record_session_start(self, member: FamilyMember) -> datetime:
        started_at = self._now()
        with self._lock:
            self._session_starts[member.id] = started_at
        logger.debug(f"Session started for {member.display_name} at {started_at}")
        return started_at

    def session_start(self, member_id: str) -> Optional[datetime]:
        with self._lock:
            return self._session_starts.get(member_id)

    def used_today(self, member_id: str) -> timedelta:
        """Time since today's session start, or zero if there is none."""
        started_at = self.session_start(member_id)
        if started_at is None:
            return timedelta(0)

        now = self._now()
        if started_at.date() != now.date():
            return timedelta(0)
        return max(timedelta(0), now - started_at)

    def remaining(self, member: FamilyMember) -> timedelta:
        """Remaining budget for today, never negative."""
        if not member.screen_time.enforce or member.is_parent:
            return UNLIMITED

        now = self._now()
        cache_key = f"{SCREEN_TIME_CACHE_PREFIX}{member.id}:{now:%Y%m%d}"
        cached, found = self.cache.get(cache_key)
        if found:
            return cached

        daily_limit = member.screen_time.limit_for(now)
        result = max(timedelta(0), daily_limit - self.used_today(member.id))

        self.cache.put(cache_key, result, self.cache_ttl_seconds)
        return result

    def snapshot(self) -> Dict[str, str]:
        """Session starts as ISO strings, for state persistence."""
        with self._lock:
            return {
                member_id: started_at.isoformat()
                for member_id, started_at in self._session_starts.items()
            }

    def restore(self, session_starts: Dict[str, str]) -> None:
        """Load session starts saved by ``snapshot``; bad entries are skipped."""
        restored: Dict[str, datetime] = {}
        for member_id, value in session_starts.items():
            try:
                restored[str(member_id)] = datetime.fromisoformat(value)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring invalid session start for {member_id}: {value!r}")

        with self._lock:
            self._session_starts.update(restored)
