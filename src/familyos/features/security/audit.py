"""
Batched, encrypted audit trail.

Events are queued in memory and persisted by a background flusher on a fixed
interval. Delivery is at-most-once: a batch whose flush fails is logged and
dropped rather than re-queued, so a broken store cannot grow memory without
bound.
"""

import asyncio
import json
import threading
from collections import deque
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Deque, List, Optional

from ...core.config import AuditConfig
from ...core.exceptions import CryptoError, PersistenceError
from ...core.logging import get_logger
from ...core.persistence import FileStorage
from .crypto import CryptoGateway
from .types import AuditEvent, AuditLevel

if TYPE_CHECKING:
    from ..parental_controls.types import FamilyMember

logger = get_logger(__name__)

SYSTEM_MEMBER_ID = "system"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditTrail:
    """Append-only record of decisions and security events."""

    def __init__(
        self,
        crypto: CryptoGateway,
        storage: FileStorage,
        config: Optional[AuditConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.crypto = crypto
        self.storage = storage
        self.config = config or AuditConfig()
        self._clock = clock

        self._pending: Deque[AuditEvent] = deque()
        self._queue_lock = threading.Lock()
        self._flush_lock = asyncio.Lock()
        self._flush_task: Optional["asyncio.Task[None]"] = None
        self._stopping = asyncio.Event()

        self.flushed_count = 0
        self.dropped_count = 0

    def record(
        self, activity: str, member: Optional["FamilyMember"] = None
    ) -> AuditEvent:
        """Queue an audit event and return it. Never touches storage."""
        if member is None:
            member_id, details = SYSTEM_MEMBER_ID, "User: System"
        else:
            member_id = member.id
            details = (
                f"User: {member.display_name}, Age: {member.age_group.display_name}"
            )

        event = AuditEvent(
            member_id=member_id,
            activity=activity,
            details=details,
            level=AuditLevel.classify(activity),
            timestamp=self._clock(),
        )

        with self._queue_lock:
            self._pending.append(event)

        logger.debug(
            f"[AUDIT] {event.level.value}: {activity}",
            audit_member=member_id,
        )
        return event

    def pending_count(self) -> int:
        with self._queue_lock:
            return len(self._pending)

    def _drain_batch(self) -> List[AuditEvent]:
        with self._queue_lock:
            batch_size = min(self.config.batch_size, len(self._pending))
            return [self._pending.popleft() for _ in range(batch_size)]

    async def flush(self) -> int:
        """Persist up to one batch of pending events; return how many were written."""
        async with self._flush_lock:
            batch = self._drain_batch()
            if not batch:
                return 0

            try:
                payload = json.dumps([event.to_dict() for event in batch])
                line = self.crypto.encrypt(payload)
                await self.storage.append_audit(line)
            except asyncio.CancelledError:
                self.dropped_count += len(batch)
                logger.error(
                    "Audit flush cancelled mid-write; batch dropped",
                    dropped=len(batch),
                )
                raise
            except (CryptoError, PersistenceError, TypeError, ValueError) as e:
                self.dropped_count += len(batch)
                logger.error(
                    "Failed to flush audit logs; batch dropped",
                    error=str(e),
                    dropped=len(batch),
                )
                return 0

            self.flushed_count += len(batch)
            logger.debug(f"Flushed {len(batch)} audit logs", remaining=self.pending_count())
            return len(batch)

    async def _run_flush_timer(self) -> None:
        # Exits between cycles, never mid-flush
        while True:
            try:
                await asyncio.wait_for(
                    self._stopping.wait(), timeout=self.config.flush_interval_seconds
                )
                return
            except asyncio.TimeoutError:
                pass
            try:
                await self.flush()
            except Exception as e:
                # The timer must outlive any single bad cycle
                logger.error("Unexpected audit flush failure", error=str(e))

    def start(self) -> None:
        """Start the background flusher on the running event loop."""
        if self._flush_task is None or self._flush_task.done():
            self._stopping.clear()
            self._flush_task = asyncio.get_running_loop().create_task(
                self._run_flush_timer()
            )
            logger.info(
                "Audit flusher started",
                interval_seconds=self.config.flush_interval_seconds,
                batch_size=self.config.batch_size,
            )

    @property
    def is_running(self) -> bool:
        return self._flush_task is not None and not self._flush_task.done()

    async def _drain(self) -> None:
        if self._flush_task is not None:
            await self._flush_task
        while self.pending_count():
            if not await self.flush():
                break

    async def stop(self) -> None:
        """Stop the flusher and flush the whole pending queue, bounded by a timeout.

        The timer is signalled rather than cancelled, so a batch that is being
        written when shutdown starts is finished before the final flush.
        """
        self._stopping.set()
        try:
            await asyncio.wait_for(
                self._drain(), timeout=self.config.shutdown_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Final audit flush timed out",
                pending=self.pending_count(),
                timeout_seconds=self.config.shutdown_timeout_seconds,
            )

        if self._flush_task is not None and not self._flush_task.done():
            self._flush_task.cancel()
            try:
                await self._flush_task
            except asyncio.CancelledError:
                pass
        self._flush_task = None

        if self.pending_count():
            logger.warning(
                "Audit events left unflushed at shutdown", pending=self.pending_count()
            )

    async def get_activity_logs(self, since: datetime) -> List[AuditEvent]:
        """Read persisted events with ``timestamp >= since``, oldest first."""
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

        events: List[AuditEvent] = []
        for line_number, line in enumerate(await self.storage.read_audit_lines(), 1):
            try:
                records = json.loads(self.crypto.decrypt(line))
                batch = [AuditEvent.from_dict(record) for record in records]
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(
                    "Skipping unreadable audit batch", line=line_number, error=str(e)
                )
                continue
            events.extend(event for event in batch if event.timestamp >= since)

        return events
