"""
Durable storage for encrypted family data.

Audit batches are appended one line per batch; state snapshots are written
with an atomic replace so a crash never leaves a half-written snapshot.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

import aiofiles

from ..exceptions import PersistenceError

logger = logging.getLogger(__name__)


class FileStorage:
    """Append-only audit file plus overwrite-in-place state snapshots."""

    def __init__(self, data_dir: Path, audit_file_name: str = "audit_logs.json"):
        self.data_dir = Path(data_dir)
        self.audit_path = self.data_dir / audit_file_name

    def ensure_storage_exists(self) -> None:
        """Ensure storage directory exists."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def state_path(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    async def append_audit(self, line: str) -> None:
        """Append one encrypted audit batch."""
        try:
            self.ensure_storage_exists()
            async with aiofiles.open(self.audit_path, "a", encoding="utf-8") as f:
                await f.write(line + "\n")
        except OSError as e:
            raise PersistenceError(
                str(self.audit_path), str(e), component="FileStorage"
            ) from e

    async def read_audit_lines(self) -> List[str]:
        """Read every persisted audit batch line, oldest first."""
        if not self.audit_path.exists():
            return []

        try:
            async with aiofiles.open(self.audit_path, "r", encoding="utf-8") as f:
                content = await f.read()
        except OSError as e:
            raise PersistenceError(
                str(self.audit_path), str(e), component="FileStorage"
            ) from e

        return [line for line in content.splitlines() if line.strip()]

    async def write_state(self, name: str, blob: str) -> None:
        """Overwrite the named state snapshot."""
        path = self.state_path(name)
        temp_path = path.with_suffix(".tmp")
        try:
            self.ensure_storage_exists()
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(blob)
            os.replace(temp_path, path)
        except OSError as e:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(
                    f"Could not remove temporary snapshot {temp_path}: {cleanup_error}"
                )
            raise PersistenceError(str(path), str(e), component="FileStorage") from e

        logger.debug(f"Saved state snapshot to {path}")

    async def read_state(self, name: str) -> Optional[str]:
        """Return the named state snapshot, or None when none has been saved."""
        path = self.state_path(name)
        if not path.exists():
            logger.debug(f"State snapshot does not exist: {path}")
            return None

        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return await f.read()
        except OSError as e:
            raise PersistenceError(str(path), str(e), component="FileStorage") from e
