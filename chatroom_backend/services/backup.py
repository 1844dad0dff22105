# chatroom_backend/services/backup.py
import asyncio
import glob
import logging
import os
import tempfile
from typing import List, Optional

from chatroom_backend.models.models import now_ms
from chatroom_backend.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup-"


class BackupScheduler:
    """
    Periodic full-document snapshots, written as ``backup-<epoch ms>.json``.

    Backups read the committed document through ``raw_snapshot()`` and never
    enter a store transaction, so they cannot block or reorder writers.
    Only the newest ``retention`` files are kept.
    """

    def __init__(self, store: DocumentStore, directory: str, interval: float, retention: int = 7):
        self.store = store
        self.directory = os.path.abspath(directory)
        self.interval = interval
        self.retention = max(1, retention)
        self._task: Optional[asyncio.Task] = None

    def list_backups(self) -> List[str]:
        pattern = os.path.join(self.directory, f"{BACKUP_PREFIX}*.json")
        return sorted(glob.glob(pattern), key=_stamp)

    async def backup_now(self) -> Optional[str]:
        """Write one snapshot. Returns its path, or None if nothing is stored yet."""
        raw = await self.store.raw_snapshot()
        if raw is None:
            logger.info("Nothing to back up at %s", self.store.location())
            return None

        # Names must sort newest-last even when several land in one millisecond
        stamp = now_ms()
        existing = self.list_backups()
        if existing:
            stamp = max(stamp, _stamp(existing[-1]) + 1)
        path = os.path.join(self.directory, f"{BACKUP_PREFIX}{stamp}.json")

        await asyncio.to_thread(self._write, path, raw)
        logger.info("Database backup created successfully at: %s", path)
        self.prune()
        return path

    def _write(self, path: str, raw: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        # Temp names never match the backup pattern, so half-written files are not listed
        fd, tmp_path = tempfile.mkstemp(prefix=f".{BACKUP_PREFIX}", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(raw)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def prune(self) -> List[str]:
        backups = self.list_backups()
        removed = backups[: max(0, len(backups) - self.retention)]
        for path in removed:
            os.unlink(path)
            logger.debug("Removed old backup %s", path)
        return removed

    def start(self) -> None:
        """Call this once on app startup."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="document-backups")

    async def stop(self) -> None:
        """Call this once on app shutdown."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.backup_now()
            except OSError as e:
                logger.error("Error creating database backup: %s", e)


def _stamp(path: str) -> int:
    name = os.path.basename(path)[len(BACKUP_PREFIX):-len(".json")]
    try:
        return int(name)
    except ValueError:
        return 0
