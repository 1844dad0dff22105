# chatroom_backend/services/document_store.py

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from typing import Callable, Optional, TypeVar

from pydantic import ValidationError as SchemaError

from chatroom_backend.core.errors import StoreUnavailableError
from chatroom_backend.models.models import Document

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ============================================================================
# DOCUMENT STORE
# ============================================================================


def decode_document(raw: Optional[str], source: str) -> Document:
    """
    Parse a persisted document.

    A missing, corrupt or schema-incompatible document is treated as "no
    document exists": the empty default is returned and the condition is
    logged.
    """
    if raw is None or not raw.strip():
        return Document()
    try:
        return Document.model_validate(json.loads(raw))
    except (json.JSONDecodeError, SchemaError, TypeError) as e:
        logger.warning("Unreadable document at %s, starting from empty: %s", source, e)
        return Document()


def encode_document(doc: Document) -> str:
    return json.dumps(doc.model_dump(mode="json"), indent=2)


class DocumentStore:
    """
    Owns the single persisted chat document.

    Every mutation goes through ``run_transaction``: the current document is
    loaded in full, handed to a synchronous callback as a private copy, and
    written back in full when the callback returns. If the callback raises
    nothing is written and the copy is dropped with it.

    Subclasses provide the serialization discipline so that concurrent
    transactions behave as if run in some total order.
    """

    def __init__(self) -> None:
        self.transactions_committed = 0
        self.transactions_failed = 0
        self.conflicts_retried = 0

    async def run_transaction(self, fn: Callable[[Document], T]) -> T:
        raise NotImplementedError

    async def read_snapshot(self) -> Document:
        """Fresh copy of the committed document for read-only operations."""
        return decode_document(await self.raw_snapshot(), self.location())

    async def raw_snapshot(self) -> Optional[str]:
        """Serialized committed document, or None if nothing was written yet."""
        raise NotImplementedError

    def location(self) -> str:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class FileDocumentStore(DocumentStore):
    """
    JSON file backend.

    One ``asyncio.Lock`` is held across load, mutate and persist, so
    transactions inside this process are strictly serialized. The file is
    replaced atomically (temp file + ``os.replace``) so readers and backups
    never see a half-written document.
    """

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = os.path.abspath(path)
        self._lock = asyncio.Lock()

    def location(self) -> str:
        return self.path

    def _read(self) -> Optional[str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read %s, starting from empty: %s", self.path, e)
            return None

    def _write(self, payload: str) -> None:
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".db-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def raw_snapshot(self) -> Optional[str]:
        return await asyncio.to_thread(self._read)

    async def run_transaction(self, fn: Callable[[Document], T]) -> T:
        async with self._lock:
            doc = decode_document(await asyncio.to_thread(self._read), self.path)
            try:
                result = fn(doc)
            except Exception:
                self.transactions_failed += 1
                raise

            write = asyncio.ensure_future(asyncio.to_thread(self._write, encode_document(doc)))
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                # The write thread cannot be interrupted; keep the lock until it lands
                await self._settle(write)
                raise
            except OSError as e:
                self.transactions_failed += 1
                logger.error("Persist failed for %s: %s", self.path, e)
                raise StoreUnavailableError(f"Could not persist document: {e}") from e

            self.transactions_committed += 1
            logger.debug("Committed transaction #%d to %s", self.transactions_committed, self.path)
            return result

    async def _settle(self, write: "asyncio.Future[None]") -> None:
        """Wait out a persist whose caller was cancelled, then record how it ended."""
        while not write.done():
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                continue
            except OSError:
                break

        error = write.exception()
        if error is None:
            self.transactions_committed += 1
            logger.warning("Transaction cancelled after persist; committed to %s anyway", self.path)
        else:
            self.transactions_failed += 1
            logger.error("Persist failed for %s after cancellation: %s", self.path, error)


def build_store(settings) -> DocumentStore:
    """Pick the store backend named by ``settings.STORE_BACKEND``."""
    if settings.STORE_BACKEND == "redis":
        from chatroom_backend.services.redis_document_store import RedisDocumentStore

        return RedisDocumentStore(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD or None,
            key=settings.REDIS_KEY,
            max_retries=settings.STORE_MAX_RETRIES,
        )
    return FileDocumentStore(settings.store_path)
