# chatroom_backend/services/redis_document_store.py
import logging
from typing import Callable, Optional, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from chatroom_backend.core.errors import StoreUnavailableError
from chatroom_backend.models.models import Document
from chatroom_backend.services.document_store import (
    DocumentStore,
    decode_document,
    encode_document,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RedisDocumentStore(DocumentStore):
    """
    Keeps the chat document under a single Redis key.

    Transactions use optimistic concurrency: the key is WATCHed, the
    document is read and mutated in memory, and the new version is written
    in a MULTI/EXEC block. If another writer touched the key in between,
    EXEC fails with WatchError and the whole transaction is re-run against
    the fresh document, up to ``max_retries`` times.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        key: str = "chat:document",
        max_retries: int = 10,
        client=None,
    ):
        super().__init__()
        self.host = host
        self.port = port
        self.db = db
        self.key = key
        self.max_retries = max_retries
        self.client = client or redis.Redis(
            host=host, port=port, db=db, password=password, decode_responses=True
        )

    def location(self) -> str:
        return f"redis://{self.host}:{self.port}/{self.db}/{self.key}"

    async def raw_snapshot(self) -> Optional[str]:
        try:
            return await self.client.get(self.key)
        except RedisError as e:
            logger.warning("Could not read %s, starting from empty: %s", self.location(), e)
            return None

    async def run_transaction(self, fn: Callable[[Document], T]) -> T:
        for attempt in range(1, self.max_retries + 1):
            try:
                async with self.client.pipeline(transaction=True) as pipe:
                    await pipe.watch(self.key)
                    raw = await pipe.get(self.key)
                    doc = decode_document(raw, self.location())
                    try:
                        result = fn(doc)
                    except Exception:
                        self.transactions_failed += 1
                        raise

                    pipe.multi()
                    pipe.set(self.key, encode_document(doc))
                    await pipe.execute()
            except WatchError:
                self.conflicts_retried += 1
                logger.info("Write conflict on %s, retrying (%d/%d)", self.key, attempt, self.max_retries)
                continue
            except RedisError as e:
                self.transactions_failed += 1
                logger.error("Redis transaction failed on %s: %s", self.key, e)
                raise StoreUnavailableError(f"Could not persist document: {e}") from e

            self.transactions_committed += 1
            return result

        self.transactions_failed += 1
        raise StoreUnavailableError(
            f"Gave up after {self.max_retries} conflicting writes on {self.key}"
        )

    async def close(self):
        """Close connections."""
        await self.client.aclose()
        logger.info("Redis connection closed")
