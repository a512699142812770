"""Remote document sink.

Documents are sent as bulk upserts keyed by document id, so re-running an
import over the same data is idempotent. Several requests may be in flight
at once; their number is bounded by the worker count.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, AsyncIterator

from loguru import logger

from vandelay.core.config import BulkConfig
from vandelay.core.types import Document
from vandelay.remote.base import BulkAction

from .base import BaseDocumentSink

if TYPE_CHECKING:
    from vandelay.remote.base import RemoteEndpoint


class BulkProcessor:
    """Feed actions to a fixed pool of streaming bulk workers.

    Each worker runs one ``bulk_upsert`` call over the shared action queue;
    the endpoint cuts requests at ``max_actions`` actions or ``max_bytes``
    bytes. Adding blocks while every worker is busy sending. A request that
    fails outright is reported on the next ``add`` or by
    ``raise_if_failed`` after ``close``; per-document rejections are logged
    and counted in ``failed``.

    Example:
        bulk = BulkProcessor(endpoint, workers=4)
        for action in actions:
            await bulk.add(action)
        await bulk.close()
    """

    def __init__(
        self,
        endpoint: "RemoteEndpoint",
        workers: int = 4,
        max_actions: int = 1000,
        max_bytes: int = 5 * 1024 * 1024,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._endpoint = endpoint
        self._workers = workers
        self._max_actions = max_actions
        self._max_bytes = max_bytes
        self._queue: asyncio.Queue[BulkAction | None] = asyncio.Queue(maxsize=workers)
        self._tasks: list[asyncio.Task[None]] = []
        self._closed = False
        self._error: Exception | None = None
        self.failed = 0

    def raise_if_failed(self) -> None:
        """Re-raise the first request failure, if any."""
        if self._error is not None:
            raise self._error

    def _start(self) -> None:
        for n in range(self._workers):
            self._tasks.append(asyncio.create_task(self._run(), name=f"vandelay-bulk-{n}"))

    async def add(self, action: BulkAction) -> None:
        """Queue one action for the next free worker."""
        self.raise_if_failed()
        if self._closed:
            raise RuntimeError("add on closed BulkProcessor")
        if not self._tasks:
            self._start()
        await self._queue.put(action)

    async def _run(self) -> None:
        finished = False

        async def actions() -> AsyncIterator[BulkAction]:
            nonlocal finished
            while (action := await self._queue.get()) is not None:
                yield action
            finished = True

        try:
            failures = await self._endpoint.bulk_upsert(
                actions(),
                chunk_size=self._max_actions,
                max_chunk_bytes=self._max_bytes,
            )
        except Exception as e:
            logger.error(f"Bulk request failed: {e}")
            if self._error is None:
                self._error = e
            # Keep taking actions so add() and close() never wait on this worker
            while not finished and await self._queue.get() is not None:
                pass
            return

        for failure in failures:
            logger.warning(
                f"Document {failure.id!r} rejected by {failure.collection!r}: {failure.reason}"
            )
        self.failed += len(failures)

    async def close(self) -> None:
        """Send what is pending and wait for every worker to finish.

        Does not raise request failures; see ``raise_if_failed``.
        """
        if self._closed:
            return
        self._closed = True
        for _ in self._tasks:
            await self._queue.put(None)
        if self._tasks:
            await asyncio.gather(*self._tasks)


class RemoteSink(BaseDocumentSink):
    """Document sink writing to a remote endpoint.

    Args:
        endpoint: Destination endpoint.
        collection: Destination collection; None keeps each document's
            own collection name.
        bulk_config: Batching and worker settings.
    """

    def __init__(
        self,
        endpoint: "RemoteEndpoint",
        collection: str | None = None,
        bulk_config: BulkConfig | None = None,
    ) -> None:
        config = bulk_config or BulkConfig()
        self._endpoint = endpoint
        self._collection = collection
        self._bulk = BulkProcessor(
            endpoint,
            workers=config.workers,
            max_actions=config.max_actions,
            max_bytes=config.max_bytes,
        )
        self._skipped = 0
        self._written = 0
        self._closed = False

    @property
    def skipped(self) -> int:
        """Documents skipped locally or rejected by the endpoint."""
        return self._skipped + self._bulk.failed

    @property
    def rejected(self) -> int:
        """Documents accepted by write but rejected by the endpoint."""
        return self._bulk.failed

    async def write(self, document: Document) -> bool:
        if not document.id or not document.payload:
            logger.warning(
                f"Skipping document from {document.collection!r} with empty id or payload"
            )
            self._skipped += 1
            return False

        collection = self._collection or document.collection
        await self._bulk.add(BulkAction(collection, document.id, document.payload))
        self._written += 1
        return True

    async def close(self) -> None:
        """Send pending actions and wait for in-flight requests.

        Raises:
            RemoteUnavailableError: If any bulk request failed.
        """
        if self._closed:
            return
        self._closed = True
        await self._bulk.close()
        self._bulk.raise_if_failed()
        logger.info(
            f"Sent {self._written} documents to {self._endpoint.url}, "
            f"{self._bulk.failed} rejected"
        )
