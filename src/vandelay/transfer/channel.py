"""Single-slot document channel and shared cancellation token.

The channel is the only link between the producer and consumer tasks and
the only backpressure mechanism: with one slot, the producer can never be
more than one document ahead of what the consumer has taken.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from vandelay.core.types import Document


class CancellationToken:
    """Shared cancellation signal carrying the first failure.

    The first call to ``cancel`` wins; later calls are ignored so the
    originating error is what every task re-raises.
    """

    def __init__(self) -> None:
        self._cause: BaseException | None = None
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()

    @property
    def cause(self) -> BaseException | None:
        """The error that triggered cancellation."""
        return self._cause

    def cancel(self, cause: BaseException) -> bool:
        """Request cancellation.

        Returns:
            True if this call set the cause, False if already cancelled.
        """
        if self._event.is_set():
            return False
        self._cause = cause
        self._event.set()
        return True

    def raise_if_cancelled(self) -> None:
        """Re-raise the originating error if cancellation was requested."""
        if self._cause is not None:
            raise self._cause

    async def wait(self) -> BaseException | None:
        """Block until cancelled, then return the cause."""
        await self._event.wait()
        return self._cause


class _Closed:
    """End-of-stream marker."""


_CLOSED = _Closed()


class DocumentChannel:
    """Single-producer single-consumer channel of Documents.

    Example:
        channel = DocumentChannel()

        async def produce():
            for doc in docs:
                await channel.send(doc)
            await channel.close()

        async def consume():
            async for doc in channel:
                handle(doc)
    """

    def __init__(self, capacity: int = 1) -> None:
        self._queue: asyncio.Queue[Document | _Closed] = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self._sent = 0
        self._received = 0

    @property
    def sent(self) -> int:
        """Documents handed to the channel."""
        return self._sent

    @property
    def received(self) -> int:
        """Documents taken by the consumer."""
        return self._received

    @property
    def closed(self) -> bool:
        """Whether the producer closed the channel."""
        return self._closed

    async def send(self, document: Document) -> None:
        """Hand a document to the consumer, waiting while the slot is full."""
        if self._closed:
            raise RuntimeError("send on closed channel")
        await self._queue.put(document)
        self._sent += 1

    async def close(self) -> None:
        """Signal end of stream once the consumer drains pending documents."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    async def receive(self) -> Document | None:
        """Take the next document, or None once the channel is closed."""
        item = await self._queue.get()
        if isinstance(item, _Closed):
            # Leave the marker for any further receive calls
            self._queue.put_nowait(item)
            return None
        self._received += 1
        return item

    async def __aiter__(self) -> AsyncIterator[Document]:
        while True:
            document = await self.receive()
            if document is None:
                return
            yield document
