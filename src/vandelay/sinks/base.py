"""Base protocol and shared consume loop for document sinks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from loguru import logger

if TYPE_CHECKING:
    from vandelay.core.types import Document
    from vandelay.transfer.channel import CancellationToken, DocumentChannel
    from vandelay.transfer.progress import Progress


@runtime_checkable
class DocumentSink(Protocol):
    """Consumes the Document stream and owns the destination exclusively."""

    @property
    def skipped(self) -> int:
        """Records logged and skipped instead of written."""
        ...

    @property
    def rejected(self) -> int:
        """Records accepted by write that the destination later refused."""
        ...

    async def open(self) -> None:
        """Acquire the destination before any document arrives."""
        ...

    async def write(self, document: "Document") -> bool:
        """Write one document.

        Returns:
            True if written (or queued), False if the record was skipped.
        """
        ...

    async def close(self) -> None:
        """Flush everything and release the destination."""
        ...

    async def abort(self) -> None:
        """Best-effort flush and release after a failure; never raises."""
        ...

    async def discard(self) -> None:
        """Release the destination before any document was written.

        Removes what ``open`` created; never raises.
        """
        ...

    async def consume(
        self,
        channel: "DocumentChannel",
        token: "CancellationToken",
        progress: "Progress",
    ) -> None:
        """Drain the channel into the destination, then close."""
        ...


class BaseDocumentSink:
    """Optional base class providing the consume loop and abort.

    Subclasses implement ``open``, ``write`` and ``close``.
    """

    @property
    def rejected(self) -> int:
        return 0

    async def open(self) -> None:
        pass

    async def write(self, document: "Document") -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        pass

    async def abort(self) -> None:
        """Close without raising; output written so far is kept."""
        try:
            await self.close()
        except Exception as e:
            logger.debug(f"Error while closing {type(self).__name__} after failure: {e}")

    async def discard(self) -> None:
        """Abort; subclasses that create resources in ``open`` remove them."""
        await self.abort()

    async def consume(
        self,
        channel: "DocumentChannel",
        token: "CancellationToken",
        progress: "Progress",
    ) -> None:
        """Write every document from the channel until it is closed.

        Cancellation is checked after each record; on any failure the sink
        still flushes what it holds before the error propagates. Records the
        destination refused after close are moved from done to skipped.
        """
        try:
            async for document in channel:
                if await self.write(document):
                    progress.advance(document.size)
                else:
                    progress.skip()
                token.raise_if_cancelled()
        except BaseException:
            await self.abort()
            raise
        await self.close()
        if self.rejected:
            progress.retract(self.rejected)
