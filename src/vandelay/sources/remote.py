"""Remote document source.

Streams every document of a remote collection page by page through a
server-side cursor, so memory use is bounded by one page regardless of
collection size.
"""

from __future__ import annotations

from contextlib import aclosing
from typing import TYPE_CHECKING, Any, AsyncIterator

from loguru import logger

from vandelay.core.exceptions import CollectionNotFoundError, RecordDecodeError
from vandelay.core.types import Document

if TYPE_CHECKING:
    from vandelay.remote.base import RemoteEndpoint
    from vandelay.transfer.channel import CancellationToken
    from vandelay.transfer.job import TimeFilter

DEFAULT_PAGE_SIZE = 10000


class RemoteSource:
    """Document source for a collection on a remote endpoint.

    The optional time filter is applied identically to the pre-flight count
    and to the scan, so the expected total matches what is streamed.
    """

    def __init__(
        self,
        endpoint: "RemoteEndpoint",
        collection: str,
        time_filter: "TimeFilter | None" = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._endpoint = endpoint
        self._collection = collection
        self._time_filter = time_filter
        self._page_size = page_size
        self.skipped = 0

    @property
    def collection(self) -> str:
        """Source collection name."""
        return self._collection

    @property
    def query(self) -> dict[str, Any] | None:
        """Filter query shared by count and scan."""
        if self._time_filter is None:
            return None
        return self._time_filter.to_query()

    async def prepare(self) -> int:
        """Verify the collection exists and count matching documents.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
            RemoteUnavailableError: If a request fails.
        """
        if not await self._endpoint.exists(self._collection):
            raise CollectionNotFoundError(self._collection)

        total = await self._endpoint.count(self._collection, self.query)
        logger.info(f"Collection {self._collection!r} has {total} documents to transfer")
        return total

    async def stream(self, token: "CancellationToken") -> AsyncIterator[Document]:
        """Yield every matching document in server order.

        Raises:
            RemoteUnavailableError: If a page cannot be fetched.
        """
        pages = self._endpoint.scroll(self._collection, self.query, self._page_size)
        async with aclosing(pages):
            async for page in pages:
                for hit in page:
                    token.raise_if_cancelled()
                    try:
                        document = Document.from_hit(hit)
                    except RecordDecodeError as e:
                        logger.warning(f"Skipping hit from {self._collection!r}: {e}")
                        self.skipped += 1
                        continue
                    yield document
