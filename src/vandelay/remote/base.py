"""Base protocol and types for remote search endpoints.

The transfer pipeline only talks to a remote index through this protocol,
so the wire protocol stays an implementation detail of the endpoint class.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Iterable, Protocol, runtime_checkable


# =============================================================================
# Data Types
# =============================================================================


Page = list[dict[str, Any]]
"""One page of search hits, each with ``_index``, ``_id`` and ``_source``."""


@dataclass(frozen=True)
class BulkAction:
    """A single upsert in a bulk request.

    Attributes:
        collection: Destination collection name.
        id: Document identifier (the upsert key).
        payload: Raw JSON document body.
    """

    collection: str
    id: str
    payload: bytes

    @property
    def size(self) -> int:
        """Approximate request bytes for this action."""
        return len(self.payload) + len(self.collection) + len(self.id) + 40


@dataclass(frozen=True)
class BulkItemError:
    """A per-document rejection reported by a bulk request.

    Attributes:
        collection: Collection the document was sent to.
        id: Rejected document identifier.
        reason: Server-supplied reason.
    """

    collection: str
    id: str
    reason: str


# =============================================================================
# Protocol Definition
# =============================================================================


@runtime_checkable
class RemoteEndpoint(Protocol):
    """Operations the transfer pipeline consumes from a search endpoint.

    Every method raises ``RemoteUnavailableError`` when the endpoint cannot
    be reached or the request fails.
    """

    @property
    def url(self) -> str:
        """Base URL of the endpoint."""
        ...

    async def exists(self, collection: str) -> bool:
        """Check whether a collection exists."""
        ...

    async def count(self, collection: str, query: dict[str, Any] | None = None) -> int:
        """Count documents in a collection, optionally filtered."""
        ...

    def scroll(
        self,
        collection: str,
        query: dict[str, Any] | None = None,
        page_size: int = 10000,
    ) -> AsyncIterator[Page]:
        """Iterate over every matching document, one page at a time.

        Pages arrive in server order; iteration ends after the last page.
        The server-side cursor is released when iteration stops, including
        when the consumer abandons it early.
        """
        ...

    async def get_schema(self, collection: str) -> dict[str, Any]:
        """Return the schema JSON keyed by collection name.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
        """
        ...

    async def create_collection(self, name: str, body: dict[str, Any]) -> None:
        """Create a collection with the given settings/mappings body."""
        ...

    async def bulk_upsert(
        self,
        actions: Iterable[BulkAction] | AsyncIterable[BulkAction],
        chunk_size: int = 500,
        max_chunk_bytes: int = 100 * 1024 * 1024,
    ) -> list[BulkItemError]:
        """Insert-or-overwrite documents by id.

        Actions are consumed as they arrive and sent in requests of at most
        ``chunk_size`` actions or ``max_chunk_bytes`` bytes, until the
        iterable is exhausted.

        Returns:
            Per-document failures; an empty list when everything was applied.
        """
        ...

    async def aclose(self) -> None:
        """Release connections."""
        ...
