"""Base protocol for document sources.

Every source produces the same concrete Document type, so the consumer
side never needs to know which variant it is reading from.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, Protocol, runtime_checkable

if TYPE_CHECKING:
    from vandelay.core.types import Document
    from vandelay.transfer.channel import CancellationToken


@runtime_checkable
class DocumentSource(Protocol):
    """Produces a sequential stream of Documents.

    Example implementation:

        class ListSource:
            def __init__(self, docs):
                self._docs = docs
                self.skipped = 0

            async def prepare(self) -> int | None:
                return len(self._docs)

            async def stream(self, token):
                for doc in self._docs:
                    token.raise_if_cancelled()
                    yield doc
    """

    skipped: int
    """Records that could not be decoded and were skipped."""

    async def prepare(self) -> int | None:
        """Check preconditions and return the expected document count.

        Returns:
            Best-effort expected number of documents, or None if unknown.
        """
        ...

    def stream(self, token: "CancellationToken") -> AsyncIterator["Document"]:
        """Yield every document in source order.

        Implementations check ``token`` between records and re-raise the
        originating error once cancellation is requested. Underlying
        resources are released on every exit path.
        """
        ...
