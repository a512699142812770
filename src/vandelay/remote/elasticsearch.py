"""Elasticsearch remote endpoint.

This module implements the RemoteEndpoint protocol as a thin adapter over
the official ``AsyncElasticsearch`` client. Scrolling and bulk indexing use
the client's async helpers. Requests are not retried; a failed request
surfaces as RemoteUnavailableError and aborts the transfer.
"""

from __future__ import annotations

from contextlib import aclosing
from typing import Any, AsyncIterable, AsyncIterator, Iterable

from elasticsearch import ApiError, AsyncElasticsearch, NotFoundError, TransportError
from elasticsearch.helpers import async_scan, async_streaming_bulk
from loguru import logger

from vandelay.core.config import ElasticConfig
from vandelay.core.exceptions import (
    CollectionExistsError,
    CollectionNotFoundError,
    RemoteUnavailableError,
)

from .base import BulkAction, BulkItemError, Page

# HTTP transport used by the client; httpx like the rest of the project
NODE_CLASS = "httpxasync"


def _error_reason(error: Exception) -> str:
    """Readable reason for a client error."""
    if isinstance(error, ApiError):
        return f"HTTP {error.status_code}: {error.message}"
    return str(error) or type(error).__name__


def _expand_action(action: BulkAction) -> tuple[dict[str, Any], bytes]:
    """Turn a BulkAction into a bulk header and its raw source."""
    return {"index": {"_index": action.collection, "_id": action.id}}, action.payload


def _item_error(item: dict[str, Any]) -> BulkItemError:
    """Build a BulkItemError from a failed bulk response item."""
    result = next(iter(item.values()), {})
    error = result.get("error", {})
    if isinstance(error, dict):
        reason = f"{error.get('type')}: {error.get('reason')}"
    else:
        reason = str(error)
    return BulkItemError(
        collection=result.get("_index", ""),
        id=str(result.get("_id", "")),
        reason=reason,
    )


class ElasticsearchEndpoint:
    """Remote endpoint for an Elasticsearch cluster.

    Example:
        endpoint = ElasticsearchEndpoint("http://localhost:9200")
        try:
            if await endpoint.exists("events"):
                async for page in endpoint.scroll("events"):
                    print(len(page))
        finally:
            await endpoint.aclose()
    """

    def __init__(
        self,
        url: str,
        config: ElasticConfig | None = None,
        client: AsyncElasticsearch | None = None,
    ) -> None:
        """Initialize the endpoint.

        Args:
            url: Base URL of the cluster (http://host:port/).
            config: Timeouts, page and scroll settings.
            client: Optional pre-built client (tests, shared pools).
        """
        self._url = url.rstrip("/")
        self._config = config or ElasticConfig()
        self._client = client

    @property
    def url(self) -> str:
        """Base URL of the cluster."""
        return self._url

    def _get_client(self) -> AsyncElasticsearch:
        """Get or create the Elasticsearch client."""
        if self._client is None:
            self._client = AsyncElasticsearch(
                self._url,
                node_class=NODE_CLASS,
                request_timeout=self._config.timeout,
                verify_certs=self._config.verify_tls,
                headers={"user-agent": self._config.user_agent},
                max_retries=0,
                retry_on_timeout=False,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the client if open."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    def _unavailable(self, error: Exception, path: str = "") -> RemoteUnavailableError:
        return RemoteUnavailableError(f"{self._url}{path}", _error_reason(error))

    async def exists(self, collection: str) -> bool:
        """Check whether an index exists."""
        try:
            return bool(await self._get_client().indices.exists(index=collection))
        except (ApiError, TransportError) as e:
            raise self._unavailable(e, f"/{collection}") from e

    async def count(self, collection: str, query: dict[str, Any] | None = None) -> int:
        """Count documents, optionally restricted by a query."""
        try:
            response = await self._get_client().count(index=collection, query=query)
        except NotFoundError as e:
            raise CollectionNotFoundError(collection) from e
        except (ApiError, TransportError) as e:
            raise self._unavailable(e, f"/{collection}/_count") from e
        return int(response["count"])

    async def scroll(
        self,
        collection: str,
        query: dict[str, Any] | None = None,
        page_size: int = 10000,
    ) -> AsyncIterator[Page]:
        """Iterate over all matching hits with a scroll cursor.

        Hits are sorted by ``_doc``, the cheapest server order. The helper
        clears the cursor when iteration ends or is abandoned.

        Yields:
            Lists of at most ``page_size`` hits until the cursor is exhausted.
        """
        hits = async_scan(
            self._get_client(),
            query={"query": query} if query else None,
            index=collection,
            size=page_size,
            scroll=self._config.scroll_keepalive,
        )
        page: Page = []
        try:
            async with aclosing(hits):
                async for hit in hits:
                    page.append(hit)
                    if len(page) >= page_size:
                        logger.debug(f"Scroll page from {collection!r}: {len(page)} hits")
                        yield page
                        page = []
        except NotFoundError as e:
            raise CollectionNotFoundError(collection) from e
        except (ApiError, TransportError) as e:
            raise self._unavailable(e, f"/{collection}/_search") from e

        if page:
            logger.debug(f"Scroll page from {collection!r}: {len(page)} hits")
            yield page

    async def get_schema(self, collection: str) -> dict[str, Any]:
        """Return the index mapping keyed by index name."""
        try:
            response = await self._get_client().indices.get_mapping(index=collection)
        except NotFoundError as e:
            raise CollectionNotFoundError(collection) from e
        except (ApiError, TransportError) as e:
            raise self._unavailable(e, f"/{collection}/_mapping") from e
        return dict(response.body)

    async def create_collection(self, name: str, body: dict[str, Any]) -> None:
        """Create an index with the given mappings/settings body."""
        try:
            await self._get_client().indices.create(index=name, **body)
        except ApiError as e:
            if e.status_code == 400 and "already_exists" in str(e.body):
                raise CollectionExistsError(name, self._url) from e
            raise self._unavailable(e, f"/{name}") from e
        except TransportError as e:
            raise self._unavailable(e, f"/{name}") from e
        logger.info(f"Created collection {name!r} on {self._url}")

    async def bulk_upsert(
        self,
        actions: Iterable[BulkAction] | AsyncIterable[BulkAction],
        chunk_size: int = 500,
        max_chunk_bytes: int = 100 * 1024 * 1024,
    ) -> list[BulkItemError]:
        """Index documents with the streaming bulk helper."""
        failures: list[BulkItemError] = []
        try:
            async for ok, item in async_streaming_bulk(
                self._get_client(),
                actions,
                chunk_size=chunk_size,
                max_chunk_bytes=max_chunk_bytes,
                expand_action_callback=_expand_action,
                raise_on_error=False,
            ):
                if not ok:
                    failures.append(_item_error(item))
        except (ApiError, TransportError) as e:
            raise self._unavailable(e, "/_bulk") from e
        return failures
