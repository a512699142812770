"""Remote search endpoints.

The pipeline depends only on the RemoteEndpoint protocol; the bundled
implementation speaks the Elasticsearch REST API:

    endpoint = ElasticsearchEndpoint("http://localhost:9200")
    schema = await endpoint.get_schema("events")
"""

from .base import BulkAction, BulkItemError, Page, RemoteEndpoint
from .elasticsearch import ElasticsearchEndpoint

__all__ = [
    "BulkAction",
    "BulkItemError",
    "ElasticsearchEndpoint",
    "Page",
    "RemoteEndpoint",
]
