"""Test fakes for testing without a real search cluster.

This module provides in-memory implementations of:
- The RemoteEndpoint protocol (for sources, sinks and the coordinator)
- Document sources, sinks and progress renderers (for pipeline tests)

Example:
    from tests.fakes import InMemoryEndpoint, ListSource, RecordingSink

    endpoint = InMemoryEndpoint()
    endpoint.add_collection("events", {"1": {"msg": "hi"}})
"""

from .endpoint import DEST_URL, SOURCE_URL, InMemoryEndpoint
from .pipeline import ListSource, RecordingProgress, RecordingSink, make_documents

__all__ = [
    "DEST_URL",
    "SOURCE_URL",
    "InMemoryEndpoint",
    "ListSource",
    "RecordingProgress",
    "RecordingSink",
    "make_documents",
]
