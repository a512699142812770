"""Document sources for vandelay.

Two variants produce the same Document stream:

- ``FileSource``: NDJSON file (gzip when named ``*.gz``) or stdin
- ``RemoteSource``: every document of a remote collection, optionally
  restricted by a time filter
"""

from .base import DocumentSource
from .file import FileSource, count_lines
from .remote import DEFAULT_PAGE_SIZE, RemoteSource

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "DocumentSource",
    "FileSource",
    "RemoteSource",
    "count_lines",
]
