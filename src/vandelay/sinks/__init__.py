"""Document sinks for the transfer pipeline."""

from .base import BaseDocumentSink, DocumentSink
from .file import FileSink
from .remote import BulkProcessor, RemoteSink

__all__ = [
    "BaseDocumentSink",
    "BulkProcessor",
    "DocumentSink",
    "FileSink",
    "RemoteSink",
]
