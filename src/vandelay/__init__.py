"""Vandelay - streaming export and import of search index collections.

Moves every document of a collection between a remote endpoint and a
newline-delimited JSON file (optionally gzip-compressed), or between two
remote endpoints, carrying the collection's field mappings along.
"""

from .core.config import Config
from .core.exceptions import VandelayError
from .core.types import Document, Schema
from .transfer.coordinator import TransferCoordinator, TransferResult, TransferState
from .transfer.job import FileLocation, RemoteLocation, TimeFilter, TransferJob, TransferMode

__version__ = "1.0.0"

__all__ = [
    "Config",
    "Document",
    "FileLocation",
    "RemoteLocation",
    "Schema",
    "TimeFilter",
    "TransferCoordinator",
    "TransferJob",
    "TransferMode",
    "TransferResult",
    "TransferState",
    "VandelayError",
    "__version__",
]
