"""Transfer job description and streaming primitives.

The coordinator lives in ``vandelay.transfer.coordinator``; it depends on
the sources and sinks, which in turn depend on the primitives here.
"""

from .channel import CancellationToken, DocumentChannel
from .job import (
    FileLocation,
    Location,
    RemoteLocation,
    TimeFilter,
    TransferJob,
    TransferMode,
    parse_location,
)
from .progress import NullProgress, Progress, ProgressSink, TqdmProgress

__all__ = [
    # Job
    "FileLocation",
    "Location",
    "RemoteLocation",
    "TimeFilter",
    "TransferJob",
    "TransferMode",
    "parse_location",
    # Streaming
    "CancellationToken",
    "DocumentChannel",
    # Progress
    "NullProgress",
    "Progress",
    "ProgressSink",
    "TqdmProgress",
]
