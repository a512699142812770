"""Transfer job description.

A TransferJob is built once (usually by the CLI) and passed by reference
into the coordinator; nothing in the pipeline reads global state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Union
from urllib.parse import urlparse

from vandelay.core.exceptions import InvalidJobError, UnsupportedModeError
from vandelay.core.types import COMPRESSION_SUFFIX

TIME_FORMAT = "%Y.%m.%d %H:%M:%S"
# Same format, in the server's date-format syntax
SERVER_TIME_FORMAT = "yyyy.MM.dd HH:mm:ss"


def _parse_time(value: str, label: str) -> datetime:
    try:
        return datetime.strptime(value, TIME_FORMAT)
    except ValueError as e:
        raise InvalidJobError(
            f"Invalid {label} time {value!r} (expected format: YYYY.MM.DD HH:MM:SS)"
        ) from e


@dataclass(frozen=True)
class TimeFilter:
    """Restrict a remote source to documents with ``start < field <= end``.

    Attributes:
        field: Name of the timestamp field to filter on.
        start: Exclusive lower bound, ``YYYY.MM.DD HH:MM:SS``.
        end: Inclusive upper bound, ``YYYY.MM.DD HH:MM:SS``.
    """

    field: str
    start: str
    end: str

    def __post_init__(self) -> None:
        if not self.field:
            raise InvalidJobError("Time filter requires a field name")
        start = _parse_time(self.start, "start")
        end = _parse_time(self.end, "end")
        if end < start:
            raise InvalidJobError(f"Time filter end {self.end!r} is before start {self.start!r}")

    def to_query(self) -> dict[str, Any]:
        """Render as a range query."""
        return {
            "range": {
                self.field: {
                    "gt": self.start,
                    "lte": self.end,
                    "format": SERVER_TIME_FORMAT,
                }
            }
        }

    def contains(self, value: str) -> bool:
        """Check whether a timestamp falls inside ``(start, end]``."""
        moment = datetime.strptime(value, TIME_FORMAT)
        return _parse_time(self.start, "start") < moment <= _parse_time(self.end, "end")


@dataclass(frozen=True)
class RemoteLocation:
    """A collection on a remote endpoint.

    Attributes:
        url: Base URL of the endpoint.
        collection: Collection name; optional for destinations, where each
            document then keeps its own collection name.
    """

    url: str
    collection: str | None = None

    def __str__(self) -> str:
        return f"{self.url.rstrip('/')}/{self.collection or '*'}"


@dataclass(frozen=True)
class FileLocation:
    """A local NDJSON file.

    Attributes:
        path: File path; None means stdin (source) or stdout (destination).
        schema_path: Explicit schema file; derived from ``path`` when None.
    """

    path: Path | None = None
    schema_path: Path | None = None

    @property
    def compressed(self) -> bool:
        """Whether the file name marks gzip content."""
        return self.path is not None and self.path.name.endswith(COMPRESSION_SUFFIX)

    def __str__(self) -> str:
        return str(self.path) if self.path is not None else "-"


Location = Union[RemoteLocation, FileLocation]


def parse_location(value: str | None, collection: str | None = None) -> Location:
    """Classify a user-supplied location as a URL or a file path.

    Args:
        value: http(s) URL, file path, or None/"-" for stdio.
        collection: Collection name for remote locations.

    Returns:
        RemoteLocation for URLs, FileLocation otherwise.
    """
    if value and urlparse(value).scheme in ("http", "https"):
        return RemoteLocation(url=value, collection=collection)
    if not value or value == "-":
        return FileLocation(path=None)
    return FileLocation(path=Path(value))


class TransferMode(Enum):
    """Direction of a transfer, derived from the job's locations."""

    REMOTE_TO_FILE = "remote-to-file"
    FILE_TO_REMOTE = "file-to-remote"
    REMOTE_TO_REMOTE = "remote-to-remote"


def _resolve_mode(source: Location, dest: Location) -> TransferMode:
    source_remote = isinstance(source, RemoteLocation)
    dest_remote = isinstance(dest, RemoteLocation)
    if source_remote and dest_remote:
        return TransferMode.REMOTE_TO_REMOTE
    if source_remote:
        return TransferMode.REMOTE_TO_FILE
    if dest_remote:
        return TransferMode.FILE_TO_REMOTE
    raise UnsupportedModeError("file to file transfers are not supported; use cp or zcat")


@dataclass(frozen=True)
class TransferJob:
    """Immutable configuration for one transfer run.

    Attributes:
        source: Where documents are read from.
        dest: Where documents are written to.
        time_filter: Optional filter, only valid for remote sources.
    """

    source: Location
    dest: Location
    time_filter: TimeFilter | None = None

    def __post_init__(self) -> None:
        _resolve_mode(self.source, self.dest)
        if isinstance(self.source, RemoteLocation) and not self.source.collection:
            raise InvalidJobError("A remote source requires a collection name")
        if self.time_filter is not None and not isinstance(self.source, RemoteLocation):
            raise InvalidJobError("A time filter can only be applied to a remote source")

    @property
    def mode(self) -> TransferMode:
        """Transfer direction."""
        return _resolve_mode(self.source, self.dest)
