"""Type definitions for vandelay."""

import json
from dataclasses import dataclass
from typing import Any

from .exceptions import RecordDecodeError

# File names ending in this suffix hold gzip-compressed data
COMPRESSION_SUFFIX = ".gz"


def encode_payload(body: dict[str, Any]) -> bytes:
    """Encode a document body as compact UTF-8 JSON.

    This is the canonical payload form: single line, no insignificant
    whitespace, non-ASCII kept as-is.
    """
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class Document:
    """One record of a collection.

    Attributes:
        collection: Name of the collection (index) the record belongs to.
        id: Stable identifier, unique within the collection.
        payload: Record body as canonical JSON bytes; passed through untouched.
    """

    collection: str
    id: str
    payload: bytes

    @property
    def size(self) -> int:
        """Payload size in bytes."""
        return len(self.payload)

    def to_line(self) -> bytes:
        """Serialize to one newline-terminated NDJSON line.

        Raises:
            RecordDecodeError: If the payload cannot be embedded in a line.
        """
        if not self.payload:
            raise RecordDecodeError(f"Document {self.id!r} has an empty payload")
        if b"\n" in self.payload:
            raise RecordDecodeError(f"Document {self.id!r} payload spans multiple lines")
        try:
            payload = self.payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RecordDecodeError(f"Document {self.id!r} payload is not UTF-8: {e}") from e

        head = json.dumps(
            {"collection": self.collection, "id": self.id},
            separators=(",", ":"),
            ensure_ascii=False,
        )
        # Splice the raw payload in so it is never re-encoded.
        return f'{head[:-1]},"payload":{payload}}}\n'.encode("utf-8")

    @classmethod
    def from_line(cls, line: bytes) -> "Document":
        """Parse one NDJSON line.

        Args:
            line: Line bytes, with or without the trailing newline.

        Returns:
            The decoded Document.

        Raises:
            RecordDecodeError: If the line is not a valid record.
        """
        try:
            record = json.loads(line)
        except (UnicodeDecodeError, ValueError) as e:
            raise RecordDecodeError(f"Invalid JSON line: {e}") from e

        if not isinstance(record, dict):
            raise RecordDecodeError("Line is not a JSON object")

        collection = record.get("collection")
        doc_id = record.get("id")
        payload = record.get("payload")

        if not isinstance(collection, str):
            raise RecordDecodeError("Line has no 'collection' field")
        if not isinstance(doc_id, str) or not doc_id:
            raise RecordDecodeError("Line has no 'id' field")
        if not isinstance(payload, dict):
            raise RecordDecodeError(f"Document {doc_id!r} payload is not a JSON object")

        return cls(collection=collection, id=doc_id, payload=encode_payload(payload))

    @classmethod
    def from_hit(cls, hit: dict[str, Any]) -> "Document":
        """Build a Document from one search hit (``_index``, ``_id``, ``_source``)."""
        try:
            return cls(
                collection=hit["_index"],
                id=str(hit["_id"]),
                payload=encode_payload(hit.get("_source") or {}),
            )
        except (KeyError, TypeError) as e:
            raise RecordDecodeError(f"Malformed search hit: {e}") from e


@dataclass(frozen=True)
class Schema:
    """Destination shape for a collection.

    Attributes:
        source_name: Collection name the schema was captured from.
        body: Raw schema JSON, keyed by the origin collection name.
    """

    source_name: str
    body: bytes
