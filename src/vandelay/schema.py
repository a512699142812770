"""Schema transfer between remote collections and schema companion files.

A destination collection is always created explicitly from the source's
field mappings before any document is written to it; the pipeline never
relies on implicit mappings and never merges into an existing collection.

Schema files sit next to the data file:

    events.json      -> events-mapping.json
    events.json.gz   -> events-mapping.json
    dump.ndjson      -> dump.ndjson-mapping.json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from vandelay.core.exceptions import (
    CollectionExistsError,
    LocalFileError,
    SchemaFileMissingError,
    SchemaParseError,
)
from vandelay.core.types import COMPRESSION_SUFFIX, Schema

if TYPE_CHECKING:
    from vandelay.remote.base import RemoteEndpoint

DATA_EXTENSION = ".json"
SCHEMA_SUFFIX = "-mapping.json"


def schema_path_for(data_path: Path | str) -> Path:
    """Derive the schema companion path from a data file path.

    Strips a trailing compression suffix, then a ``.json`` extension, then
    appends the schema suffix.
    """
    path = Path(data_path)
    name = path.name
    if name.endswith(COMPRESSION_SUFFIX):
        name = name[: -len(COMPRESSION_SUFFIX)]
    if name.endswith(DATA_EXTENSION):
        name = name[: -len(DATA_EXTENSION)]
    return path.with_name(name + SCHEMA_SUFFIX)


async def fetch_schema(endpoint: "RemoteEndpoint", collection: str) -> Schema:
    """Read a collection's schema from a remote endpoint.

    Raises:
        CollectionNotFoundError: If the collection does not exist.
        RemoteUnavailableError: If the request fails.
    """
    body = await endpoint.get_schema(collection)
    logger.debug(f"Fetched schema for {collection!r} from {endpoint.url}")
    return Schema(source_name=collection, body=json.dumps(body).encode("utf-8"))


def write_schema_to_file(path: Path, schema: Schema) -> Path:
    """Write a schema to its companion file.

    Args:
        path: Schema file path (see ``schema_path_for``).
        schema: Schema to write; the raw body is written unchanged.

    Returns:
        The path written.

    Raises:
        LocalFileError: If the file cannot be written.
    """
    try:
        path.write_bytes(schema.body)
    except OSError as e:
        raise LocalFileError(str(path), e.strerror or str(e)) from e
    logger.info(f"Wrote schema for {schema.source_name!r} to {path}")
    return path


def read_schema_from_file(path: Path) -> Schema:
    """Read a schema companion file.

    The body is returned raw; it is only validated when applied.

    Raises:
        SchemaFileMissingError: If the file does not exist.
        LocalFileError: If the file cannot be read.
    """
    if not path.exists():
        raise SchemaFileMissingError(str(path))
    try:
        body = path.read_bytes()
    except OSError as e:
        raise LocalFileError(str(path), e.strerror or str(e)) from e

    source_name = ""
    try:
        parsed = json.loads(body)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict) and len(parsed) == 1:
        source_name = next(iter(parsed))

    return Schema(source_name=source_name, body=body)


def extract_mappings(schema: Schema) -> dict[str, Any]:
    """Unwrap the field-mapping section from a schema body.

    The body is keyed by the origin collection name:
    ``{"old-name": {"mappings": {...}}}``. Exactly one key is accepted;
    a dump holding several collections is ambiguous and rejected.

    Raises:
        SchemaParseError: If the body does not have that shape.
    """
    try:
        parsed = json.loads(schema.body)
    except ValueError as e:
        raise SchemaParseError(f"unable to parse json schema: {e}") from e

    if not isinstance(parsed, dict):
        raise SchemaParseError("unable to parse json schema: top level is not an object")
    if len(parsed) != 1:
        names = ", ".join(sorted(parsed)) or "(none)"
        raise SchemaParseError(
            f"schema must describe exactly one collection, found {len(parsed)}: {names}"
        )

    origin, definition = next(iter(parsed.items()))
    if not isinstance(definition, dict) or not isinstance(definition.get("mappings"), dict):
        raise SchemaParseError(f"schema for {origin!r} has no mappings section")

    return definition["mappings"]


async def apply_schema_to_remote(
    endpoint: "RemoteEndpoint",
    dest_collection: str,
    schema: Schema,
) -> None:
    """Create a fresh destination collection from a schema.

    Only the field-mapping section is carried over; the origin collection
    name and any settings are dropped.

    Raises:
        CollectionExistsError: If the destination already exists.
        SchemaParseError: If the schema cannot be unwrapped.
        RemoteUnavailableError: If a request fails.
    """
    if await endpoint.exists(dest_collection):
        raise CollectionExistsError(dest_collection, endpoint.url)

    mappings = extract_mappings(schema)
    await endpoint.create_collection(dest_collection, {"mappings": dict(mappings)})
    logger.info(
        f"Applied schema from {schema.source_name or 'file'!r} to {dest_collection!r}"
    )
