"""Core types, configuration and exceptions for vandelay."""

from .config import BulkConfig, Config, ElasticConfig
from .exceptions import (
    CollectionError,
    CollectionExistsError,
    CollectionNotFoundError,
    InvalidJobError,
    LocalFileError,
    RecordDecodeError,
    RemoteUnavailableError,
    SchemaError,
    SchemaFileMissingError,
    SchemaParseError,
    UnsupportedModeError,
    VandelayError,
)
from .types import COMPRESSION_SUFFIX, Document, Schema, encode_payload

__all__ = [
    # Config
    "BulkConfig",
    "Config",
    "ElasticConfig",
    # Types
    "COMPRESSION_SUFFIX",
    "Document",
    "Schema",
    "encode_payload",
    # Exceptions
    "CollectionError",
    "CollectionExistsError",
    "CollectionNotFoundError",
    "InvalidJobError",
    "LocalFileError",
    "RecordDecodeError",
    "RemoteUnavailableError",
    "SchemaError",
    "SchemaFileMissingError",
    "SchemaParseError",
    "UnsupportedModeError",
    "VandelayError",
]
