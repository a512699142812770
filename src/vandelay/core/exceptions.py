"""Custom exceptions for vandelay."""


class VandelayError(Exception):
    """Base exception for all vandelay errors."""

    pass


class RemoteUnavailableError(VandelayError):
    """Remote endpoint unreachable or a request against it failed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Request to {url} failed: {reason}")


class CollectionError(VandelayError):
    """Collection precondition failed."""

    pass


class CollectionNotFoundError(CollectionError):
    """Collection does not exist on the endpoint."""

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(
            f"Collection '{collection}' does not exist - you can only export an existing collection"
        )


class CollectionExistsError(CollectionError):
    """Destination collection already exists."""

    def __init__(self, collection: str, url: str | None = None):
        self.collection = collection
        self.url = url
        hint = f" - delete it first (curl -XDELETE {url.rstrip('/')}/{collection})" if url else ""
        super().__init__(f"Collection '{collection}' already exists{hint}")


class SchemaError(VandelayError):
    """Schema transfer failed."""

    pass


class SchemaFileMissingError(SchemaError):
    """Schema companion file does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Schema file does not exist: {path}")


class SchemaParseError(SchemaError):
    """Schema JSON does not have the expected shape."""

    pass


class LocalFileError(VandelayError):
    """Local file could not be opened, read or written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"File error on {path}: {reason}")


class RecordDecodeError(VandelayError):
    """A single record could not be decoded or encoded.

    Recoverable: the record is logged and skipped.
    """

    pass


class InvalidJobError(VandelayError):
    """Transfer job configuration is invalid."""

    pass


class UnsupportedModeError(InvalidJobError):
    """Source/destination combination has no transfer path."""

    pass
