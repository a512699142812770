"""File document sink.

Writes one JSON record per line to a local file, or to standard output
when no path is given. Files whose name ends in ``.gz`` are gzip-compressed.
"""

from __future__ import annotations

import gzip
import sys
from pathlib import Path
from typing import BinaryIO

from loguru import logger

from vandelay.core.exceptions import LocalFileError, RecordDecodeError
from vandelay.core.types import COMPRESSION_SUFFIX, Document

from .base import BaseDocumentSink


class FileSink(BaseDocumentSink):
    """Document sink for an NDJSON file or stdout.

    Existing files are never overwritten unless ``overwrite`` is set.

    Example:
        sink = FileSink(Path("events.json.gz"))
        await sink.open()
        await sink.write(doc)
        await sink.close()
    """

    def __init__(
        self,
        path: Path | None = None,
        stdout: BinaryIO | None = None,
        overwrite: bool = False,
    ) -> None:
        """Initialize file sink.

        Args:
            path: File to create; None writes to ``stdout``.
            stdout: Byte stream used when ``path`` is None (defaults to the
                process's standard output).
            overwrite: Replace an existing file instead of failing.
        """
        self._path = path
        self._stdout = stdout
        self._overwrite = overwrite
        self._raw: BinaryIO | None = None
        self._gzip: gzip.GzipFile | None = None
        self._writer: BinaryIO | None = None
        self._skipped = 0
        self._written = 0

    @property
    def name(self) -> str:
        """Display name of the output."""
        return str(self._path) if self._path is not None else "<stdout>"

    @property
    def compressed(self) -> bool:
        """Whether the output is gzip-compressed."""
        return self._path is not None and self._path.name.endswith(COMPRESSION_SUFFIX)

    @property
    def skipped(self) -> int:
        return self._skipped

    async def open(self) -> None:
        """Create the output file.

        Raises:
            LocalFileError: If the file exists or cannot be created.
        """
        if self._writer is not None:
            return
        if self._path is None:
            self._writer = self._stdout or sys.stdout.buffer
            return

        try:
            self._raw = self._path.open("wb" if self._overwrite else "xb")
        except FileExistsError as e:
            raise LocalFileError(str(self._path), "file already exists") from e
        except OSError as e:
            raise LocalFileError(str(self._path), e.strerror or str(e)) from e

        if self.compressed:
            self._gzip = gzip.GzipFile(fileobj=self._raw, mode="wb")
            self._writer = self._gzip
        else:
            self._writer = self._raw
        logger.debug(f"Opened {self.name} for writing")

    async def write(self, document: Document) -> bool:
        """Append one record line.

        Raises:
            LocalFileError: If the write fails.
        """
        if self._writer is None:
            await self.open()

        try:
            line = document.to_line()
        except RecordDecodeError as e:
            logger.warning(f"Skipping document {document.id!r}: {e}")
            self._skipped += 1
            return False

        try:
            self._writer.write(line)
        except OSError as e:
            raise LocalFileError(self.name, e.strerror or str(e)) from e
        self._written += 1
        return True

    async def close(self) -> None:
        """Flush and close; the gzip stream is closed before the file.

        Raises:
            LocalFileError: If flushing fails.
        """
        writer, self._writer = self._writer, None
        if writer is None:
            return

        try:
            writer.flush()
            if self._gzip is not None:
                # Writes the gzip trailer; must happen before the file closes
                self._gzip.close()
        except OSError as e:
            raise LocalFileError(self.name, e.strerror or str(e)) from e
        finally:
            self._gzip = None
            if self._raw is not None:
                self._raw.close()
                self._raw = None

        logger.info(f"Wrote {self._written} documents to {self.name}")

    async def discard(self) -> None:
        """Close and remove a file created by ``open`` that holds no documents."""
        created = self._raw is not None
        await self.abort()
        if not created or self._written or self._path is None:
            return
        try:
            self._path.unlink()
        except OSError as e:
            logger.debug(f"Could not remove {self.name}: {e}")
        else:
            logger.debug(f"Removed {self.name}")
