"""File document source.

Reads newline-delimited JSON records from a local file, or from standard
input when no path is given. Files whose name ends in ``.gz`` are
decompressed on the fly; the suffix is the only signal, content is never
sniffed.
"""

from __future__ import annotations

import asyncio
import gzip
import sys
import zlib
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator, BinaryIO

from loguru import logger

from vandelay.core.exceptions import LocalFileError, RecordDecodeError
from vandelay.core.types import COMPRESSION_SUFFIX, Document

if TYPE_CHECKING:
    from vandelay.transfer.channel import CancellationToken

_COUNT_CHUNK = 32 * 1024


def count_lines(path: Path) -> int:
    """Count newline characters in an uncompressed file."""
    count = 0
    try:
        with path.open("rb") as f:
            while chunk := f.read(_COUNT_CHUNK):
                count += chunk.count(b"\n")
    except OSError as e:
        raise LocalFileError(str(path), e.strerror or str(e)) from e
    return count


class FileSource:
    """Document source for an NDJSON file or stdin.

    Example:
        source = FileSource(Path("events.json.gz"))
        expected = await source.prepare()

        async for doc in source.stream(token):
            print(doc.collection, doc.id)
    """

    def __init__(self, path: Path | None = None, stdin: BinaryIO | None = None) -> None:
        """Initialize file source.

        Args:
            path: File to read; None reads from ``stdin``.
            stdin: Byte stream used when ``path`` is None (defaults to
                the process's standard input).
        """
        self._path = path
        self._stdin = stdin
        self.skipped = 0

    @property
    def name(self) -> str:
        """Display name of the input."""
        return str(self._path) if self._path is not None else "<stdin>"

    @property
    def compressed(self) -> bool:
        """Whether the input is gzip-compressed."""
        return self._path is not None and self._path.name.endswith(COMPRESSION_SUFFIX)

    async def prepare(self) -> int | None:
        """Check the file is readable and estimate the document count.

        Uncompressed files are scanned for line breaks; compressed files and
        stdin report an unknown total.
        """
        if self._path is None:
            return None
        if not self._path.is_file():
            raise LocalFileError(str(self._path), "no such file")
        if self.compressed:
            return None
        return await asyncio.to_thread(count_lines, self._path)

    def _open(self) -> tuple[BinaryIO, BinaryIO | None]:
        """Open the reader and, for gzip input, the underlying file."""
        if self._path is None:
            return self._stdin or sys.stdin.buffer, None
        try:
            raw = self._path.open("rb")
        except OSError as e:
            raise LocalFileError(str(self._path), e.strerror or str(e)) from e
        if self.compressed:
            return gzip.GzipFile(fileobj=raw, mode="rb"), raw
        return raw, None

    async def stream(self, token: "CancellationToken") -> AsyncIterator[Document]:
        """Yield one Document per line.

        Blank lines are ignored. Malformed lines are logged and skipped.
        A final line without a terminating newline is not a complete record
        and is dropped with a warning.

        Raises:
            LocalFileError: If the input cannot be opened or read.
        """
        reader, raw = self._open()
        line_no = 0
        try:
            while True:
                token.raise_if_cancelled()
                try:
                    # Off the event loop; stdin or a pipe may block
                    line = await asyncio.to_thread(reader.readline)
                except (OSError, EOFError, zlib.error) as e:
                    raise LocalFileError(self.name, str(e)) from e

                if not line:
                    return
                line_no += 1

                if not line.strip():
                    continue
                if not line.endswith(b"\n"):
                    logger.warning(f"Ignoring unterminated last line {line_no} of {self.name}")
                    self.skipped += 1
                    return

                try:
                    document = Document.from_line(line)
                except RecordDecodeError as e:
                    logger.warning(f"Skipping line {line_no} of {self.name}: {e}")
                    self.skipped += 1
                    continue

                yield document
        finally:
            # Never close the process's stdin
            if self._path is not None:
                reader.close()
                if raw is not None:
                    raw.close()
            logger.debug(f"Closed {self.name} after {line_no} lines")
