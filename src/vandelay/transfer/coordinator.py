"""Transfer coordinator.

Runs one TransferJob end to end: the schema is transferred first, then a
producer task (the source) and a consumer task (the sink) stream documents
through a single-slot channel. The first failure in either task cancels
the other and is re-raised unchanged.

    coordinator = TransferCoordinator(config)
    result = await coordinator.run(job)
    print(f"{result.documents} documents in {result.elapsed_seconds:.1f}s")
"""

from __future__ import annotations

import asyncio
import time
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable

from loguru import logger

from vandelay.core.config import Config
from vandelay.core.exceptions import SchemaFileMissingError, SchemaParseError
from vandelay.remote.base import RemoteEndpoint
from vandelay.remote.elasticsearch import ElasticsearchEndpoint
from vandelay.schema import (
    apply_schema_to_remote,
    extract_mappings,
    fetch_schema,
    read_schema_from_file,
    schema_path_for,
    write_schema_to_file,
)
from vandelay.sinks.base import DocumentSink
from vandelay.sinks.file import FileSink
from vandelay.sinks.remote import RemoteSink
from vandelay.sources.base import DocumentSource
from vandelay.sources.file import FileSource
from vandelay.sources.remote import RemoteSource

from .channel import CancellationToken, DocumentChannel
from .job import FileLocation, RemoteLocation, TransferJob, TransferMode
from .progress import NullProgress, Progress, ProgressSink

EndpointFactory = Callable[[str], RemoteEndpoint]
"""Builds a RemoteEndpoint for a base URL."""


class TransferState(Enum):
    """Lifecycle of a transfer run."""

    IDLE = "idle"
    SCHEMA_TRANSFERRING = "schema-transferring"
    STREAMING = "streaming"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TransferResult:
    """Result of a completed transfer."""

    mode: TransferMode
    """Direction of the transfer."""

    state: TransferState
    """Final state (always DONE for a returned result)."""

    documents: int
    """Documents accepted by the destination."""

    bytes: int
    """Payload bytes sent to the destination."""

    skipped: int
    """Records skipped by the source, the sink or the remote endpoint."""

    expected: int | None
    """Best-effort expected document count; None if unknown."""

    elapsed_seconds: float
    """Wall-clock duration of the run."""


class TransferCoordinator:
    """Drive a transfer through its states.

    Args:
        config: Remote and bulk settings.
        progress: Renderer for progress increments.
        endpoint_factory: Builds remote endpoints by URL (defaults to
            ElasticsearchEndpoint). Endpoints are closed after the run.
        stdin: Byte stream for file sources without a path.
        stdout: Byte stream for file destinations without a path.
    """

    def __init__(
        self,
        config: Config | None = None,
        progress: ProgressSink | None = None,
        endpoint_factory: EndpointFactory | None = None,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
    ) -> None:
        self._config = config or Config()
        self._progress_sink = progress or NullProgress()
        self._endpoint_factory = endpoint_factory or self._default_endpoint
        self._stdin = stdin
        self._stdout = stdout
        self.state = TransferState.IDLE
        self.progress: Progress | None = None
        self.channel: DocumentChannel | None = None

    def _default_endpoint(self, url: str) -> RemoteEndpoint:
        return ElasticsearchEndpoint(url, self._config.elastic)

    def _set_state(self, state: TransferState) -> None:
        logger.debug(f"Transfer state: {self.state.value} -> {state.value}")
        self.state = state

    async def run(self, job: TransferJob) -> TransferResult:
        """Execute a transfer job.

        Partial output written before a failure is kept.

        Returns:
            TransferResult with counters of the finished run.

        Raises:
            VandelayError: The first error raised by any stage, unchanged.
        """
        if self.state is not TransferState.IDLE:
            raise RuntimeError("TransferCoordinator can only run once")

        mode = job.mode
        logger.info(f"Starting {mode.value} transfer: {job.source} -> {job.dest}")
        start_time = time.perf_counter()

        progress = Progress(sink=self._progress_sink)
        self.progress = progress
        endpoints: dict[str, RemoteEndpoint] = {}

        try:
            source = self._build_source(job, endpoints)
            sink = self._build_sink(job, endpoints)

            progress.items_expected = await source.prepare()
            await sink.open()

            self._set_state(TransferState.SCHEMA_TRANSFERRING)
            try:
                await self._transfer_schema(job, endpoints)
            except BaseException:
                await sink.discard()
                raise

            self._set_state(TransferState.STREAMING)
            progress.start()
            await self.stream(source, sink, progress)
            self._set_state(TransferState.DONE)
        except BaseException as e:
            self._set_state(TransferState.FAILED)
            logger.error(f"Transfer failed: {e}")
            raise
        finally:
            progress.finish()
            for endpoint in endpoints.values():
                await endpoint.aclose()

        elapsed = time.perf_counter() - start_time
        result = TransferResult(
            mode=mode,
            state=self.state,
            documents=progress.items_done,
            bytes=progress.bytes_done,
            skipped=source.skipped + sink.skipped,
            expected=progress.items_expected,
            elapsed_seconds=elapsed,
        )
        logger.info(
            f"Transfer complete: {result.documents} documents, {result.bytes} bytes, "
            f"{result.skipped} skipped in {elapsed:.2f}s"
        )
        return result

    def _endpoint(
        self, location: RemoteLocation, endpoints: dict[str, RemoteEndpoint]
    ) -> RemoteEndpoint:
        """Get or create the endpoint for a location's URL."""
        url = location.url.rstrip("/")
        if url not in endpoints:
            endpoints[url] = self._endpoint_factory(url)
        return endpoints[url]

    def _build_source(
        self, job: TransferJob, endpoints: dict[str, RemoteEndpoint]
    ) -> DocumentSource:
        location = job.source
        if isinstance(location, RemoteLocation):
            return RemoteSource(
                self._endpoint(location, endpoints),
                location.collection,
                time_filter=job.time_filter,
                page_size=self._config.elastic.page_size,
            )
        return FileSource(location.path, stdin=self._stdin)

    def _build_sink(
        self, job: TransferJob, endpoints: dict[str, RemoteEndpoint]
    ) -> DocumentSink:
        location = job.dest
        if isinstance(location, RemoteLocation):
            return RemoteSink(
                self._endpoint(location, endpoints),
                location.collection,
                bulk_config=self._config.bulk,
            )
        return FileSink(location.path, stdout=self._stdout)

    async def _transfer_schema(
        self, job: TransferJob, endpoints: dict[str, RemoteEndpoint]
    ) -> None:
        """Carry the source schema to the destination before any document."""
        source, dest = job.source, job.dest

        if isinstance(source, RemoteLocation):
            schema = await fetch_schema(self._endpoint(source, endpoints), source.collection)
            if isinstance(dest, RemoteLocation):
                await apply_schema_to_remote(
                    self._endpoint(dest, endpoints),
                    dest.collection or source.collection,
                    schema,
                )
                return

            path = _schema_path(dest)
            if path is None:
                logger.warning("Writing documents to stdout; no schema file will be written")
                return
            write_schema_to_file(path, schema)
            return

        path = _schema_path(source)
        if path is None:
            raise SchemaFileMissingError(
                "<none> (reading from stdin requires an explicit schema file)"
            )
        schema = read_schema_from_file(path)
        collection = dest.collection or schema.source_name
        if not collection:
            # Only a well-formed schema names its origin collection
            extract_mappings(schema)
            raise SchemaParseError(f"schema file {path} does not name a collection")
        await apply_schema_to_remote(self._endpoint(dest, endpoints), collection, schema)

    async def stream(
        self, source: DocumentSource, sink: DocumentSink, progress: Progress
    ) -> None:
        """Run producer and consumer tasks until both finish or one fails.

        The source must be prepared and the sink opened. The sink is closed
        (or aborted on failure) before this returns.

        Raises:
            Exception: The first error raised by either task.
        """
        channel = DocumentChannel(capacity=1)
        token = CancellationToken()
        self.channel = channel

        producer = asyncio.create_task(_produce(source, channel, token), name="vandelay-producer")
        consumer = asyncio.create_task(
            sink.consume(channel, token, progress), name="vandelay-consumer"
        )
        tasks = [producer, consumer]

        try:
            pending: set[asyncio.Task[None]] = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in tasks:
                    if task in done and not task.cancelled() and task.exception() is not None:
                        token.cancel(task.exception())

                if token.cancelled:
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
                    break

                if producer in done and pending:
                    self._set_state(TransferState.DRAINING)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        token.raise_if_cancelled()


async def _produce(
    source: DocumentSource, channel: DocumentChannel, token: CancellationToken
) -> None:
    """Pull documents from the source into the channel, then close it."""
    documents = source.stream(token)
    async with aclosing(documents):
        async for document in documents:
            await channel.send(document)
    await channel.close()


def _schema_path(location: FileLocation) -> Path | None:
    """Explicit schema path, else the companion of the data file."""
    if location.schema_path is not None:
        return location.schema_path
    if location.path is None:
        return None
    return schema_path_for(location.path)
