"""Tests for RemoteSink and BulkProcessor."""

import asyncio

import pytest

from tests.fakes import InMemoryEndpoint, make_documents
from vandelay.core.config import BulkConfig
from vandelay.core.exceptions import RemoteUnavailableError
from vandelay.core.types import Document
from vandelay.remote.base import BulkAction
from vandelay.sinks import BulkProcessor, DocumentSink, RemoteSink
from vandelay.transfer.channel import CancellationToken, DocumentChannel
from vandelay.transfer.progress import Progress


def _action(i: int) -> BulkAction:
    return BulkAction("events", str(i), b'{"n":%d}' % i)


class TestBulkProcessor:
    """Tests for BulkProcessor."""

    @pytest.mark.asyncio
    async def test_batches_by_action_count(self, dest_endpoint: InMemoryEndpoint):
        """Requests hold at most max_actions actions, remainder on close."""
        bulk = BulkProcessor(dest_endpoint, workers=1, max_actions=3)

        for i in range(7):
            await bulk.add(_action(i))
        await bulk.close()

        assert [len(batch) for batch in dest_endpoint.bulk_requests] == [3, 3, 1]
        assert len(dest_endpoint.documents("events")) == 7

    @pytest.mark.asyncio
    async def test_batches_by_bytes(self, dest_endpoint: InMemoryEndpoint):
        """A request is sent once it reaches max_bytes."""
        bulk = BulkProcessor(dest_endpoint, workers=1, max_actions=1000, max_bytes=1)

        await bulk.add(_action(1))
        await bulk.add(_action(2))
        await bulk.close()

        assert [len(batch) for batch in dest_endpoint.bulk_requests] == [1, 1]

    @pytest.mark.asyncio
    async def test_workers_share_the_actions(self, dest_endpoint: InMemoryEndpoint):
        """Every action is sent exactly once across the workers."""
        bulk = BulkProcessor(dest_endpoint, workers=3, max_actions=2)

        for i in range(20):
            await bulk.add(_action(i))
        await bulk.close()

        sent = [action.id for batch in dest_endpoint.bulk_requests for action in batch]
        assert sorted(sent, key=int) == [str(i) for i in range(20)]
        assert all(len(batch) <= 2 for batch in dest_endpoint.bulk_requests)

    @pytest.mark.asyncio
    async def test_bounded_in_flight_requests(self, dest_endpoint: InMemoryEndpoint):
        """No more than `workers` requests run at once."""
        dest_endpoint.bulk_delay = 0.01
        bulk = BulkProcessor(dest_endpoint, workers=2, max_actions=1)

        for i in range(6):
            await bulk.add(_action(i))
        await bulk.close()

        assert 1 <= dest_endpoint.peak_requests <= 2
        assert len(dest_endpoint.documents("events")) == 6

    @pytest.mark.asyncio
    async def test_close_without_actions(self, dest_endpoint: InMemoryEndpoint):
        """Closing an unused processor sends nothing."""
        bulk = BulkProcessor(dest_endpoint, workers=2)

        await bulk.close()
        await bulk.close()

        assert dest_endpoint.bulk_requests == []

    @pytest.mark.asyncio
    async def test_item_rejections_counted(self, dest_endpoint: InMemoryEndpoint):
        """Per-document rejections are counted, not raised."""
        dest_endpoint.reject_ids = {"2"}
        bulk = BulkProcessor(dest_endpoint, workers=1, max_actions=10)

        for i in range(4):
            await bulk.add(_action(i))
        await bulk.close()
        bulk.raise_if_failed()

        assert bulk.failed == 1
        assert "2" not in dest_endpoint.documents("events")

    @pytest.mark.asyncio
    async def test_request_failure_surfaces(self, dest_endpoint: InMemoryEndpoint):
        """A failed request is raised on the next add."""
        dest_endpoint.fail_bulk_on = 1
        bulk = BulkProcessor(dest_endpoint, workers=1, max_actions=1)

        await bulk.add(_action(1))
        await asyncio.sleep(0.01)

        with pytest.raises(RemoteUnavailableError):
            await bulk.add(_action(2))
        await bulk.close()

    @pytest.mark.asyncio
    async def test_failed_worker_does_not_block(self, dest_endpoint: InMemoryEndpoint):
        """Adds keep flowing after every worker failed, until the error is seen."""
        dest_endpoint.fail_bulk_on = 1
        bulk = BulkProcessor(dest_endpoint, workers=1, max_actions=1)

        with pytest.raises(RemoteUnavailableError):
            for i in range(10):
                await asyncio.wait_for(bulk.add(_action(i)), timeout=1)
        await asyncio.wait_for(bulk.close(), timeout=1)

        with pytest.raises(RemoteUnavailableError, match="connection reset"):
            bulk.raise_if_failed()

    def test_invalid_workers(self, dest_endpoint: InMemoryEndpoint):
        """At least one worker is required."""
        with pytest.raises(ValueError):
            BulkProcessor(dest_endpoint, workers=0)


class TestRemoteSink:
    """Tests for RemoteSink."""

    def test_satisfies_protocol(self, dest_endpoint: InMemoryEndpoint):
        """RemoteSink is a DocumentSink."""
        assert isinstance(RemoteSink(dest_endpoint), DocumentSink)

    @pytest.mark.asyncio
    async def test_writes_to_configured_collection(self, dest_endpoint: InMemoryEndpoint):
        """A configured destination name overrides each document's own."""
        sink = RemoteSink(dest_endpoint, "events2", BulkConfig(workers=1, max_actions=2))

        for document in make_documents(3, collection="events"):
            await sink.write(document)
        await sink.close()

        assert sorted(dest_endpoint.documents("events2")) == ["1", "2", "3"]
        assert "events" not in dest_endpoint.collections

    @pytest.mark.asyncio
    async def test_keeps_document_collection(self, dest_endpoint: InMemoryEndpoint):
        """Without a destination name documents keep their collection."""
        sink = RemoteSink(dest_endpoint, bulk_config=BulkConfig(workers=1))

        await sink.write(make_documents(1, collection="a")[0])
        await sink.write(make_documents(1, collection="b")[0])
        await sink.close()

        assert set(dest_endpoint.collections) == {"a", "b"}

    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, dest_endpoint: InMemoryEndpoint):
        """Writing the same documents twice leaves one copy of each."""
        documents = make_documents(5)
        for _ in range(2):
            sink = RemoteSink(dest_endpoint, "events", BulkConfig(workers=2, max_actions=2))
            for document in documents:
                await sink.write(document)
            await sink.close()

        assert len(dest_endpoint.documents("events")) == 5

    @pytest.mark.asyncio
    async def test_skips_empty_id_or_payload(self, dest_endpoint: InMemoryEndpoint):
        """Documents without an id or payload are skipped."""
        sink = RemoteSink(dest_endpoint, "events", BulkConfig(workers=1))

        assert await sink.write(Document("events", "", b'{"a":1}')) is False
        assert await sink.write(Document("events", "1", b"")) is False
        await sink.close()

        assert sink.skipped == 2
        assert dest_endpoint.bulk_requests == []

    @pytest.mark.asyncio
    async def test_skipped_includes_rejections(self, dest_endpoint: InMemoryEndpoint):
        """Endpoint rejections count as skipped."""
        dest_endpoint.reject_ids = {"1"}
        sink = RemoteSink(dest_endpoint, "events", BulkConfig(workers=1))

        for document in make_documents(3):
            await sink.write(document)
        await sink.close()

        assert sink.skipped == 1
        assert sink.rejected == 1

    @pytest.mark.asyncio
    async def test_consume_does_not_count_rejections_as_done(
        self, dest_endpoint: InMemoryEndpoint
    ):
        """Documents the endpoint refused are moved from done to skipped."""
        dest_endpoint.reject_ids = {"1", "2"}
        sink = RemoteSink(dest_endpoint, "events", BulkConfig(workers=2, max_actions=2))
        channel = DocumentChannel()
        progress = Progress()

        async def produce():
            for document in make_documents(4):
                await channel.send(document)
            await channel.close()

        await asyncio.gather(produce(), sink.consume(channel, CancellationToken(), progress))

        assert sorted(dest_endpoint.documents("events")) == ["3", "4"]
        assert progress.items_done == 2
        assert progress.skipped == 2
        assert progress.items_done + sink.skipped == 4

    @pytest.mark.asyncio
    async def test_close_raises_request_failure(self, dest_endpoint: InMemoryEndpoint):
        """A request failure during the final flush is raised by close()."""
        dest_endpoint.fail_bulk_on = 1
        sink = RemoteSink(dest_endpoint, "events", BulkConfig(workers=1))

        await sink.write(make_documents(1)[0])

        with pytest.raises(RemoteUnavailableError):
            await sink.close()

    @pytest.mark.asyncio
    async def test_consume_flushes_on_cancel(self, dest_endpoint: InMemoryEndpoint):
        """Documents received before cancellation are still flushed."""
        sink = RemoteSink(dest_endpoint, "events", BulkConfig(workers=1, max_actions=100))
        channel = DocumentChannel()
        token = CancellationToken()
        progress = Progress()
        document = make_documents(1)[0]

        await channel.send(document)
        token.cancel(RuntimeError("source failed"))

        with pytest.raises(RuntimeError, match="source failed"):
            await sink.consume(channel, token, progress)

        assert progress.items_done == 1
        assert progress.bytes_done == document.size
        assert list(dest_endpoint.documents("events")) == ["1"]
