"""Tests for TransferJob, locations and time filters."""

from pathlib import Path

import pytest

from vandelay.core.exceptions import InvalidJobError, UnsupportedModeError
from vandelay.transfer.job import (
    SERVER_TIME_FORMAT,
    FileLocation,
    RemoteLocation,
    TimeFilter,
    TransferJob,
    TransferMode,
    parse_location,
)


class TestTimeFilter:
    """Tests for TimeFilter."""

    def test_to_query(self):
        """Renders an exclusive-start, inclusive-end range query."""
        time_filter = TimeFilter("@timestamp", "2016.01.01 00:00:00", "2016.01.02 00:00:00")

        assert time_filter.to_query() == {
            "range": {
                "@timestamp": {
                    "gt": "2016.01.01 00:00:00",
                    "lte": "2016.01.02 00:00:00",
                    "format": SERVER_TIME_FORMAT,
                }
            }
        }

    def test_contains_boundaries(self):
        """Start is excluded, end is included."""
        time_filter = TimeFilter("ts", "2016.01.01 00:00:00", "2016.01.02 00:00:00")

        assert not time_filter.contains("2016.01.01 00:00:00")
        assert time_filter.contains("2016.01.01 00:00:01")
        assert time_filter.contains("2016.01.02 00:00:00")
        assert not time_filter.contains("2016.01.02 00:00:01")

    def test_invalid_format(self):
        """Times must use YYYY.MM.DD HH:MM:SS."""
        with pytest.raises(InvalidJobError, match="expected format"):
            TimeFilter("ts", "2016-01-01T00:00:00", "2016.01.02 00:00:00")

    def test_end_before_start(self):
        """An inverted window is rejected."""
        with pytest.raises(InvalidJobError, match="before start"):
            TimeFilter("ts", "2016.01.02 00:00:00", "2016.01.01 00:00:00")

    def test_field_required(self):
        """A field name is required."""
        with pytest.raises(InvalidJobError):
            TimeFilter("", "2016.01.01 00:00:00", "2016.01.02 00:00:00")


class TestParseLocation:
    """Tests for parse_location."""

    def test_http_url(self):
        """http(s) values are remote locations."""
        location = parse_location("http://localhost:9200", "events")

        assert location == RemoteLocation("http://localhost:9200", "events")

    def test_https_url(self):
        """https values are remote locations."""
        assert isinstance(parse_location("https://search.example.com"), RemoteLocation)

    def test_file_path(self):
        """Other values are file paths."""
        assert parse_location("dump/events.json.gz") == FileLocation(Path("dump/events.json.gz"))

    @pytest.mark.parametrize("value", [None, "", "-"])
    def test_stdio(self, value):
        """None, empty and "-" mean stdin or stdout."""
        assert parse_location(value) == FileLocation(path=None)


class TestFileLocation:
    """Tests for FileLocation."""

    def test_compressed(self):
        """The .gz suffix alone marks compression."""
        assert FileLocation(Path("events.json.gz")).compressed
        assert not FileLocation(Path("events.json")).compressed
        assert not FileLocation().compressed


class TestTransferJob:
    """Tests for TransferJob validation."""

    def test_modes(self):
        """The mode follows from the source and destination kinds."""
        remote = RemoteLocation("http://a:9200", "events")
        local = FileLocation(Path("events.json"))

        assert TransferJob(remote, local).mode is TransferMode.REMOTE_TO_FILE
        assert TransferJob(local, remote).mode is TransferMode.FILE_TO_REMOTE
        assert TransferJob(remote, remote).mode is TransferMode.REMOTE_TO_REMOTE

    def test_file_to_file_unsupported(self):
        """File to file has no transfer path."""
        with pytest.raises(UnsupportedModeError):
            TransferJob(FileLocation(Path("a.json")), FileLocation(Path("b.json")))

    def test_remote_source_requires_collection(self):
        """A remote source must name its collection."""
        with pytest.raises(InvalidJobError, match="collection"):
            TransferJob(RemoteLocation("http://a:9200"), FileLocation(Path("a.json")))

    def test_remote_dest_collection_optional(self):
        """A remote destination may omit the collection."""
        job = TransferJob(FileLocation(Path("a.json")), RemoteLocation("http://a:9200"))

        assert job.dest.collection is None

    def test_time_filter_requires_remote_source(self):
        """Time filters only apply to remote sources."""
        time_filter = TimeFilter("ts", "2016.01.01 00:00:00", "2016.01.02 00:00:00")

        with pytest.raises(InvalidJobError, match="time filter"):
            TransferJob(
                FileLocation(Path("a.json")),
                RemoteLocation("http://a:9200"),
                time_filter=time_filter,
            )
