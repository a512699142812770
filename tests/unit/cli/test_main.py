"""Tests for the vandelay CLI."""

import functools
import json
from pathlib import Path

import pytest

from tests.fakes import DEST_URL, SOURCE_URL, InMemoryEndpoint
from vandelay.cli import main as cli_main
from vandelay.cli.commands import build_time_filter
from vandelay.cli.commands import transfer as transfer_commands
from vandelay.transfer.coordinator import TransferCoordinator

MAPPINGS = {"properties": {"msg": {"type": "text"}}}


@pytest.fixture
def fake_endpoints(monkeypatch, endpoint_factory):
    """Route CLI transfers to the in-memory endpoints."""
    monkeypatch.setattr(
        transfer_commands,
        "TransferCoordinator",
        functools.partial(TransferCoordinator, endpoint_factory=endpoint_factory),
    )


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli_main.main(argv)
    return exc_info.value.code


class TestParser:
    """Tests for argument parsing."""

    def test_export_arguments(self):
        """export takes source, destination and time window options."""
        args = cli_main.create_parser().parse_args(
            [
                "--debug",
                "export",
                "--source-url",
                SOURCE_URL,
                "--source-index",
                "events",
                "--dest-file",
                "events.json.gz",
                "--time-field",
                "ts",
                "--time-start",
                "2016.01.01 00:00:00",
                "--time-end",
                "2016.01.02 00:00:00",
            ]
        )

        assert args.debug
        assert args.command == "export"
        assert args.dest_file == "events.json.gz"
        assert build_time_filter(args).field == "ts"

    def test_import_defaults_to_stdin(self):
        """import reads stdin unless a file is given."""
        args = cli_main.create_parser().parse_args(["import", "--dest-url", DEST_URL])

        assert args.source_file == "-"
        assert args.dest_index is None

    def test_partial_time_window(self):
        """The three time options must be used together."""
        args = cli_main.create_parser().parse_args(
            ["export", "--source-url", SOURCE_URL, "--source-index", "e", "--time-field", "ts"]
        )

        with pytest.raises(Exception, match="must be used together"):
            build_time_filter(args)


class TestMain:
    """Tests for the main entry point."""

    def test_no_command_prints_help(self, capsys):
        """Without a command the help text is shown."""
        assert _run([]) == 0
        assert "usage: vandelay" in capsys.readouterr().out

    def test_error_exit(self, tmp_path: Path, capsys):
        """Failures exit with status 1 and the first cause on stderr."""
        missing = tmp_path / "missing.json"

        code = _run(["import", "-q", "--source-file", str(missing), "--dest-url", DEST_URL])

        assert code == 1
        err = capsys.readouterr().err
        assert "Error: File error on" in err
        assert "missing.json" in err

    def test_file_to_file_rejected(self, tmp_path: Path, capsys):
        """A URL is required on one side."""
        code = _run(
            ["import", "-q", "--source-file", str(tmp_path / "a.json"), "--dest-url", "b.json"]
        )

        assert code == 1
        assert "not supported" in capsys.readouterr().err

    def test_export_then_import(
        self,
        fake_endpoints,
        source_endpoint: InMemoryEndpoint,
        dest_endpoint: InMemoryEndpoint,
        tmp_path: Path,
        capsys,
    ):
        """export then import moves a collection through a file."""
        source_endpoint.add_collection(
            "events", {"1": {"msg": "a"}, "2": {"msg": "b"}}, mappings=MAPPINGS
        )
        data_path = tmp_path / "events.json.gz"

        assert (
            _run(
                [
                    "export",
                    "-q",
                    "--source-url",
                    SOURCE_URL,
                    "--source-index",
                    "events",
                    "--dest-file",
                    str(data_path),
                ]
            )
            == 0
        )
        assert json.loads((tmp_path / "events-mapping.json").read_text()) == {
            "events": {"mappings": MAPPINGS}
        }

        assert (
            _run(
                [
                    "import",
                    "-q",
                    "--source-file",
                    str(data_path),
                    "--dest-url",
                    DEST_URL,
                    "--dest-index",
                    "events2",
                ]
            )
            == 0
        )

        assert dest_endpoint.documents("events2") == {"1": {"msg": "a"}, "2": {"msg": "b"}}
        assert "Transferred 2 documents" in capsys.readouterr().err

    def test_copy(
        self,
        fake_endpoints,
        source_endpoint: InMemoryEndpoint,
        dest_endpoint: InMemoryEndpoint,
    ):
        """copy moves a collection between endpoints."""
        source_endpoint.add_collection("events", {"1": {"msg": "a"}}, mappings=MAPPINGS)

        code = _run(
            [
                "copy",
                "-q",
                "--source-url",
                SOURCE_URL,
                "--source-index",
                "events",
                "--dest-url",
                DEST_URL,
            ]
        )

        assert code == 0
        assert dest_endpoint.documents("events") == {"1": {"msg": "a"}}
