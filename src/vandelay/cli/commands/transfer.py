"""Transfer commands for vandelay CLI."""

import asyncio
import sys
from pathlib import Path

from ...core.config import Config
from ...core.exceptions import InvalidJobError
from ...transfer.coordinator import TransferCoordinator, TransferResult
from ...transfer.job import (
    FileLocation,
    TimeFilter,
    TransferJob,
    parse_location,
)
from ...transfer.progress import NullProgress, TqdmProgress


def _add_common_arguments(parser) -> None:
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Do not draw a progress bar",
    )


def add_export_arguments(parser) -> None:
    """Add arguments for the export command.

    Args:
        parser: Argument parser for the command.
    """
    parser.add_argument("--source-url", required=True, help="Source endpoint URL")
    parser.add_argument("--source-index", required=True, help="Collection to export")
    parser.add_argument(
        "--dest-file",
        default="-",
        help="Output file, gzip-compressed if it ends in .gz (default: stdout)",
    )
    parser.add_argument(
        "--schema-file",
        help="Schema output file (default: derived from --dest-file)",
    )
    parser.add_argument("--time-field", help="Timestamp field to filter on")
    parser.add_argument(
        "--time-start",
        help="Export documents after this time, exclusive (YYYY.MM.DD HH:MM:SS)",
    )
    parser.add_argument(
        "--time-end",
        help="Export documents up to this time, inclusive (YYYY.MM.DD HH:MM:SS)",
    )
    _add_common_arguments(parser)


def add_import_arguments(parser) -> None:
    """Add arguments for the import command.

    Args:
        parser: Argument parser for the command.
    """
    parser.add_argument(
        "--source-file",
        default="-",
        help="Input file, gzip-compressed if it ends in .gz (default: stdin)",
    )
    parser.add_argument(
        "--schema-file",
        help="Schema input file (default: derived from --source-file)",
    )
    parser.add_argument("--dest-url", required=True, help="Destination endpoint URL")
    parser.add_argument(
        "--dest-index",
        help="Destination collection (default: the collection named in the data)",
    )
    _add_common_arguments(parser)


def add_copy_arguments(parser) -> None:
    """Add arguments for the copy command.

    Args:
        parser: Argument parser for the command.
    """
    parser.add_argument("--source-url", required=True, help="Source endpoint URL")
    parser.add_argument("--source-index", required=True, help="Collection to copy")
    parser.add_argument("--dest-url", required=True, help="Destination endpoint URL")
    parser.add_argument(
        "--dest-index",
        help="Destination collection (default: same as --source-index)",
    )
    _add_common_arguments(parser)


def build_time_filter(args) -> TimeFilter | None:
    """Build a time filter from --time-* arguments.

    Raises:
        InvalidJobError: If only some of the three arguments are given.
    """
    values = (args.time_field, args.time_start, args.time_end)
    if not any(values):
        return None
    if not all(values):
        raise InvalidJobError("--time-field, --time-start and --time-end must be used together")
    return TimeFilter(field=args.time_field, start=args.time_start, end=args.time_end)


def _file_location(value: str, schema_file: str | None) -> FileLocation:
    location = parse_location(value)
    if not isinstance(location, FileLocation):
        raise InvalidJobError(f"Expected a file path, got URL {value!r}")
    schema_path = Path(schema_file) if schema_file else None
    return FileLocation(path=location.path, schema_path=schema_path)


def handle_export(args, config: Config) -> None:
    """Export a remote collection to a file.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    job = TransferJob(
        source=parse_location(args.source_url, args.source_index),
        dest=_file_location(args.dest_file, args.schema_file),
        time_filter=build_time_filter(args),
    )
    _run(job, config, args.quiet)


def handle_import(args, config: Config) -> None:
    """Import a file into a remote collection.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    job = TransferJob(
        source=_file_location(args.source_file, args.schema_file),
        dest=parse_location(args.dest_url, args.dest_index),
    )
    _run(job, config, args.quiet)


def handle_copy(args, config: Config) -> None:
    """Copy a remote collection to another remote collection.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    job = TransferJob(
        source=parse_location(args.source_url, args.source_index),
        dest=parse_location(args.dest_url, args.dest_index),
    )
    _run(job, config, args.quiet)


def _run(job: TransferJob, config: Config, quiet: bool) -> TransferResult:
    progress = NullProgress() if quiet else TqdmProgress(description=job.mode.value)
    coordinator = TransferCoordinator(config, progress=progress)
    result = asyncio.run(coordinator.run(job))
    _print_result(result)
    return result


def _print_result(result: TransferResult) -> None:
    """Print a transfer summary to stderr (stdout may carry data)."""
    print(
        f"✓ Transferred {result.documents} documents "
        f"({result.bytes} bytes) in {result.elapsed_seconds:.1f}s",
        file=sys.stderr,
    )
    if result.skipped > 0:
        print(f"  Skipped {result.skipped} records", file=sys.stderr)
