"""CLI entry point for vandelay."""

import argparse
import sys
from typing import NoReturn

from loguru import logger

from .. import __version__
from ..core.config import Config
from . import commands


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="vandelay",
        description="Vandelay - export and import search index collections as NDJSON",
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", help="TOML configuration file (default: $VANDELAY_CONFIG)")

    subparsers = parser.add_subparsers(dest="command", required=False)

    export_parser = subparsers.add_parser(
        "export", help="Export a remote collection to a file"
    )
    commands.add_export_arguments(export_parser)

    import_parser = subparsers.add_parser(
        "import", help="Import a file into a new remote collection"
    )
    commands.add_import_arguments(import_parser)

    copy_parser = subparsers.add_parser(
        "copy", help="Copy a remote collection to a new remote collection"
    )
    commands.add_copy_arguments(copy_parser)

    return parser


def configure_logging(debug: bool) -> None:
    """Send log records to stderr, keeping stdout free for data."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO")


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = Config.from_env_or_file(args.config)
        config.debug = config.debug or args.debug
        configure_logging(config.debug)

        if args.command == "export":
            commands.handle_export(args, config)
        elif args.command == "import":
            commands.handle_import(args, config)
        elif args.command == "copy":
            commands.handle_copy(args, config)
        else:
            parser.print_help()

        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
