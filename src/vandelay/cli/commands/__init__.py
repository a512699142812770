"""Command implementations for vandelay CLI."""

from .transfer import (
    add_copy_arguments,
    add_export_arguments,
    add_import_arguments,
    build_time_filter,
    handle_copy,
    handle_export,
    handle_import,
)

__all__ = [
    "add_export_arguments",
    "add_import_arguments",
    "add_copy_arguments",
    "build_time_filter",
    "handle_export",
    "handle_import",
    "handle_copy",
]
