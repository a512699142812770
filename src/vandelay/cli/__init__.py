"""Command-line interface for vandelay."""
