"""Configuration management for vandelay."""

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any


def _default_workers() -> int:
    """Bulk submission workers default to the number of CPUs."""
    return os.cpu_count() or 4


@dataclass
class ElasticConfig:
    """Remote search endpoint configuration."""

    timeout: float = 60.0
    # Documents per scroll page
    page_size: int = 10000
    scroll_keepalive: str = "1m"
    verify_tls: bool = True
    user_agent: str = "vandelay/1.0 (Index Transfer)"


@dataclass
class BulkConfig:
    """Bulk upsert batching configuration."""

    workers: int = field(default_factory=_default_workers)
    max_actions: int = 1000
    max_bytes: int = 5 * 1024 * 1024  # 5MB per request


def _apply_section(target: Any, values: dict[str, Any]) -> None:
    """Copy known keys from a TOML table onto a dataclass instance."""
    known = {f.name for f in fields(target)}
    for key, value in values.items():
        if key in known:
            setattr(target, key, value)


@dataclass
class Config:
    """Main application configuration."""

    elastic: ElasticConfig = field(default_factory=ElasticConfig)
    bulk: BulkConfig = field(default_factory=BulkConfig)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        config = cls()
        config._apply_env()
        return config

    @classmethod
    def from_file(cls, path: Path | str) -> "Config":
        """Load configuration from a TOML file, then apply env overrides.

        Args:
            path: Path to a TOML file with optional [elastic] and [bulk] tables.

        Returns:
            Config with TOML values, overridden by environment variables.
        """
        with Path(path).open("rb") as f:
            data = tomllib.load(f)

        config = cls()
        if "debug" in data:
            config.debug = bool(data["debug"])
        _apply_section(config.elastic, data.get("elastic", {}))
        _apply_section(config.bulk, data.get("bulk", {}))

        config._apply_env()
        return config

    @classmethod
    def from_env_or_file(cls, path: Path | str | None = None) -> "Config":
        """Load from an explicit path, VANDELAY_CONFIG, or the environment."""
        path = path or os.environ.get("VANDELAY_CONFIG")
        if path:
            return cls.from_file(path)
        return cls.from_env()

    def _apply_env(self) -> None:
        """Override values from VANDELAY_* environment variables."""
        if timeout := os.environ.get("VANDELAY_TIMEOUT"):
            self.elastic.timeout = float(timeout)
        if page_size := os.environ.get("VANDELAY_PAGE_SIZE"):
            self.elastic.page_size = int(page_size)
        if keepalive := os.environ.get("VANDELAY_SCROLL_KEEPALIVE"):
            self.elastic.scroll_keepalive = keepalive
        if verify := os.environ.get("VANDELAY_VERIFY_TLS"):
            self.elastic.verify_tls = verify.lower() not in ("0", "false", "no")

        if workers := os.environ.get("VANDELAY_BULK_WORKERS"):
            self.bulk.workers = int(workers)
        if actions := os.environ.get("VANDELAY_BULK_ACTIONS"):
            self.bulk.max_actions = int(actions)
        if max_bytes := os.environ.get("VANDELAY_BULK_BYTES"):
            self.bulk.max_bytes = int(max_bytes)

        if debug := os.environ.get("VANDELAY_DEBUG"):
            self.debug = debug.lower() in ("1", "true", "yes")
