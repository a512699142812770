"""Progress counters and reporting sinks.

The pipeline only knows that progress is reported, not how it is rendered.
Counters are mutated by the consumer task alone and read by the renderer.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import IO, Protocol, runtime_checkable

from tqdm import tqdm


@runtime_checkable
class ProgressSink(Protocol):
    """Receives progress increments."""

    def start(self, total: int | None) -> None:
        """Begin reporting with an optional expected total."""
        ...

    def add(self, n: int) -> None:
        """Advance by ``n`` units."""
        ...

    def finish(self) -> None:
        """Stop reporting."""
        ...


class NullProgress:
    """Progress sink that discards everything."""

    def start(self, total: int | None) -> None:
        pass

    def add(self, n: int) -> None:
        pass

    def finish(self) -> None:
        pass


class TqdmProgress:
    """Render progress as a tqdm bar on stderr."""

    def __init__(self, stream: IO[str] | None = None, description: str = "transfer") -> None:
        self._stream = stream or sys.stderr
        self._description = description
        self._bar: tqdm | None = None

    def start(self, total: int | None) -> None:
        self._bar = tqdm(
            total=total,
            desc=self._description,
            file=self._stream,
            unit="doc",
            dynamic_ncols=True,
        )

    def add(self, n: int) -> None:
        if self._bar is not None:
            self._bar.update(n)

    def finish(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


@dataclass
class Progress:
    """Transfer counters.

    Attributes:
        items_expected: Best-effort expected document count; None if unknown.
        items_done: Documents written, less those the destination refused.
        bytes_done: Payload bytes written.
        skipped: Records logged and skipped.
        sink: Renderer receiving increments.
    """

    items_expected: int | None = None
    items_done: int = 0
    bytes_done: int = 0
    skipped: int = 0
    sink: ProgressSink = field(default_factory=NullProgress)

    def start(self) -> None:
        """Start the renderer with the expected total."""
        self.sink.start(self.items_expected)

    def advance(self, nbytes: int) -> None:
        """Record one processed document of ``nbytes`` bytes."""
        self.items_done += 1
        self.bytes_done += nbytes
        self.sink.add(1)

    def skip(self) -> None:
        """Record one skipped record."""
        self.skipped += 1

    def retract(self, n: int) -> None:
        """Move ``n`` documents the destination refused from done to skipped.

        Their bytes stay counted; they were sent.
        """
        self.items_done -= n
        self.skipped += n

    def finish(self) -> None:
        """Stop the renderer."""
        self.sink.finish()
