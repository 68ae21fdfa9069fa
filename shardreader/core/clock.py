"""Processing-time clocks.

The reader samples "now" when it records a fetched record and when it
answers a watermark query. ``SystemClock`` reads wall time; ``ManualClock``
is driven explicitly and makes watermark behavior reproducible in tests and
replays.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

from shardreader.core.temporal import Duration, Instant


@runtime_checkable
class Clock(Protocol):
    """Protocol for processing-time sources."""

    def now(self) -> Instant:
        """Return the current processing time."""
        ...


class SystemClock:
    """Wall-clock time from the operating system."""

    def now(self) -> Instant:
        return Instant(time.time_ns())

    def __repr__(self) -> str:
        return "SystemClock()"


class ManualClock:
    """A clock that only moves when told to.

    Args:
        start_time: Initial reading. Defaults to the epoch.
    """

    def __init__(self, start_time: Instant | None = None):
        self._current_time = start_time if start_time is not None else Instant.Epoch

    def now(self) -> Instant:
        return self._current_time

    def set(self, time: Instant) -> None:
        self._current_time = time

    def advance(self, delta: Duration | int | float) -> Instant:
        """Move the clock forward and return the new reading.

        Args:
            delta: A Duration, or a number of seconds.
        """
        if isinstance(delta, Duration):
            self._current_time = self._current_time + delta
        else:
            self._current_time = self._current_time + Duration.from_seconds(delta)
        return self._current_time

    def __repr__(self) -> str:
        return f"ManualClock({self._current_time!r})"
