"""Points in time and spans of time with nanosecond resolution.

``Instant`` and ``Duration`` are integer-nanosecond values so that event
times from different partitions compare exactly. Stream backends usually
report timestamps in milliseconds since the Unix epoch; ``from_millis`` and
``to_millis`` convert at that boundary.

Example::

    from shardreader.core.temporal import Duration, Instant

    t = Instant.from_millis(1_700_000_000_000)
    later = t + Duration.from_seconds(5)
    assert (later - t) == Duration.from_seconds(5)
"""

from __future__ import annotations

from typing import Union

_NANOS_PER_SECOND = 1_000_000_000
_NANOS_PER_MILLI = 1_000_000


def _seconds_to_nanos(seconds: int | float) -> int:
    if isinstance(seconds, int):
        return seconds * _NANOS_PER_SECOND
    return int(round(seconds * _NANOS_PER_SECOND))


class Duration:
    """A signed span of time in nanoseconds."""

    __slots__ = ("nanoseconds",)

    ZERO: Duration

    def __init__(self, nanoseconds: int):
        self.nanoseconds = int(nanoseconds)

    @classmethod
    def from_seconds(cls, seconds: int | float) -> Duration:
        return cls(_seconds_to_nanos(seconds))

    @classmethod
    def from_millis(cls, millis: int) -> Duration:
        return cls(int(millis) * _NANOS_PER_MILLI)

    def to_seconds(self) -> float:
        return self.nanoseconds / _NANOS_PER_SECOND

    def to_millis(self) -> int:
        return self.nanoseconds // _NANOS_PER_MILLI

    def __add__(self, other: Union[Duration, Instant]):
        if isinstance(other, Duration):
            return Duration(self.nanoseconds + other.nanoseconds)
        if isinstance(other, Instant):
            return Instant(self.nanoseconds + other.nanoseconds)
        return NotImplemented

    __radd__ = __add__

    def __sub__(self, other: Duration) -> Duration:
        if isinstance(other, Duration):
            return Duration(self.nanoseconds - other.nanoseconds)
        return NotImplemented

    def __neg__(self) -> Duration:
        return Duration(-self.nanoseconds)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Duration):
            return NotImplemented
        return self.nanoseconds == other.nanoseconds

    def __lt__(self, other: Duration) -> bool:
        if not isinstance(other, Duration):
            return NotImplemented
        return self.nanoseconds < other.nanoseconds

    def __le__(self, other: Duration) -> bool:
        if not isinstance(other, Duration):
            return NotImplemented
        return self.nanoseconds <= other.nanoseconds

    def __gt__(self, other: Duration) -> bool:
        if not isinstance(other, Duration):
            return NotImplemented
        return self.nanoseconds > other.nanoseconds

    def __ge__(self, other: Duration) -> bool:
        if not isinstance(other, Duration):
            return NotImplemented
        return self.nanoseconds >= other.nanoseconds

    def __hash__(self) -> int:
        return hash(("Duration", self.nanoseconds))

    def __repr__(self) -> str:
        return f"Duration({self.to_seconds()}s)"


class Instant:
    """A point in time, in nanoseconds since the Unix epoch."""

    __slots__ = ("nanoseconds",)

    Epoch: Instant
    MIN: Instant

    def __init__(self, nanoseconds: int):
        self.nanoseconds = int(nanoseconds)

    @classmethod
    def from_seconds(cls, seconds: int | float) -> Instant:
        return cls(_seconds_to_nanos(seconds))

    @classmethod
    def from_millis(cls, millis: int) -> Instant:
        return cls(int(millis) * _NANOS_PER_MILLI)

    def to_seconds(self) -> float:
        return self.nanoseconds / _NANOS_PER_SECOND

    def to_millis(self) -> int:
        """Milliseconds since the epoch, rounded toward negative infinity."""
        return self.nanoseconds // _NANOS_PER_MILLI

    def is_after(self, other: Instant) -> bool:
        return self.nanoseconds > other.nanoseconds

    def is_before(self, other: Instant) -> bool:
        return self.nanoseconds < other.nanoseconds

    def __add__(self, other: Union[Duration, int, float]) -> Instant:
        if isinstance(other, Duration):
            return Instant(self.nanoseconds + other.nanoseconds)
        if isinstance(other, (int, float)):
            return Instant(self.nanoseconds + _seconds_to_nanos(other))
        return NotImplemented

    def __sub__(self, other: Union[Instant, Duration, int, float]):
        if isinstance(other, Instant):
            return Duration(self.nanoseconds - other.nanoseconds)
        if isinstance(other, Duration):
            return Instant(self.nanoseconds - other.nanoseconds)
        if isinstance(other, (int, float)):
            return Instant(self.nanoseconds - _seconds_to_nanos(other))
        return NotImplemented

    def __eq__(self, other) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self.nanoseconds == other.nanoseconds

    def __lt__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self.nanoseconds < other.nanoseconds

    def __le__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self.nanoseconds <= other.nanoseconds

    def __gt__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self.nanoseconds > other.nanoseconds

    def __ge__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self.nanoseconds >= other.nanoseconds

    def __hash__(self) -> int:
        return hash(("Instant", self.nanoseconds))

    def __repr__(self) -> str:
        if self is Instant.MIN or self.nanoseconds == Instant.MIN.nanoseconds:
            return "Instant(MIN)"
        return f"Instant({self.to_seconds()}s)"


Duration.ZERO = Duration(0)
Instant.Epoch = Instant(0)
# Lower bound used before any watermark has been observed.
Instant.MIN = Instant(-(2**63))
