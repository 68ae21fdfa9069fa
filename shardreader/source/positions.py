"""Per-partition read positions and stream starting points.

A ``Position`` says where in one partition the next read begins. It is
immutable and serializes to a short string marker so checkpoints can be
persisted by the host::

    Position.after_sequence(41).marker        # "AFTER_SEQUENCE:41"
    Position.parse("TRIM_HORIZON")            # Position(TRIM_HORIZON)

A ``StartingPoint`` describes where freshly discovered partitions begin when
there is no checkpoint to resume from. The client resolves it to a concrete
``Position`` per partition.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from shardreader.core.temporal import Instant

if TYPE_CHECKING:
    from shardreader.source.records import Record


class PositionKind(Enum):
    """How a position locates the next record in a partition."""

    TRIM_HORIZON = "TRIM_HORIZON"
    LATEST = "LATEST"
    AT_SEQUENCE = "AT_SEQUENCE"
    AFTER_SEQUENCE = "AFTER_SEQUENCE"
    AT_TIMESTAMP = "AT_TIMESTAMP"


_SEQUENCE_KINDS = (PositionKind.AT_SEQUENCE, PositionKind.AFTER_SEQUENCE)


@dataclass(frozen=True)
class Position:
    """Opaque marker of where reading continues in one partition.

    Use the named constructors rather than building instances directly.

    Attributes:
        kind: How the position is interpreted.
        sequence: Sequence number for AT_SEQUENCE / AFTER_SEQUENCE.
        timestamp: Arrival time for AT_TIMESTAMP.
    """

    kind: PositionKind
    sequence: int | None = None
    timestamp: Instant | None = None

    def __post_init__(self):
        if self.kind in _SEQUENCE_KINDS:
            if self.sequence is None:
                raise ValueError(f"{self.kind.value} requires a sequence number")
            if self.timestamp is not None:
                raise ValueError(f"{self.kind.value} does not take a timestamp")
        elif self.kind is PositionKind.AT_TIMESTAMP:
            if self.timestamp is None:
                raise ValueError("AT_TIMESTAMP requires a timestamp")
            if self.sequence is not None:
                raise ValueError("AT_TIMESTAMP does not take a sequence number")
        elif self.sequence is not None or self.timestamp is not None:
            raise ValueError(f"{self.kind.value} takes no arguments")

    @classmethod
    def trim_horizon(cls) -> Position:
        return cls(PositionKind.TRIM_HORIZON)

    @classmethod
    def latest(cls) -> Position:
        return cls(PositionKind.LATEST)

    @classmethod
    def at_sequence(cls, sequence: int) -> Position:
        return cls(PositionKind.AT_SEQUENCE, sequence=sequence)

    @classmethod
    def after_sequence(cls, sequence: int) -> Position:
        return cls(PositionKind.AFTER_SEQUENCE, sequence=sequence)

    @classmethod
    def at_timestamp(cls, timestamp: Instant) -> Position:
        return cls(PositionKind.AT_TIMESTAMP, timestamp=timestamp)

    @classmethod
    def after(cls, record: Record) -> Position:
        """Position immediately following *record*."""
        return cls.after_sequence(record.sequence)

    def is_before_or_at(self, record: Record) -> bool:
        """Whether *record* lies before this position.

        Backends may return records the reader has already consumed (for
        example when resuming from a sequence position they round down).
        Such records are dropped rather than emitted twice.
        """
        if self.kind is PositionKind.AT_SEQUENCE:
            return record.sequence < self.sequence
        if self.kind is PositionKind.AFTER_SEQUENCE:
            return record.sequence <= self.sequence
        return False

    @property
    def marker(self) -> str:
        """String form used in persisted checkpoints."""
        if self.kind in _SEQUENCE_KINDS:
            return f"{self.kind.value}:{self.sequence}"
        if self.kind is PositionKind.AT_TIMESTAMP:
            return f"{self.kind.value}:{self.timestamp.to_millis()}"
        return self.kind.value

    @classmethod
    def parse(cls, marker: str) -> Position:
        """Inverse of :attr:`marker`.

        Raises:
            ValueError: If the marker is malformed.
        """
        name, sep, argument = marker.partition(":")
        try:
            kind = PositionKind(name)
        except ValueError:
            raise ValueError(f"unknown position kind in marker {marker!r}") from None

        if kind in _SEQUENCE_KINDS or kind is PositionKind.AT_TIMESTAMP:
            if not sep or not argument:
                raise ValueError(f"position marker {marker!r} is missing its argument")
            try:
                value = int(argument)
            except ValueError:
                raise ValueError(f"position marker {marker!r} has a non-integer argument") from None
            if kind is PositionKind.AT_TIMESTAMP:
                return cls.at_timestamp(Instant.from_millis(value))
            return cls(kind, sequence=value)

        if sep:
            raise ValueError(f"position marker {marker!r} takes no argument")
        return cls(kind)

    def __str__(self) -> str:
        return self.marker


@dataclass(frozen=True)
class StartingPoint:
    """Where partitions without a checkpoint start reading.

    Attributes:
        kind: LATEST, TRIM_HORIZON or AT_TIMESTAMP.
        timestamp: Required for AT_TIMESTAMP.
    """

    kind: PositionKind
    timestamp: Instant | None = None

    def __post_init__(self):
        if self.kind in _SEQUENCE_KINDS:
            raise ValueError(f"starting point cannot be {self.kind.value}")
        if (self.kind is PositionKind.AT_TIMESTAMP) != (self.timestamp is not None):
            raise ValueError("timestamp is required for AT_TIMESTAMP and only for it")

    @classmethod
    def latest(cls) -> StartingPoint:
        return cls(PositionKind.LATEST)

    @classmethod
    def trim_horizon(cls) -> StartingPoint:
        return cls(PositionKind.TRIM_HORIZON)

    @classmethod
    def at_timestamp(cls, timestamp: Instant) -> StartingPoint:
        return cls(PositionKind.AT_TIMESTAMP, timestamp=timestamp)

    def to_position(self) -> Position:
        """The symbolic position this starting point denotes."""
        return Position(self.kind, timestamp=self.timestamp)
