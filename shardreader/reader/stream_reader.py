"""Single-threaded pull reader over every partition of a stream.

The host engine drives the reader: ``start()`` once, then ``advance()``
repeatedly, reading the record it just produced with ``current()`` and
asking for ``watermark()`` and ``checkpoint()`` in between. ``advance()``
returning False is not an error; it means no partition has a record right
now and the host should poll again later.

Partitions are scheduled with a locality-favoring round robin: a partition
that yields keeps being read until it runs dry, then the next one is
probed. One ``advance()`` probes each partition at most once.

Example::

    from shardreader import (
        DynamicCheckpointGenerator, InMemoryStreamClient, StartingPoint, StreamReader,
    )

    client = InMemoryStreamClient(["shard-0", "shard-1"])
    reader = StreamReader(client, DynamicCheckpointGenerator(StartingPoint.trim_horizon()))

    available = reader.start()
    while available:
        handle(reader.current())
        available = reader.advance()
    saved = reader.checkpoint().to_json()
    reader.close()

The reader is not thread-safe and must be confined to one thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from shardreader.config import ReaderConfig
from shardreader.core.clock import Clock, SystemClock
from shardreader.core.temporal import Instant
from shardreader.errors import (
    NoCurrentRecordError,
    PermanentError,
    ReaderStartupError,
    ReaderStateError,
    StreamError,
    TransientError,
)
from shardreader.reader.checkpoint import Checkpoint, CheckpointGenerator
from shardreader.reader.cursor import PartitionCursor
from shardreader.reader.round_robin import RoundRobin

if TYPE_CHECKING:
    from shardreader.reader.watermark import WatermarkEstimator
    from shardreader.source.client import StreamClient
    from shardreader.source.records import Record

logger = logging.getLogger(__name__)


@runtime_checkable
class UnboundedReader(Protocol):
    """Pull contract a host engine uses to consume an unbounded source."""

    def start(self) -> bool: ...

    def advance(self) -> bool: ...

    def current(self) -> Record: ...

    def current_id(self) -> bytes: ...

    def current_timestamp(self) -> Instant: ...

    def watermark(self) -> Instant: ...

    def checkpoint(self) -> Checkpoint: ...

    def close(self) -> None: ...


class ReaderState(Enum):
    """Lifecycle of a StreamReader. CLOSED is terminal."""

    UNSTARTED = "unstarted"
    STARTED = "started"
    CLOSED = "closed"


class CurrentRecord:
    """Holds the most recently read record, or nothing.

    Use :attr:`EMPTY` for the empty slot and :meth:`holding` otherwise.
    """

    __slots__ = ("_record",)

    EMPTY: CurrentRecord

    def __init__(self, record: Record | None):
        self._record = record

    @classmethod
    def holding(cls, record: Record) -> CurrentRecord:
        return cls(record)

    @property
    def is_present(self) -> bool:
        return self._record is not None

    def get(self) -> Record:
        """Return the held record.

        Raises:
            NoCurrentRecordError: If the slot is empty.
        """
        if self._record is None:
            raise NoCurrentRecordError("no current record; advance() has not returned True yet")
        return self._record

    def __repr__(self) -> str:
        if self._record is None:
            return "CurrentRecord.EMPTY"
        return f"CurrentRecord.holding({self._record.partition_id}:{self._record.sequence})"


CurrentRecord.EMPTY = CurrentRecord(None)


@dataclass(frozen=True)
class ReaderStats:
    """Statistics tracked by StreamReader.

    Attributes:
        records_read: Total records returned by ``advance()``.
        empty_advances: Calls to ``advance()`` that found nothing.
        transient_failures: Transient fetch failures absorbed.
        per_partition_records: Records returned per partition.
        per_partition_failures: Transient failures per partition.
        millis_behind_latest: Lag reported by each partition's last fetch.
    """

    records_read: int = 0
    empty_advances: int = 0
    transient_failures: int = 0
    per_partition_records: dict[str, int] = field(default_factory=dict)
    per_partition_failures: dict[str, int] = field(default_factory=dict)
    millis_behind_latest: dict[str, int | None] = field(default_factory=dict)


class StreamReader:
    """Reads every partition of a stream through one pull cursor.

    Args:
        client: Stream backend.
        checkpoint_generator: Produces the starting position of every
            partition when the reader starts.
        config: Fetch and watermark settings. Defaults to ``ReaderConfig()``.
        clock: Processing-time source. Defaults to the system clock.
        estimator: Watermark estimator. Defaults to one built from *config*.
    """

    def __init__(
        self,
        client: StreamClient,
        checkpoint_generator: CheckpointGenerator,
        config: ReaderConfig | None = None,
        clock: Clock | None = None,
        estimator: WatermarkEstimator | None = None,
    ):
        self._client = client
        self._checkpoint_generator = checkpoint_generator
        self._config = config or ReaderConfig()
        self._clock = clock or SystemClock()
        self._estimator = estimator or self._config.build_estimator()

        self._state = ReaderState.UNSTARTED
        self._cursors: RoundRobin[PartitionCursor] = RoundRobin(())
        self._current = CurrentRecord.EMPTY
        self._watermark = Instant.MIN

        self._records_read = 0
        self._empty_advances = 0
        self._transient_failures = 0
        self._per_partition_records: dict[str, int] = {}
        self._per_partition_failures: dict[str, int] = {}

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def config(self) -> ReaderConfig:
        return self._config

    @property
    def partition_ids(self) -> list[str]:
        """Partitions being read, in scheduling order. Empty before start."""
        return [cursor.partition_id for cursor in self._cursors]

    @property
    def stats(self) -> ReaderStats:
        """Return a frozen snapshot of current statistics."""
        return ReaderStats(
            records_read=self._records_read,
            empty_advances=self._empty_advances,
            transient_failures=self._transient_failures,
            per_partition_records=dict(self._per_partition_records),
            per_partition_failures=dict(self._per_partition_failures),
            millis_behind_latest={c.partition_id: c.millis_behind_latest for c in self._cursors},
        )

    # -- lifecycle -------------------------------------------------------

    def start(self) -> bool:
        """Build one cursor per partition and try to read the first record.

        Returns:
            Whether a record is available through :meth:`current`.

        Raises:
            ReaderStartupError: The initial checkpoint could not be built.
            ReaderStateError: The reader was already started or closed.
        """
        if self._state is not ReaderState.UNSTARTED:
            raise ReaderStateError(
                f"start() requires an unstarted reader, reader is {self._state.value}"
            )

        logger.info("Starting reader using %r", self._checkpoint_generator)
        try:
            initial = self._checkpoint_generator.generate(self._client)
        except StreamError as e:
            logger.error("Failed to generate initial checkpoint: %s", e)
            raise ReaderStartupError(f"could not generate initial checkpoint: {e}") from e

        self._cursors = RoundRobin(
            PartitionCursor.from_checkpoint(self._client, partition, self._config.fetch_limit)
            for partition in initial
        )
        for cursor in self._cursors:
            self._per_partition_records.setdefault(cursor.partition_id, 0)
            self._per_partition_failures.setdefault(cursor.partition_id, 0)
        self._state = ReaderState.STARTED
        logger.info("Reader started with %d partition(s)", len(self._cursors))

        return self.advance()

    def advance(self) -> bool:
        """Move to the next available record.

        Probes each partition at most once, starting with the one that
        yielded last. A transient failure on a partition is logged and that
        partition is skipped for this call.

        Returns:
            True if a new record is available through :meth:`current`,
            False if no partition has one right now. After False the
            previous record is no longer current.

        Raises:
            PermanentError: A partition can no longer be read.
            ReaderStateError: The reader is not started.
        """
        self._require_started("advance")
        self._current = CurrentRecord.EMPTY

        for _ in range(len(self._cursors)):
            cursor = self._cursors.current()
            try:
                record = cursor.next()
            except TransientError as e:
                self._transient_failures += 1
                self._per_partition_failures[cursor.partition_id] += 1
                logger.warning(
                    "Transient failure reading partition %s at %s: %s",
                    cursor.partition_id, cursor.current_position(), e,
                    extra={"partition_id": cursor.partition_id, "position": cursor.current_position()},
                )
                self._cursors.rotate()
                continue
            except PermanentError as e:
                logger.error(
                    "Permanent failure reading partition %s: %s", cursor.partition_id, e,
                    extra={"partition_id": cursor.partition_id},
                )
                raise

            if record is not None:
                self._current = CurrentRecord.holding(record)
                self._records_read += 1
                self._per_partition_records[cursor.partition_id] += 1
                self._estimator.add(self._clock.now().to_millis(), record.event_time.to_millis())
                return True

            logger.debug("Partition %s has nothing available", cursor.partition_id)
            self._cursors.rotate()

        self._empty_advances += 1
        return False

    def close(self) -> None:
        """Release every cursor. Safe to call more than once."""
        if self._state is ReaderState.CLOSED:
            return
        for cursor in self._cursors:
            cursor.close()
        self._state = ReaderState.CLOSED
        logger.info("Reader closed after %d record(s)", self._records_read)

    # -- current record --------------------------------------------------

    def current(self) -> Record:
        """The record produced by the last successful advance.

        Raises:
            NoCurrentRecordError: No record has been read yet.
        """
        return self._current.get()

    def current_id(self) -> bytes:
        return self._current.get().unique_id

    def current_timestamp(self) -> Instant:
        """Approximate arrival time of the current record.

        Not guaranteed to be accurate, so downstream windows may treat some
        records as late even when they were not.
        """
        return self._current.get().event_time

    # -- progress --------------------------------------------------------

    def watermark(self) -> Instant:
        """Estimated lower bound on the event time of records not yet read.

        Never decreases across calls.

        Raises:
            ReaderStateError: The reader is closed.
        """
        if self._state is ReaderState.CLOSED:
            raise ReaderStateError("watermark() called on a closed reader")

        now = self._clock.now()
        read_min = self._estimator.get(now.to_millis())
        if read_min is None:
            if now > self._watermark:
                self._watermark = now
        elif self._estimator.is_significant(now.to_millis()):
            min_read_time = Instant.from_millis(read_min)
            if min_read_time.is_after(self._watermark):
                self._watermark = min_read_time
        return self._watermark

    def checkpoint(self) -> Checkpoint:
        """Snapshot the position of every partition.

        Raises:
            ReaderStateError: The reader is not started.
        """
        self._require_started("checkpoint")
        return Checkpoint(cursor.checkpoint() for cursor in self._cursors)

    def _require_started(self, method: str) -> None:
        if self._state is not ReaderState.STARTED:
            raise ReaderStateError(
                f"{method}() requires a started reader, reader is {self._state.value}"
            )

    def __repr__(self) -> str:
        return f"StreamReader(state={self._state.value}, partitions={len(self._cursors)})"
