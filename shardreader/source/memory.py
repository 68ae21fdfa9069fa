"""In-memory partitioned stream.

Implements :class:`~shardreader.source.client.StreamClient` over a set of
append-only partitions held in memory. Records are routed to partitions by
an MD5 hash of their partition key, the way Kinesis-style services do, or
appended to a named partition directly. Failures can be injected per
partition to exercise the reader's error handling.

Example::

    from shardreader.core.temporal import Instant
    from shardreader.errors import TransientError
    from shardreader.source.memory import InMemoryStreamClient

    client = InMemoryStreamClient(["shard-0", "shard-1"])
    client.put("user-42", b"clicked")
    client.append("shard-1", b"direct", event_time=Instant.from_millis(150))

    # The next fetch from shard-1 raises once, then succeeds.
    client.fail_next("shard-1", TransientError("throttled"))
"""

from __future__ import annotations

import bisect
import hashlib
import logging
from collections import deque
from dataclasses import dataclass, field

from shardreader.core.clock import Clock, SystemClock
from shardreader.core.temporal import Instant
from shardreader.errors import PermanentError, StreamError
from shardreader.source.positions import Position, PositionKind, StartingPoint
from shardreader.source.records import Record, RecordBatch

logger = logging.getLogger(__name__)


@dataclass
class Partition:
    """Internal state of a single partition.

    Attributes:
        id: Partition identifier.
        records: Retained records in sequence order.
        next_sequence: Sequence number the next appended record receives.
        closed: Whether the partition has been removed from the stream.
    """

    id: str
    records: list[Record] = field(default_factory=list)
    next_sequence: int = 0
    closed: bool = False


@dataclass(frozen=True)
class InMemoryStreamStats:
    """Statistics tracked by InMemoryStreamClient.

    Attributes:
        records_appended: Total records appended across all partitions.
        records_fetched: Total records returned by fetch calls.
        records_trimmed: Total records removed by ``trim``.
        fetch_calls: Number of fetch calls, including failed ones.
        list_calls: Number of partition listings, including failed ones.
        failures_raised: Number of injected failures raised.
    """

    records_appended: int = 0
    records_fetched: int = 0
    records_trimmed: int = 0
    fetch_calls: int = 0
    list_calls: int = 0
    failures_raised: int = 0


class InMemoryStreamClient:
    """Append-only partitioned stream kept in memory.

    Args:
        partitions: Partition ids, or a count to generate ``shard-0`` ...
            ``shard-(n-1)``.
        clock: Source of arrival times for records appended without an
            explicit event time. Defaults to the system clock.

    Raises:
        ValueError: If no partitions are given or ids repeat.
    """

    def __init__(self, partitions: list[str] | int = 1, clock: Clock | None = None):
        if isinstance(partitions, int):
            if partitions < 1:
                raise ValueError(f"partitions must be >= 1, got {partitions}")
            partition_ids = [f"shard-{i}" for i in range(partitions)]
        else:
            partition_ids = list(partitions)
            if not partition_ids:
                raise ValueError("partitions must not be empty")
            if len(set(partition_ids)) != len(partition_ids):
                raise ValueError(f"partition ids must be unique, got {partition_ids}")

        self._clock = clock or SystemClock()
        self._partitions: dict[str, Partition] = {pid: Partition(id=pid) for pid in partition_ids}
        self._pending_failures: dict[str, deque[StreamError]] = {}
        self._listing_failures: deque[StreamError] = deque()

        self._records_appended = 0
        self._records_fetched = 0
        self._records_trimmed = 0
        self._fetch_calls = 0
        self._list_calls = 0
        self._failures_raised = 0

    @property
    def stats(self) -> InMemoryStreamStats:
        """Return a frozen snapshot of current statistics."""
        return InMemoryStreamStats(
            records_appended=self._records_appended,
            records_fetched=self._records_fetched,
            records_trimmed=self._records_trimmed,
            fetch_calls=self._fetch_calls,
            list_calls=self._list_calls,
            failures_raised=self._failures_raised,
        )

    @property
    def partition_ids(self) -> list[str]:
        return list(self._partitions)

    def records(self, partition_id: str) -> list[Record]:
        """Retained records of one partition."""
        return list(self._partition(partition_id).records)

    # -- producing -------------------------------------------------------

    def partition_for_key(self, partition_key: str) -> str:
        """Route a partition key to a partition id."""
        digest = hashlib.md5(partition_key.encode("utf-8")).digest()
        ids = list(self._partitions)
        return ids[int.from_bytes(digest, "big") % len(ids)]

    def put(self, partition_key: str, data: bytes, event_time: Instant | None = None) -> Record:
        """Append a record to the partition its key hashes to."""
        return self.append(
            self.partition_for_key(partition_key), data,
            event_time=event_time, partition_key=partition_key,
        )

    def append(
        self,
        partition_id: str,
        data: bytes,
        event_time: Instant | None = None,
        partition_key: str | None = None,
    ) -> Record:
        """Append a record to a specific partition.

        Args:
            partition_id: Target partition.
            data: Record payload.
            event_time: Arrival time to stamp on the record. Defaults to the
                client's clock.
            partition_key: Routing key to store with the record.

        Returns:
            The appended Record.
        """
        partition = self._partition(partition_id)
        if partition.closed:
            raise ValueError(f"partition {partition_id!r} is closed")

        record = Record(
            partition_id=partition_id,
            sequence=partition.next_sequence,
            event_time=event_time if event_time is not None else self._clock.now(),
            data=data,
            partition_key=partition_key,
        )
        partition.records.append(record)
        partition.next_sequence += 1
        self._records_appended += 1
        return record

    def trim(self, partition_id: str, before_sequence: int) -> int:
        """Drop records with a sequence below *before_sequence*.

        Models retention expiring the oldest records. Returns the number of
        records removed.
        """
        partition = self._partition(partition_id)
        keep_from = bisect.bisect_left([r.sequence for r in partition.records], before_sequence)
        partition.records = partition.records[keep_from:]
        self._records_trimmed += keep_from
        return keep_from

    # -- fault injection -------------------------------------------------

    def fail_next(self, partition_id: str, error: StreamError, times: int = 1) -> None:
        """Make the next *times* fetches from a partition raise *error*."""
        self._partition(partition_id)
        if times < 1:
            raise ValueError(f"times must be >= 1, got {times}")
        if error.partition_id is None:
            error.partition_id = partition_id
        self._pending_failures.setdefault(partition_id, deque()).extend([error] * times)

    def fail_listing(self, error: StreamError, times: int = 1) -> None:
        """Make the next *times* partition listings raise *error*."""
        if times < 1:
            raise ValueError(f"times must be >= 1, got {times}")
        self._listing_failures.extend([error] * times)

    def close_partition(self, partition_id: str) -> None:
        """Remove a partition; later fetches from it raise PermanentError."""
        self._partition(partition_id).closed = True

    # -- StreamClient ----------------------------------------------------

    def list_partitions(self) -> list[str]:
        self._list_calls += 1
        if self._listing_failures:
            self._failures_raised += 1
            raise self._listing_failures.popleft()
        return [p.id for p in self._partitions.values() if not p.closed]

    def resolve_position(self, partition_id: str, starting_point: StartingPoint) -> Position:
        partition = self._partition(partition_id)
        if starting_point.kind is PositionKind.TRIM_HORIZON:
            return Position.trim_horizon()
        if starting_point.kind is PositionKind.LATEST:
            return self._pin_latest(partition)

        for record in partition.records:
            if record.event_time >= starting_point.timestamp:
                return Position.at_sequence(record.sequence)
        return self._pin_latest(partition)

    def fetch_records(self, partition_id: str, position: Position, limit: int) -> RecordBatch:
        self._fetch_calls += 1
        pending = self._pending_failures.get(partition_id)
        if pending:
            self._failures_raised += 1
            error = pending.popleft()
            logger.debug("Injected %s on partition %s", type(error).__name__, partition_id)
            raise error

        partition = self._partitions.get(partition_id)
        if partition is None or partition.closed:
            raise PermanentError(f"partition {partition_id!r} does not exist", partition_id)
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        start = self._start_index(partition, position)
        selected = partition.records[start : start + limit]
        self._records_fetched += len(selected)

        behind = 0
        if selected:
            tip = partition.records[-1].event_time
            behind = max(0, (tip - selected[-1].event_time).to_millis())
        return RecordBatch(records=tuple(selected), millis_behind_latest=behind)

    # -- internals -------------------------------------------------------

    def _partition(self, partition_id: str) -> Partition:
        try:
            return self._partitions[partition_id]
        except KeyError:
            raise KeyError(f"unknown partition {partition_id!r}") from None

    @staticmethod
    def _pin_latest(partition: Partition) -> Position:
        if partition.next_sequence == 0:
            return Position.trim_horizon()
        return Position.after_sequence(partition.next_sequence - 1)

    @staticmethod
    def _start_index(partition: Partition, position: Position) -> int:
        records = partition.records
        kind = position.kind
        if kind is PositionKind.TRIM_HORIZON:
            return 0
        if kind is PositionKind.LATEST:
            return len(records)
        if kind is PositionKind.AT_TIMESTAMP:
            for index, record in enumerate(records):
                if record.event_time >= position.timestamp:
                    return index
            return len(records)

        sequences = [r.sequence for r in records]
        if kind is PositionKind.AT_SEQUENCE:
            return bisect.bisect_left(sequences, position.sequence)
        return bisect.bisect_right(sequences, position.sequence)
