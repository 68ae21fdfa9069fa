"""Records and record batches returned by stream clients."""

from __future__ import annotations

from dataclasses import dataclass, field

from shardreader.core.temporal import Instant


@dataclass(frozen=True)
class Record:
    """An immutable record read from one partition.

    Attributes:
        partition_id: Partition this record belongs to.
        sequence: Partition-local sequence number. Strictly increasing
            within a partition; not comparable across partitions.
        event_time: Approximate time the record entered the stream. Not
            authoritative, so records may appear late to downstream windows.
        data: The record payload.
        partition_key: Key the producer used to route the record, if known.
    """

    partition_id: str
    sequence: int
    event_time: Instant
    data: bytes = b""
    partition_key: str | None = None

    @property
    def unique_id(self) -> bytes:
        """Stable identifier, unique across every partition of a stream."""
        return f"{self.partition_id}:{self.sequence}".encode("utf-8")


@dataclass(frozen=True)
class RecordBatch:
    """Result of one fetch call.

    An empty batch means nothing is available at the requested position
    right now; the partition is not necessarily exhausted.

    Attributes:
        records: Records in sequence order.
        millis_behind_latest: How far the last returned record is behind
            the tip of the partition, when the backend reports it.
    """

    records: tuple[Record, ...] = field(default_factory=tuple)
    millis_behind_latest: int | None = None

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records
