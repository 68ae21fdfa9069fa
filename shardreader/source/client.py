"""Contract between the reader and a stream backend.

The reader never talks to a network service directly. Anything that can list
the partitions of a stream, resolve a starting point and fetch records at a
position can back it: a Kinesis-style service client, a Kafka adapter, or
the bundled :class:`~shardreader.source.memory.InMemoryStreamClient`.

Failures must be reported by raising :class:`~shardreader.errors.TransientError`
(retry-safe) or :class:`~shardreader.errors.PermanentError` (fatal). Any other
exception is treated as a bug in the client and propagates unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from shardreader.source.positions import Position, StartingPoint
    from shardreader.source.records import RecordBatch


@runtime_checkable
class StreamClient(Protocol):
    """Protocol for stream backends."""

    def list_partitions(self) -> list[str]:
        """Return the ids of every partition of the stream, in a stable order.

        Raises:
            TransientError: The listing may succeed if retried.
            PermanentError: The stream cannot be listed.
        """
        ...

    def resolve_position(self, partition_id: str, starting_point: StartingPoint) -> Position:
        """Translate a starting point into a position for one partition.

        Backends that can pin LATEST or AT_TIMESTAMP to a concrete sequence
        should do so, so that a checkpoint taken before any record is read
        resumes at the same place.
        """
        ...

    def fetch_records(self, partition_id: str, position: Position, limit: int) -> RecordBatch:
        """Fetch up to *limit* records starting at *position*.

        Returns:
            A batch in sequence order; empty when nothing is available now.

        Raises:
            TransientError: Throttling, timeout or temporary unavailability.
            PermanentError: Authorization failure or the partition is gone.
        """
        ...
