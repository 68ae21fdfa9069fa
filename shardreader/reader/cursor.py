"""Lazy per-partition record puller.

A ``PartitionCursor`` owns the read position of one partition. It fetches a
batch from the client only when its buffer is empty and hands records out
one at a time. The position moves past a record only when that record is
returned, so a checkpoint never claims a record the host has not seen. A
symbolic LATEST position is pinned to a concrete one before the first fetch.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from shardreader.reader.checkpoint import PartitionCheckpoint
from shardreader.source.positions import Position, PositionKind, StartingPoint

if TYPE_CHECKING:
    from shardreader.source.client import StreamClient
    from shardreader.source.records import Record

logger = logging.getLogger(__name__)


class PartitionCursor:
    """Reads one partition of a stream through a :class:`StreamClient`.

    Args:
        client: Backend to fetch from.
        partition_id: Partition this cursor reads.
        position: Where reading starts.
        fetch_limit: Maximum records requested per fetch.

    Raises:
        ValueError: If fetch_limit < 1.
    """

    def __init__(
        self,
        client: StreamClient,
        partition_id: str,
        position: Position,
        fetch_limit: int = 1000,
    ):
        if fetch_limit < 1:
            raise ValueError(f"fetch_limit must be >= 1, got {fetch_limit}")
        self._client = client
        self._partition_id = partition_id
        self._position = position
        self._fetch_limit = fetch_limit
        self._buffer: deque[Record] = deque()
        self._millis_behind_latest: int | None = None
        self._closed = False

    @classmethod
    def from_checkpoint(
        cls, client: StreamClient, checkpoint: PartitionCheckpoint, fetch_limit: int = 1000
    ) -> PartitionCursor:
        return cls(client, checkpoint.partition_id, checkpoint.position, fetch_limit)

    @property
    def partition_id(self) -> str:
        return self._partition_id

    @property
    def millis_behind_latest(self) -> int | None:
        """Lag reported with the most recent successful fetch."""
        return self._millis_behind_latest

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def buffered(self) -> int:
        """Records fetched but not yet handed out."""
        return len(self._buffer)

    def current_position(self) -> Position:
        return self._position

    def checkpoint(self) -> PartitionCheckpoint:
        return PartitionCheckpoint(self._partition_id, self._position)

    def next(self) -> Record | None:
        """Return the next record, or None if nothing is available now.

        Raises:
            TransientError: The fetch failed but may succeed later. Position
                and buffer are unchanged.
            PermanentError: The partition can no longer be read.
        """
        if not self._buffer:
            self._fill_buffer()
        if not self._buffer:
            return None

        record = self._buffer.popleft()
        self._position = Position.after(record)
        return record

    def close(self) -> None:
        self._buffer.clear()
        self._closed = True

    def _fill_buffer(self) -> None:
        if self._position.kind is PositionKind.LATEST:
            # LATEST is relative to the fetch; pin it once so later appends are read.
            self._position = self._client.resolve_position(self._partition_id, StartingPoint.latest())
            logger.debug("Pinned LATEST on partition %s to %s", self._partition_id, self._position)

        batch = self._client.fetch_records(self._partition_id, self._position, self._fetch_limit)
        self._millis_behind_latest = batch.millis_behind_latest

        fresh = [r for r in batch.records if not self._position.is_before_or_at(r)]
        dropped = len(batch.records) - len(fresh)
        if dropped:
            logger.debug(
                "Dropped %d already-consumed record(s) from partition %s at %s",
                dropped, self._partition_id, self._position,
            )
        self._buffer.extend(fresh)

    def __repr__(self) -> str:
        return f"PartitionCursor({self._partition_id!r}, {self._position})"
