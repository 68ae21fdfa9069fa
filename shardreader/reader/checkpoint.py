"""Checkpoints and the generators that produce a reader's starting set.

A :class:`Checkpoint` is an ordered, immutable snapshot of one position per
partition. The reader takes one on every host request; the host persists it
(``to_json``) and hands it back on restart through
:class:`StaticCheckpointGenerator`. A fresh reader with no saved state uses
:class:`DynamicCheckpointGenerator`, which lists the stream's partitions
and resolves a :class:`StartingPoint` for each.

Persisted layout::

    [
        {"partition_id": "shard-0", "position": "AFTER_SEQUENCE:41"},
        {"partition_id": "shard-1", "position": "TRIM_HORIZON"}
    ]
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from shardreader.source.positions import Position, StartingPoint

if TYPE_CHECKING:
    from shardreader.source.client import StreamClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionCheckpoint:
    """Read position of a single partition.

    Attributes:
        partition_id: Partition identifier.
        position: Where reading continues.
    """

    partition_id: str
    position: Position

    def to_dict(self) -> dict[str, str]:
        return {"partition_id": self.partition_id, "position": self.position.marker}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PartitionCheckpoint:
        try:
            partition_id = data["partition_id"]
            marker = data["position"]
        except (KeyError, TypeError):
            raise ValueError(f"malformed partition checkpoint: {data!r}") from None
        if not isinstance(partition_id, str) or not isinstance(marker, str):
            raise ValueError(f"malformed partition checkpoint: {data!r}")
        return cls(partition_id, Position.parse(marker))


class Checkpoint:
    """Ordered set of partition positions.

    Args:
        partitions: One entry per partition, in reader order.

    Raises:
        ValueError: If a partition id appears twice.
    """

    __slots__ = ("_partitions",)

    def __init__(self, partitions: Iterable[PartitionCheckpoint] = ()):
        self._partitions: tuple[PartitionCheckpoint, ...] = tuple(partitions)
        ids = [p.partition_id for p in self._partitions]
        if len(set(ids)) != len(ids):
            raise ValueError(f"partition ids must be unique, got {ids}")

    @property
    def partitions(self) -> tuple[PartitionCheckpoint, ...]:
        return self._partitions

    @property
    def partition_ids(self) -> list[str]:
        return [p.partition_id for p in self._partitions]

    def position_of(self, partition_id: str) -> Position:
        for p in self._partitions:
            if p.partition_id == partition_id:
                return p.position
        raise KeyError(partition_id)

    def split_into(self, count: int) -> list[Checkpoint]:
        """Spread partitions round-robin over at most *count* checkpoints.

        Used to divide one stream among several readers. Never returns an
        empty checkpoint: with fewer partitions than *count*, each gets one.

        Raises:
            ValueError: If count < 1.
        """
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")
        groups: list[list[PartitionCheckpoint]] = [[] for _ in range(min(count, len(self)))]
        for i, partition in enumerate(self._partitions):
            groups[i % len(groups)].append(partition)
        return [Checkpoint(group) for group in groups]

    def to_list(self) -> list[dict[str, str]]:
        return [p.to_dict() for p in self._partitions]

    @classmethod
    def from_list(cls, data: list[dict[str, Any]]) -> Checkpoint:
        if not isinstance(data, list):
            raise ValueError(f"checkpoint must be a list, got {type(data).__name__}")
        return cls(PartitionCheckpoint.from_dict(item) for item in data)

    def to_json(self) -> str:
        return json.dumps(self.to_list())

    @classmethod
    def from_json(cls, text: str) -> Checkpoint:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"checkpoint is not valid JSON: {e}") from e
        return cls.from_list(data)

    def __iter__(self) -> Iterator[PartitionCheckpoint]:
        return iter(self._partitions)

    def __len__(self) -> int:
        return len(self._partitions)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Checkpoint):
            return NotImplemented
        return self._partitions == other._partitions

    def __hash__(self) -> int:
        return hash(self._partitions)

    def __repr__(self) -> str:
        inner = ", ".join(f"{p.partition_id}@{p.position}" for p in self._partitions)
        return f"Checkpoint([{inner}])"


@runtime_checkable
class CheckpointGenerator(Protocol):
    """Protocol for producing a reader's initial checkpoint."""

    def generate(self, client: StreamClient) -> Checkpoint:
        """Build the starting checkpoint.

        Raises:
            TransientError: A client call failed but may succeed later.
            PermanentError: The stream cannot be read.
        """
        ...


class StaticCheckpointGenerator:
    """Returns a fixed checkpoint, typically one the host persisted.

    Args:
        checkpoint: Checkpoint to resume from.
    """

    def __init__(self, checkpoint: Checkpoint):
        self._checkpoint = checkpoint

    @classmethod
    def from_json(cls, text: str) -> StaticCheckpointGenerator:
        return cls(Checkpoint.from_json(text))

    @property
    def checkpoint(self) -> Checkpoint:
        return self._checkpoint

    def generate(self, client: StreamClient) -> Checkpoint:
        return self._checkpoint

    def __repr__(self) -> str:
        return f"StaticCheckpointGenerator({self._checkpoint!r})"


class DynamicCheckpointGenerator:
    """Discovers every partition and starts each at the same starting point.

    Args:
        starting_point: Where each partition begins.
    """

    def __init__(self, starting_point: StartingPoint):
        self._starting_point = starting_point

    @property
    def starting_point(self) -> StartingPoint:
        return self._starting_point

    def generate(self, client: StreamClient) -> Checkpoint:
        partition_ids = client.list_partitions()
        logger.info(
            "Discovered %d partition(s), starting at %s",
            len(partition_ids), self._starting_point.kind.value,
        )
        return Checkpoint(
            PartitionCheckpoint(pid, client.resolve_position(pid, self._starting_point))
            for pid in partition_ids
        )

    def __repr__(self) -> str:
        return f"DynamicCheckpointGenerator({self._starting_point.kind.value})"
