"""Stream backend contract, record types, positions and an in-memory stream."""

from shardreader.source.client import StreamClient
from shardreader.source.memory import InMemoryStreamClient, InMemoryStreamStats
from shardreader.source.positions import Position, PositionKind, StartingPoint
from shardreader.source.records import Record, RecordBatch

__all__ = [
    "InMemoryStreamClient",
    "InMemoryStreamStats",
    "Position",
    "PositionKind",
    "Record",
    "RecordBatch",
    "StartingPoint",
    "StreamClient",
]
