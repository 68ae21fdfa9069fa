"""Partition cursors, scheduling, watermarking, checkpoints and the reader."""

from shardreader.reader.checkpoint import (
    Checkpoint,
    CheckpointGenerator,
    DynamicCheckpointGenerator,
    PartitionCheckpoint,
    StaticCheckpointGenerator,
)
from shardreader.reader.cursor import PartitionCursor
from shardreader.reader.round_robin import RoundRobin
from shardreader.reader.stream_reader import (
    CurrentRecord,
    ReaderState,
    ReaderStats,
    StreamReader,
    UnboundedReader,
)
from shardreader.reader.watermark import WatermarkEstimator

__all__ = [
    "Checkpoint",
    "CheckpointGenerator",
    "CurrentRecord",
    "DynamicCheckpointGenerator",
    "PartitionCheckpoint",
    "PartitionCursor",
    "ReaderState",
    "ReaderStats",
    "RoundRobin",
    "StaticCheckpointGenerator",
    "StreamReader",
    "UnboundedReader",
    "WatermarkEstimator",
]
