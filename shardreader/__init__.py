"""shardreader: a pull-based reader over partitioned, append-only streams.

Reads every partition of a stream through one cursor, estimates an event-time
watermark and produces resumable checkpoints. See
:class:`~shardreader.reader.stream_reader.StreamReader`.
"""

import logging

from shardreader.config import ReaderConfig
from shardreader.core.clock import Clock, ManualClock, SystemClock
from shardreader.core.temporal import Duration, Instant
from shardreader.errors import (
    NoCurrentRecordError,
    PermanentError,
    ReaderStartupError,
    ReaderStateError,
    StreamError,
    TransientError,
)
from shardreader.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
    set_level,
    set_module_level,
)
from shardreader.reader import (
    Checkpoint,
    CheckpointGenerator,
    CurrentRecord,
    DynamicCheckpointGenerator,
    PartitionCheckpoint,
    PartitionCursor,
    ReaderState,
    ReaderStats,
    RoundRobin,
    StaticCheckpointGenerator,
    StreamReader,
    UnboundedReader,
    WatermarkEstimator,
)
from shardreader.source import (
    InMemoryStreamClient,
    InMemoryStreamStats,
    Position,
    PositionKind,
    Record,
    RecordBatch,
    StartingPoint,
    StreamClient,
)

# Silent unless the application enables logging.
logging.getLogger("shardreader").addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Reader
    "StreamReader",
    "UnboundedReader",
    "ReaderState",
    "ReaderStats",
    "CurrentRecord",
    "PartitionCursor",
    "RoundRobin",
    "WatermarkEstimator",
    # Checkpoints
    "Checkpoint",
    "CheckpointGenerator",
    "DynamicCheckpointGenerator",
    "PartitionCheckpoint",
    "StaticCheckpointGenerator",
    # Source
    "StreamClient",
    "InMemoryStreamClient",
    "InMemoryStreamStats",
    "Position",
    "PositionKind",
    "Record",
    "RecordBatch",
    "StartingPoint",
    # Time
    "Clock",
    "Duration",
    "Instant",
    "ManualClock",
    "SystemClock",
    # Config and errors
    "ReaderConfig",
    "StreamError",
    "TransientError",
    "PermanentError",
    "ReaderStartupError",
    "ReaderStateError",
    "NoCurrentRecordError",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]
