"""Exception hierarchy for stream clients and readers.

Client failures split into two kinds. ``TransientError`` is retry-safe
(throttling, timeouts, temporary unavailability): the reader logs it and
moves on to the next partition. ``PermanentError`` is not (authorization
failure, a partition that no longer exists) and is fatal to the reader.

Lifecycle misuse, such as reading the current record before any record has
been fetched, raises ``ReaderStateError``. Those are programming errors and
should not be retried.
"""

from __future__ import annotations


class StreamError(Exception):
    """Base class for failures reported by a stream client.

    Attributes:
        partition_id: Partition the failing call addressed, if any.
    """

    def __init__(self, message: str, partition_id: str | None = None):
        super().__init__(message)
        self.partition_id = partition_id


class TransientError(StreamError):
    """Retry-safe failure; the same call may succeed later."""


class PermanentError(StreamError):
    """Non-retryable failure; the reader cannot make progress."""


class ReaderStartupError(OSError):
    """The reader could not obtain its initial checkpoint.

    Raised from ``StreamReader.start()`` with the client failure chained as
    ``__cause__``. Hosts retry by constructing a new reader.
    """


class ReaderStateError(RuntimeError):
    """A reader method was called in a state that does not allow it."""


class NoCurrentRecordError(ReaderStateError):
    """Current-record accessors were called while no record is held."""
