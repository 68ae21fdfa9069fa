"""Bucketed sliding-window minimum over event-time samples.

Per-record arrival timestamps are noisy: partitions deliver in bursts, lag
behind one another and report approximate times. The estimator keeps the
minimum event time seen per processing-time bucket over a trailing window and
only vouches for that minimum once enough samples, spread over enough
buckets, back it up. A single burst that lands in one bucket is never
enough to move the watermark.

The window is a fixed ring of ``window / bucket`` slots. Each slot holds
``(bucket_start, min_event_time, sample_count)``. Slots are reused in place
and buckets that fall out of the window are evicted lazily when the
estimator is read, so nothing happens between calls.

Example::

    estimator = WatermarkEstimator(
        window=Duration.from_seconds(60),
        bucket=Duration.from_seconds(5),
        min_sample_count=10,
        min_spread_buckets=2,
    )
    estimator.add(now_ms, record.event_time.to_millis())
    low = estimator.get(now_ms)
    if low is not None and estimator.is_significant():
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from shardreader.core.temporal import Duration

logger = logging.getLogger(__name__)


@dataclass
class Bucket:
    """One slot of the ring.

    Attributes:
        start_ms: Processing time at which this bucket begins.
        min_event_ms: Smallest event time added to this bucket.
        count: Number of samples added to this bucket.
    """

    start_ms: int | None = None
    min_event_ms: int | None = None
    count: int = 0

    def reset(self, start_ms: int | None = None) -> None:
        self.start_ms = start_ms
        self.min_event_ms = None
        self.count = 0


class WatermarkEstimator:
    """Sliding-window minimum with a significance gate.

    Args:
        window: Length of the trailing window.
        bucket: Width of each bucket. ``window`` must be a positive multiple
            of ``bucket``.
        min_sample_count: Samples required across the window before the
            minimum is significant.
        min_spread_buckets: Non-empty buckets required before the minimum is
            significant.

    Raises:
        ValueError: If the parameters are inconsistent.
    """

    def __init__(
        self,
        window: Duration,
        bucket: Duration,
        min_sample_count: int = 10,
        min_spread_buckets: int = 2,
    ):
        window_ms = window.to_millis()
        bucket_ms = bucket.to_millis()
        if bucket_ms <= 0:
            raise ValueError(f"bucket must be >= 1ms, got {bucket!r}")
        if window_ms <= 0 or window_ms % bucket_ms != 0:
            raise ValueError(
                f"window must be a positive multiple of bucket, got {window!r} and {bucket!r}"
            )
        num_buckets = window_ms // bucket_ms
        if min_sample_count < 0:
            raise ValueError(f"min_sample_count must be >= 0, got {min_sample_count}")
        if not 0 <= min_spread_buckets <= num_buckets:
            raise ValueError(
                f"min_spread_buckets must be in [0, {num_buckets}], got {min_spread_buckets}"
            )

        self._window_ms = window_ms
        self._bucket_ms = bucket_ms
        self._min_sample_count = min_sample_count
        self._min_spread_buckets = min_spread_buckets
        self._buckets = [Bucket() for _ in range(num_buckets)]
        self._latest_start_ms: int | None = None

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def bucket_ms(self) -> int:
        return self._bucket_ms

    @property
    def num_buckets(self) -> int:
        return len(self._buckets)

    @property
    def sample_count(self) -> int:
        """Samples held in buckets that have not been evicted yet."""
        return sum(b.count for b in self._buckets)

    @property
    def active_buckets(self) -> int:
        """Non-empty buckets that have not been evicted yet."""
        return sum(1 for b in self._buckets if b.count > 0)

    def add(self, processing_time_ms: int, event_time_ms: int) -> None:
        """Record that a record with *event_time_ms* was read at *processing_time_ms*."""
        start = self._bucket_start(processing_time_ms)
        self._latest_start_ms = start

        bucket = self._slot(start)
        if bucket.start_ms != start:
            bucket.reset(start)
        if bucket.min_event_ms is None or event_time_ms < bucket.min_event_ms:
            bucket.min_event_ms = event_time_ms
        bucket.count += 1

    def get(self, now_ms: int) -> int | None:
        """Minimum event time across the window ending at *now_ms*.

        Evicts buckets that have fallen out of the window first.

        Returns:
            The minimum, or None if no sample survives.
        """
        self._evict(now_ms)
        result = None
        for bucket in self._buckets:
            if bucket.count and (result is None or bucket.min_event_ms < result):
                result = bucket.min_event_ms
        return result

    def is_significant(self, now_ms: int | None = None) -> bool:
        """Whether the surviving samples are numerous and spread out enough.

        Counts the buckets still stored. Pass *now_ms* to evict expired
        buckets first; without it the answer reflects the last ``get()``.
        """
        if now_ms is not None:
            self._evict(now_ms)
        return (
            self.active_buckets >= self._min_spread_buckets
            and self.sample_count >= self._min_sample_count
        )

    def clear(self) -> None:
        for bucket in self._buckets:
            bucket.reset()
        self._latest_start_ms = None

    def _bucket_start(self, time_ms: int) -> int:
        start = time_ms - time_ms % self._bucket_ms
        # Wall clocks can step back; keep feeding the newest bucket.
        if self._latest_start_ms is not None and start < self._latest_start_ms:
            return self._latest_start_ms
        return start

    def _slot(self, start_ms: int) -> Bucket:
        return self._buckets[(start_ms // self._bucket_ms) % len(self._buckets)]

    def _evict(self, now_ms: int) -> None:
        horizon = self._bucket_start(now_ms) - self._window_ms
        evicted = 0
        for bucket in self._buckets:
            if bucket.start_ms is not None and bucket.start_ms <= horizon:
                if bucket.count:
                    evicted += 1
                bucket.reset()
        if evicted:
            logger.debug("Evicted %d watermark bucket(s) older than %d", evicted, horizon)

    def __repr__(self) -> str:
        return (
            f"WatermarkEstimator(window_ms={self._window_ms}, bucket_ms={self._bucket_ms}, "
            f"samples={self.sample_count}, active_buckets={self.active_buckets})"
        )
