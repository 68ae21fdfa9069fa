"""Reader tuning knobs.

Defaults suit a Kinesis-style stream: the watermark looks back one minute
in five-second buckets and needs ten records spread over two buckets before
it trusts the minimum. Values can also come from the environment.

Environment variables:
    SR_FETCH_LIMIT: Maximum records requested per fetch.
    SR_WATERMARK_WINDOW_S: Trailing watermark window in seconds.
    SR_WATERMARK_BUCKET_S: Watermark bucket width in seconds.
    SR_MIN_WATERMARK_SAMPLES: Samples required before the watermark moves.
    SR_MIN_WATERMARK_SPREAD: Buckets the samples must span.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from shardreader.core.temporal import Duration

if TYPE_CHECKING:
    from shardreader.reader.watermark import WatermarkEstimator

DEFAULT_FETCH_LIMIT = 1000
DEFAULT_WATERMARK_WINDOW = Duration.from_seconds(60)
DEFAULT_WATERMARK_BUCKET = Duration.from_seconds(5)
DEFAULT_MIN_WATERMARK_SAMPLES = 10
DEFAULT_MIN_WATERMARK_SPREAD = 2


@dataclass(frozen=True)
class ReaderConfig:
    """Settings for a StreamReader.

    Attributes:
        fetch_limit: Maximum records requested from a partition per fetch.
        watermark_window: Trailing window the watermark estimator covers.
        watermark_bucket: Width of one estimator bucket.
        min_watermark_samples: Samples required before the watermark moves.
        min_watermark_spread: Non-empty buckets required before it moves.
    """

    fetch_limit: int = DEFAULT_FETCH_LIMIT
    watermark_window: Duration = field(default=DEFAULT_WATERMARK_WINDOW)
    watermark_bucket: Duration = field(default=DEFAULT_WATERMARK_BUCKET)
    min_watermark_samples: int = DEFAULT_MIN_WATERMARK_SAMPLES
    min_watermark_spread: int = DEFAULT_MIN_WATERMARK_SPREAD

    def __post_init__(self):
        if self.fetch_limit < 1:
            raise ValueError(f"fetch_limit must be >= 1, got {self.fetch_limit}")
        if self.watermark_bucket <= Duration.ZERO:
            raise ValueError(f"watermark_bucket must be > 0, got {self.watermark_bucket!r}")
        if self.watermark_window < self.watermark_bucket:
            raise ValueError(
                f"watermark_window must be >= watermark_bucket, got {self.watermark_window!r}"
            )
        if self.watermark_window.nanoseconds % self.watermark_bucket.nanoseconds != 0:
            raise ValueError(
                "watermark_window must be a multiple of watermark_bucket, "
                f"got {self.watermark_window!r} and {self.watermark_bucket!r}"
            )
        if self.min_watermark_samples < 0:
            raise ValueError(
                f"min_watermark_samples must be >= 0, got {self.min_watermark_samples}"
            )
        if self.min_watermark_spread < 0:
            raise ValueError(f"min_watermark_spread must be >= 0, got {self.min_watermark_spread}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ReaderConfig:
        """Build a config from ``SR_*`` environment variables.

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable is not a number or the result is invalid.
        """
        env = os.environ if environ is None else environ
        kwargs = {}
        if "SR_FETCH_LIMIT" in env:
            kwargs["fetch_limit"] = _parse_int(env, "SR_FETCH_LIMIT")
        if "SR_WATERMARK_WINDOW_S" in env:
            kwargs["watermark_window"] = Duration.from_seconds(_parse_float(env, "SR_WATERMARK_WINDOW_S"))
        if "SR_WATERMARK_BUCKET_S" in env:
            kwargs["watermark_bucket"] = Duration.from_seconds(_parse_float(env, "SR_WATERMARK_BUCKET_S"))
        if "SR_MIN_WATERMARK_SAMPLES" in env:
            kwargs["min_watermark_samples"] = _parse_int(env, "SR_MIN_WATERMARK_SAMPLES")
        if "SR_MIN_WATERMARK_SPREAD" in env:
            kwargs["min_watermark_spread"] = _parse_int(env, "SR_MIN_WATERMARK_SPREAD")
        return cls(**kwargs)

    def build_estimator(self) -> WatermarkEstimator:
        from shardreader.reader.watermark import WatermarkEstimator

        return WatermarkEstimator(
            window=self.watermark_window,
            bucket=self.watermark_bucket,
            min_sample_count=self.min_watermark_samples,
            min_spread_buckets=self.min_watermark_spread,
        )


def _parse_int(env: Mapping[str, str], name: str) -> int:
    try:
        return int(env[name])
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {env[name]!r}") from None


def _parse_float(env: Mapping[str, str], name: str) -> float:
    try:
        return float(env[name])
    except ValueError:
        raise ValueError(f"{name} must be a number, got {env[name]!r}") from None
