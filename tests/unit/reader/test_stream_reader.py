"""Tests for StreamReader."""

import logging

import pytest

from shardreader.config import ReaderConfig
from shardreader.core.temporal import Duration, Instant
from shardreader.errors import (
    NoCurrentRecordError,
    PermanentError,
    ReaderStartupError,
    ReaderStateError,
    TransientError,
)
from shardreader.reader.checkpoint import (
    Checkpoint,
    DynamicCheckpointGenerator,
    PartitionCheckpoint,
    StaticCheckpointGenerator,
)
from shardreader.reader.stream_reader import ReaderState, StreamReader, UnboundedReader
from shardreader.source.memory import InMemoryStreamClient
from shardreader.source.positions import Position, StartingPoint

# Origin of the clock fixture.
T0_MS = 1_700_000_000_000


class RecordingClient:
    """Wraps a client and records which partitions were fetched."""

    def __init__(self, inner: InMemoryStreamClient):
        self.inner = inner
        self.fetched: list[str] = []

    def list_partitions(self):
        return self.inner.list_partitions()

    def resolve_position(self, partition_id, starting_point):
        return self.inner.resolve_position(partition_id, starting_point)

    def fetch_records(self, partition_id, position, limit):
        self.fetched.append(partition_id)
        return self.inner.fetch_records(partition_id, position, limit)


def _make_client(partitions: dict[str, list[int]]) -> InMemoryStreamClient:
    """Client whose partitions hold records with the given event times (ms)."""
    client = InMemoryStreamClient(list(partitions))
    for pid, times in partitions.items():
        for t in times:
            client.append(pid, f"{pid}@{t}".encode(), event_time=Instant.from_millis(t))
    return client


def _make_reader(client, clock, generator=None, **config) -> StreamReader:
    return StreamReader(
        client,
        generator or DynamicCheckpointGenerator(StartingPoint.trim_horizon()),
        config=ReaderConfig(**config),
        clock=clock,
    )


class TestLifecycle:

    def test_starts_unstarted(self, clock):
        reader = _make_reader(_make_client({"s1": []}), clock)
        assert reader.state is ReaderState.UNSTARTED
        assert reader.partition_ids == []

    def test_start_builds_one_cursor_per_partition(self, clock):
        reader = _make_reader(_make_client({"s1": [], "s2": [], "s3": []}), clock)
        assert reader.start() is False
        assert reader.state is ReaderState.STARTED
        assert reader.partition_ids == ["s1", "s2", "s3"]

    def test_start_returns_first_record(self, clock):
        reader = _make_reader(_make_client({"s1": [100]}), clock)
        assert reader.start() is True
        assert reader.current().event_time == Instant.from_millis(100)

    def test_start_twice_is_an_error(self, clock):
        reader = _make_reader(_make_client({"s1": []}), clock)
        reader.start()
        with pytest.raises(ReaderStateError, match="requires an unstarted reader"):
            reader.start()

    def test_advance_before_start_is_an_error(self, clock):
        reader = _make_reader(_make_client({"s1": []}), clock)
        with pytest.raises(ReaderStateError, match="requires a started reader"):
            reader.advance()

    def test_checkpoint_before_start_is_an_error(self, clock):
        reader = _make_reader(_make_client({"s1": []}), clock)
        with pytest.raises(ReaderStateError):
            reader.checkpoint()

    def test_close_is_idempotent_and_terminal(self, clock):
        reader = _make_reader(_make_client({"s1": [100]}), clock)
        reader.start()
        reader.close()
        reader.close()
        assert reader.state is ReaderState.CLOSED
        with pytest.raises(ReaderStateError):
            reader.advance()
        with pytest.raises(ReaderStateError):
            reader.start()
        with pytest.raises(ReaderStateError):
            reader.watermark()

    def test_zero_partitions_never_yield(self, clock):
        reader = _make_reader(
            _make_client({"s1": [100]}), clock, StaticCheckpointGenerator(Checkpoint())
        )
        assert reader.start() is False
        assert reader.advance() is False
        assert reader.checkpoint() == Checkpoint()

    def test_implements_unbounded_reader_protocol(self, clock):
        assert isinstance(_make_reader(_make_client({"s1": []}), clock), UnboundedReader)


class TestStartupFailures:

    @pytest.mark.parametrize("error", [TransientError("throttled"), PermanentError("denied")])
    def test_generator_failure_is_surfaced_as_io_error(self, clock, error):
        client = _make_client({"s1": [100]})
        client.fail_listing(error)
        reader = _make_reader(client, clock)

        with pytest.raises(ReaderStartupError) as excinfo:
            reader.start()

        assert isinstance(excinfo.value, OSError)
        assert excinfo.value.__cause__ is error
        assert reader.state is ReaderState.UNSTARTED


class TestCurrentRecord:

    def test_accessors_before_any_record(self, clock):
        reader = _make_reader(_make_client({"s1": []}), clock)
        reader.start()
        with pytest.raises(NoCurrentRecordError):
            reader.current()
        with pytest.raises(NoCurrentRecordError):
            reader.current_id()
        with pytest.raises(NoCurrentRecordError):
            reader.current_timestamp()

    def test_no_current_record_is_a_programming_error(self):
        assert issubclass(NoCurrentRecordError, RuntimeError)

    def test_accessors_describe_the_record(self, clock):
        reader = _make_reader(_make_client({"s1": [100]}), clock)
        reader.start()
        assert reader.current_id() == b"s1:0"
        assert reader.current_timestamp() == Instant.from_millis(100)
        assert reader.current().data == b"s1@100"

    def test_empty_advance_clears_current_record(self, clock):
        reader = _make_reader(_make_client({"s1": [100]}), clock)
        assert reader.start() is True
        assert reader.advance() is False
        with pytest.raises(NoCurrentRecordError):
            reader.current()
        with pytest.raises(NoCurrentRecordError):
            reader.current_id()
        with pytest.raises(NoCurrentRecordError):
            reader.current_timestamp()

    def test_record_is_current_again_after_next_successful_advance(self, clock):
        client = _make_client({"s1": [100]})
        reader = _make_reader(client, clock)
        reader.start()
        reader.advance()
        client.append("s1", b"next", event_time=Instant.from_millis(200))
        assert reader.advance() is True
        assert reader.current().data == b"next"


class TestScheduling:

    def test_two_partition_scenario(self, clock):
        """S1=[e1(100), e2(200)], S2=[e3(150)], scheduler starts at S1."""
        reader = _make_reader(_make_client({"s1": [100, 200], "s2": [150]}), clock)

        assert reader.start() is True
        assert reader.current().data == b"s1@100"
        assert reader.advance() is True
        assert reader.current().data == b"s1@200"
        assert reader.advance() is True
        assert reader.current().data == b"s2@150"
        assert reader.advance() is False

    def test_productive_partition_is_drained_first(self, clock):
        reader = _make_reader(_make_client({"s1": [1, 2, 3], "s2": [4, 5]}), clock, fetch_limit=1)
        seen = []
        available = reader.start()
        while available:
            seen.append(reader.current().data)
            available = reader.advance()
        assert seen == [b"s1@1", b"s1@2", b"s1@3", b"s2@4", b"s2@5"]

    @pytest.mark.parametrize("num_partitions", [1, 2, 5, 16])
    def test_each_advance_probes_each_partition_at_most_once(self, clock, num_partitions):
        client = RecordingClient(_make_client({f"s{i}": [] for i in range(num_partitions)}))
        reader = _make_reader(client, clock)
        reader.start()
        assert len(client.fetched) == num_partitions

        client.fetched.clear()
        assert reader.advance() is False
        assert sorted(client.fetched) == sorted(f"s{i}" for i in range(num_partitions))

    def test_starved_partition_is_skipped_once(self, clock):
        client = RecordingClient(_make_client({"a": [], "b": list(range(100, 150))}))
        reader = _make_reader(client, clock, fetch_limit=1)

        assert reader.start() is True
        for _ in range(20):
            assert reader.advance() is True
            assert reader.current().partition_id == "b"

        assert client.fetched.count("a") == 1

    def test_new_records_are_picked_up_on_later_polls(self, clock):
        client = _make_client({"s1": [], "s2": []})
        reader = _make_reader(client, clock)
        assert reader.start() is False
        client.append("s2", b"late", event_time=Instant.from_millis(5))
        assert reader.advance() is True
        assert reader.current().data == b"late"

    def test_resume_from_latest_marker_reads_later_appends(self, clock):
        client = _make_client({"s1": [100, 200]})
        generator = StaticCheckpointGenerator.from_json(
            '[{"partition_id": "s1", "position": "LATEST"}]'
        )
        reader = _make_reader(client, clock, generator=generator)
        assert reader.start() is False
        assert reader.checkpoint().position_of("s1") == Position.after_sequence(1)

        client.append("s1", b"fresh", event_time=Instant.from_millis(300))
        assert reader.advance() is True
        assert reader.current().data == b"fresh"


class TestTransientFailures:

    def test_failing_partition_keeps_position_and_others_still_yield(self, clock):
        client = _make_client({"s1": [100, 110], "s2": [200]})
        reader = _make_reader(client, clock, fetch_limit=1)
        reader.start()
        before = reader.checkpoint().position_of("s1")

        client.fail_next("s1", TransientError("throttled"))
        assert reader.advance() is True

        assert reader.current().partition_id == "s2"
        assert reader.checkpoint().position_of("s1") == before
        assert reader.stats.transient_failures == 1
        assert reader.stats.per_partition_failures == {"s1": 1, "s2": 0}

    def test_failed_partition_resumes_where_it_left_off(self, clock):
        client = _make_client({"s1": [100, 110]})
        reader = _make_reader(client, clock, fetch_limit=1)
        reader.start()
        client.fail_next("s1", TransientError("throttled"))

        assert reader.advance() is False
        assert reader.advance() is True
        assert reader.current().data == b"s1@110"

    def test_transient_failure_is_logged(self, clock, caplog):
        client = _make_client({"s1": [100]})
        client.fail_next("s1", TransientError("throttled"))
        reader = _make_reader(client, clock)

        with caplog.at_level(logging.WARNING, logger="shardreader"):
            reader.start()

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "throttled" in warnings[0].getMessage()
        assert warnings[0].partition_id == "s1"

    def test_permanent_failure_propagates(self, clock):
        client = _make_client({"s1": [], "s2": [100]})
        reader = _make_reader(client, clock)
        reader.start()
        client.close_partition("s1")
        with pytest.raises(PermanentError):
            reader.advance()


class TestCheckpoints:

    def test_checkpoint_tracks_consumed_records(self, clock):
        reader = _make_reader(_make_client({"s1": [100, 200], "s2": [150]}), clock)
        reader.start()
        reader.advance()
        assert reader.checkpoint() == Checkpoint([
            PartitionCheckpoint("s1", Position.after_sequence(1)),
            PartitionCheckpoint("s2", Position.trim_horizon()),
        ])

    def test_checkpoint_is_a_new_value_each_time(self, clock):
        reader = _make_reader(_make_client({"s1": [100, 200]}), clock)
        reader.start()
        first = reader.checkpoint()
        reader.advance()
        second = reader.checkpoint()
        assert first != second
        assert first.position_of("s1") == Position.after_sequence(0)

    def test_starting_and_draining_nothing_reproduces_the_checkpoint(self, clock):
        start = Checkpoint([
            PartitionCheckpoint("s1", Position.after_sequence(1)),
            PartitionCheckpoint("s2", Position.after_sequence(0)),
        ])
        reader = _make_reader(
            _make_client({"s1": [100, 200], "s2": [150]}), clock, StaticCheckpointGenerator(start)
        )
        assert reader.start() is False
        assert reader.checkpoint() == start


class TestWatermark:

    def test_no_data_means_caught_up(self, clock):
        reader = _make_reader(_make_client({"s1": []}), clock)
        reader.start()
        assert reader.watermark() == clock.now()
        clock.advance(3)
        assert reader.watermark() == clock.now()

    def test_insignificant_burst_does_not_move_watermark(self, clock):
        base = T0_MS - 60_000
        reader = _make_reader(_make_client({"s1": [base + i for i in range(9)]}), clock)
        available = reader.start()
        while available:
            clock.advance(0.1)
            available = reader.advance()
        assert reader.watermark() == Instant.MIN

    def test_significant_spread_moves_watermark_to_minimum(self, clock):
        base = T0_MS - 60_000
        times = [base + 500 - i for i in range(11)]
        reader = _make_reader(_make_client({"s1": times}), clock)

        available = reader.start()
        while available:
            clock.advance(1)
            available = reader.advance()

        assert reader.watermark() == Instant.from_millis(min(times))

    def test_watermark_never_moves_backwards(self, clock):
        client = _make_client({"s1": [], "s2": []})
        reader = _make_reader(client, clock)
        reader.start()
        previous = reader.watermark()

        # Records far older than the current watermark arrive later.
        for i in range(30):
            client.append(f"s{i % 2 + 1}", b"old", event_time=Instant.from_millis(1000 + i))
        for _ in range(40):
            clock.advance(1)
            reader.advance()
            current = reader.watermark()
            assert current >= previous
            previous = current

    def test_clock_stepping_back_keeps_watermark(self, clock):
        reader = _make_reader(_make_client({"s1": []}), clock)
        reader.start()
        high = reader.watermark()
        clock.set(clock.now() - Duration.from_seconds(30))
        assert reader.watermark() == high

    def test_watermark_follows_reading_after_window_drains(self, clock):
        reader = _make_reader(_make_client({"s1": [T0_MS - 10]}), clock)
        reader.start()
        clock.advance(120)
        assert reader.watermark() == clock.now()


class TestStats:

    def test_counts(self, clock):
        reader = _make_reader(_make_client({"s1": [100, 200], "s2": [150]}), clock)
        available = reader.start()
        while available:
            available = reader.advance()

        stats = reader.stats
        assert stats.records_read == 3
        assert stats.empty_advances == 1
        assert stats.per_partition_records == {"s1": 2, "s2": 1}
        assert stats.millis_behind_latest == {"s1": 0, "s2": 0}
