"""Unit tests for Instant and Duration."""

import pytest

from shardreader.core.temporal import Duration, Instant


class TestDuration:

    def test_from_seconds_int(self):
        assert Duration.from_seconds(1).to_seconds() == 1.0

    def test_from_seconds_float(self):
        assert Duration.from_seconds(0.5).nanoseconds == 500_000_000

    def test_from_millis(self):
        assert Duration.from_millis(1500) == Duration.from_seconds(1.5)

    def test_add_and_subtract(self):
        a = Duration.from_seconds(3)
        b = Duration.from_seconds(1)
        assert (a + b).to_seconds() == 4.0
        assert (a - b).to_seconds() == 2.0

    def test_compare(self):
        assert Duration.from_seconds(1) < Duration.from_seconds(2)
        assert Duration.from_seconds(2) >= Duration.from_seconds(2)
        assert Duration.ZERO == Duration(0)


class TestInstant:

    def test_millis_round_trip(self):
        t = Instant.from_millis(1_700_000_000_123)
        assert t.to_millis() == 1_700_000_000_123

    def test_to_millis_floors_sub_millisecond(self):
        assert Instant(1_999_999).to_millis() == 1

    def test_plus_duration(self):
        t = Instant.from_seconds(1)
        d = Duration.from_seconds(2)
        assert (t + d).to_seconds() == 3.0
        assert (d + t).to_seconds() == 3.0

    def test_plus_seconds(self):
        assert Instant.Epoch + 1.5 == Instant.from_millis(1500)

    def test_difference_is_duration(self):
        delta = Instant.from_seconds(5) - Instant.from_seconds(2)
        assert isinstance(delta, Duration)
        assert delta == Duration.from_seconds(3)

    def test_minus_duration_is_instant(self):
        assert Instant.from_seconds(3) - Duration.from_seconds(1) == Instant.from_seconds(2)

    def test_ordering(self):
        assert Instant.MIN < Instant.Epoch < Instant.from_millis(1)
        assert Instant.from_millis(5).is_after(Instant.from_millis(4))
        assert Instant.from_millis(4).is_before(Instant.from_millis(5))

    def test_hashable(self):
        assert {Instant.from_millis(1), Instant.from_millis(1)} == {Instant.from_millis(1)}

    def test_not_equal_to_duration(self):
        assert Instant(5) != Duration(5)

    def test_repr_of_min(self):
        assert repr(Instant.MIN) == "Instant(MIN)"

    def test_compare_with_other_type_raises(self):
        with pytest.raises(TypeError):
            Instant.Epoch < 5  # noqa: B015
