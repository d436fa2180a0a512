"""Reset windows and harvest accrual math."""
import random
from datetime import datetime, timedelta

import pytest
from hypothesis import given, settings, strategies as st

from core.accrual import (
    HARVEST_MAX_AMOUNT,
    HARVEST_MIN_AMOUNT,
    ResetWindowAccrual,
    apply_bonuses,
    diminishing_crowd_bonus,
)
from core.clock import FixedClock

instants = st.datetimes(min_value=datetime(2000, 1, 1), max_value=datetime(2100, 1, 1))


class TestBuckets:

    def test_boundary_splits_morning_and_evening(self, clock):
        accrual = ResetWindowAccrual(clock=clock, midpoint=50)

        assert accrual.current_bucket(49) == "2025-10-16T00-AM"
        assert accrual.current_bucket(50) == "2025-10-16T00-PM"

    def test_default_midpoint_matches_map_halves(self, clock):
        accrual = ResetWindowAccrual(clock=clock)

        assert accrual.current_bucket(1).endswith("-AM")
        assert accrual.current_bucket(75).endswith("-AM")
        assert accrual.current_bucket(76).endswith("-PM")
        assert accrual.current_bucket(150).endswith("-PM")

    @given(key=st.integers(min_value=-1000, max_value=1000), instant=instants)
    def test_bucket_is_one_of_two_tags(self, key, instant):
        accrual = ResetWindowAccrual(clock=FixedClock(instant), midpoint=50)
        bucket = accrual.current_bucket(key)
        half = "00" if instant.hour < 12 else "12"

        assert bucket in (f"{instant:%Y-%m-%d}T{half}-AM", f"{instant:%Y-%m-%d}T{half}-PM")
        assert bucket.endswith("-AM") == (key < 50)

    @given(key=st.integers(min_value=1, max_value=150), instant=instants)
    def test_bucket_rolls_over_when_countdown_ends(self, key, instant):
        clock = FixedClock(instant)
        accrual = ResetWindowAccrual(clock=clock)
        before = accrual.current_bucket(key)
        remaining = accrual.time_until_next_bucket(key)

        clock.set(instant + remaining - timedelta(microseconds=1))
        assert accrual.current_bucket(key) == before

        clock.set(instant + remaining)
        assert accrual.current_bucket(key) != before

    def test_morning_bucket_resets_at_noon(self, clock):
        accrual = ResetWindowAccrual(clock=clock)

        clock.advance(hours=2, minutes=30)

        assert accrual.current_bucket(10) == "2025-10-16T12-AM"
        assert accrual.current_bucket(100) == "2025-10-16T12-PM"

    @given(key=st.integers(min_value=1, max_value=150), instant=instants)
    @settings(max_examples=300)
    def test_time_until_next_bucket_is_within_half_a_day(self, key, instant):
        accrual = ResetWindowAccrual(clock=FixedClock(instant))
        remaining = accrual.time_until_next_bucket(key)

        assert timedelta(0) < remaining <= timedelta(hours=12)

    def test_time_until_next_bucket_at_exact_boundary_is_full_window(self):
        accrual = ResetWindowAccrual(clock=FixedClock(datetime(2025, 10, 16, 12, 0)))

        assert accrual.time_until_next_bucket(10) == timedelta(hours=12)

    def test_time_until_next_bucket_counts_to_noon(self, clock):
        accrual = ResetWindowAccrual(clock=clock)

        assert accrual.time_until_next_bucket(10) == timedelta(hours=2, minutes=30)

    @given(instant=instants)
    def test_window_brackets_now(self, instant):
        accrual = ResetWindowAccrual(clock=FixedClock(instant))
        window = accrual.current_window(100)

        assert window.opens_at <= instant < window.closes_at
        assert window.closes_at - window.opens_at == timedelta(hours=12)
        assert window.bucket_id == accrual.current_bucket(100)


class TestYield:

    def test_base_yield_range_and_variety(self):
        accrual = ResetWindowAccrual(rng=random.Random(1234))
        values = [accrual.base_yield() for _ in range(50)]

        assert all(isinstance(value, int) for value in values)
        assert all(HARVEST_MIN_AMOUNT <= value <= HARVEST_MAX_AMOUNT for value in values)
        assert len(set(values)) >= 5

    @pytest.mark.parametrize("base, permanent, temporary, expected", [
        (10, 25, 0, 12),
        (10, 0, 0, 10),
        (10, 100, 0, 20),
        (7, 30, 0, 9),
        (10, 25, 25, 15),
    ])
    def test_apply_bonuses(self, base, permanent, temporary, expected):
        assert apply_bonuses(base, permanent, temporary) == expected

    def test_negative_bonus_reduces_but_never_below_zero(self):
        assert apply_bonuses(10, -50, 0) == 5
        assert apply_bonuses(10, -150, 0) == 0

    @pytest.mark.parametrize("count, expected", [
        (5, 0.1875),
        (20, 0.0),
        (0, 0.0),
        (10, 0.25),
    ])
    def test_diminishing_crowd_bonus(self, count, expected):
        assert diminishing_crowd_bonus(count, 0.05) == pytest.approx(expected)
