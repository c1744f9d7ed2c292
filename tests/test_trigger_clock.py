from datetime import timedelta

import pytest

from conftest import BASE_TIME, make_reminder
from utils import Clock, to_iso_utc
from world.trigger_clock import FAR_FUTURE, compute_next


class TestComputeNext:
    def test_never_triggered_is_now_plus_interval(self):
        reminder = make_reminder(interval_minutes=15)
        assert compute_next(reminder, BASE_TIME) == BASE_TIME + timedelta(minutes=15)

    def test_anchored_to_last_trigger_when_still_in_future(self):
        last = BASE_TIME - timedelta(minutes=20)
        reminder = make_reminder(interval_minutes=30, last_triggered=to_iso_utc(last))
        assert compute_next(reminder, BASE_TIME) == last + timedelta(minutes=30)

    def test_missed_intervals_are_coalesced(self):
        # 程序关闭期间错过了好几次，只补一次且在一个完整间隔之后
        last = BASE_TIME - timedelta(hours=5)
        reminder = make_reminder(interval_minutes=30, last_triggered=to_iso_utc(last))
        assert compute_next(reminder, BASE_TIME) == BASE_TIME + timedelta(minutes=30)

    def test_exactly_due_counts_as_past(self):
        last = BASE_TIME - timedelta(minutes=10)
        reminder = make_reminder(interval_minutes=10, last_triggered=to_iso_utc(last))
        assert compute_next(reminder, BASE_TIME) == BASE_TIME + timedelta(minutes=10)

    @pytest.mark.parametrize("raw", ["", "yesterday", "2026-13-40T99:00:00Z", "17:30"])
    def test_malformed_last_triggered_treated_as_never(self, raw):
        reminder = make_reminder(interval_minutes=5, last_triggered=raw)
        assert compute_next(reminder, BASE_TIME) == BASE_TIME + timedelta(minutes=5)

    def test_accepts_zulu_and_naive_timestamps_as_utc(self):
        zulu = make_reminder(interval_minutes=60, last_triggered="2026-10-14T01:30:00Z")
        naive = make_reminder(interval_minutes=60, last_triggered="2026-10-14T01:30:00")
        expected = BASE_TIME + timedelta(minutes=30)
        assert compute_next(zulu, BASE_TIME) == expected
        assert compute_next(naive, BASE_TIME) == expected

    def test_offset_timestamp_is_normalized(self):
        # 09:30+08:00 == 01:30Z
        reminder = make_reminder(interval_minutes=60, last_triggered="2026-10-14T09:30:00+08:00")
        assert compute_next(reminder, BASE_TIME) == BASE_TIME + timedelta(minutes=30)

    def test_huge_interval_is_clamped_instead_of_overflowing(self):
        reminder = make_reminder(interval_minutes=10**10)
        assert compute_next(reminder, BASE_TIME) == FAR_FUTURE

    def test_interval_beyond_timedelta_range_is_clamped(self):
        reminder = make_reminder(interval_minutes=10**13, last_triggered=to_iso_utc(BASE_TIME))
        assert compute_next(reminder, BASE_TIME) == FAR_FUTURE

    def test_overflowing_last_triggered_treated_as_never(self):
        reminder = make_reminder(interval_minutes=30, last_triggered="9999-12-31T23:50:00+00:00")
        assert compute_next(reminder, BASE_TIME) == BASE_TIME + timedelta(minutes=30)


class TestClock:
    def test_clock_is_abstract(self):
        with pytest.raises(TypeError):
            Clock()
