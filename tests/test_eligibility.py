"""
tests/test_eligibility.py — Rotation Eligibility Filter
========================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import pytest
from conftest import utc

from merzah.engine.eligibility import Eligibility, classify, is_eligible


@dataclass
class _Row:
    is_recurring: bool
    date: datetime
    recurrence_end_date: datetime | None = None


NOW = utc(2026, 2, 1, 12)


class TestClassify:
    def test_past_recurring_event_rotates(self):
        row = _Row(True, utc(2026, 1, 29, 18), utc(2026, 4, 1))
        assert classify(row, NOW) is Eligibility.ROTATE
        assert is_eligible(row, NOW)

    def test_unbounded_series_rotates(self):
        assert classify(_Row(True, utc(2025, 1, 1)), NOW) is Eligibility.ROTATE

    def test_start_equal_to_now_counts_as_passed(self):
        assert classify(_Row(True, NOW), NOW) is Eligibility.ROTATE

    def test_future_event_is_not_due(self):
        row = _Row(True, utc(2026, 2, 1, 12, 0, 1))
        assert classify(row, NOW) is Eligibility.NOT_DUE
        assert not is_eligible(row, NOW)

    def test_one_time_event_is_never_eligible(self):
        assert classify(_Row(False, utc(2020, 1, 1)), NOW) is Eligibility.NOT_DUE

    @pytest.mark.parametrize("end", [NOW, utc(2026, 1, 31)])
    def test_series_ended_when_end_reached(self, end):
        row = _Row(True, utc(2026, 1, 29, 18), end)
        assert classify(row, NOW) is Eligibility.SERIES_ENDED
        assert not is_eligible(row, NOW)

    def test_naive_values_are_read_as_utc(self):
        row = _Row(True, datetime(2026, 1, 29, 18), datetime(2026, 4, 1))
        assert classify(row, datetime(2026, 2, 1, 12)) is Eligibility.ROTATE
