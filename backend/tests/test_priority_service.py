# Overview: Pytest coverage for FIFO priority scoring.

from datetime import date, timedelta

import pytest

from fifo_ledger.services.priority_service import (
    BAND_CRITICAL,
    BAND_EXPIRED,
    BAND_OK,
    BAND_WARNING,
    compute_priority,
    days_until_expiry,
    expiry_band,
    score_for_days,
)


AS_OF = date(2026, 3, 1)


class TestScoreForDays:
    @pytest.mark.parametrize("days,expected", [
        (-10, 100),
        (-1, 100),
        (0, 100),
        (1, 80),
        (3, 80),
        (4, 50),
        (7, 50),
        (8, 25),
        (14, 25),
        (15, 23),
        (29, 1),
        (30, 0),
        (365, 0),
    ])
    def test_band_boundaries(self, days, expected):
        assert score_for_days(days) == expected

    def test_bounded(self):
        for days in range(-60, 400):
            assert 0 <= score_for_days(days) <= 100

    def test_never_increases_as_expiry_moves_out(self):
        scores = [score_for_days(d) for d in range(-30, 120)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))


class TestComputePriority:
    def test_three_days_out_scores_80(self):
        """A lot received today that expires in three days scores 80."""
        priority = compute_priority(AS_OF + timedelta(days=3), as_of=AS_OF)
        assert priority.score == 80
        assert priority.days_until_expiry == 3

    def test_expired_lot_is_negative_days(self):
        priority = compute_priority(AS_OF - timedelta(days=2), as_of=AS_OF)
        assert priority.days_until_expiry == -2
        assert priority.score == 100

    def test_default_as_of_is_today(self):
        from fifo_ledger.time_utils import today
        assert days_until_expiry(today() + timedelta(days=5)) == 5


class TestExpiryBand:
    def test_bands(self):
        assert expiry_band(-1) == BAND_EXPIRED
        assert expiry_band(0) == BAND_CRITICAL
        assert expiry_band(7) == BAND_CRITICAL
        assert expiry_band(8) == BAND_WARNING
        assert expiry_band(14) == BAND_WARNING
        assert expiry_band(15) == BAND_OK
