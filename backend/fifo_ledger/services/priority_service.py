# Overview: FIFO urgency scoring; pure functions over expiration dates.

from __future__ import annotations

from datetime import date
from typing import NamedTuple

from ..time_utils import today
"""
FIFO priority policy (authoritative)

- Score is an integer in [0, 100]; higher means "use or move this first".
- Score never increases as days_until_expiry grows.
- Expired or expiring today saturates at 100; 30+ days out is 0.
- Bands: <=0 -> 100, 1-3 -> 80, 4-7 -> 50, 8-14 -> 25,
  15-29 -> linear decline from 23 to 1, >=30 -> 0.
- days_until_expiry is calendar days between as_of and expiration_date
  (negative once expired).

The score stored on a lot is a display cache; recompute with
compute_priority() whenever freshness matters.
"""

MAX_SCORE = 100
HORIZON_DAYS = 30

# (upper bound of days_until_expiry, score), checked in order
PRIORITY_BANDS = (
    (0, MAX_SCORE),
    (3, 80),
    (7, 50),
    (14, 25),
)

# Dashboard colour classes
BAND_EXPIRED = "expired"
BAND_CRITICAL = "critical"
BAND_WARNING = "warning"
BAND_OK = "ok"


class Priority(NamedTuple):
    score: int
    days_until_expiry: int


def days_until_expiry(expiration_date: date, as_of: date | None = None) -> int:
    return (expiration_date - (as_of or today())).days


def score_for_days(days: int) -> int:
    for upper, score in PRIORITY_BANDS:
        if days <= upper:
            return score
    if days >= HORIZON_DAYS:
        return 0
    # 15..29 days: slide from just under the last band down to 1
    last_upper, last_score = PRIORITY_BANDS[-1]
    span = HORIZON_DAYS - last_upper
    return (HORIZON_DAYS - days) * last_score // span


def compute_priority(expiration_date: date, as_of: date | None = None) -> Priority:
    """Score a lot from its expiration date as of a given day (default: today)."""
    days = days_until_expiry(expiration_date, as_of)
    return Priority(score=score_for_days(days), days_until_expiry=days)


def expiry_band(days: int) -> str:
    """Colour class used by the dashboard: red up to a week, orange up to two."""
    if days < 0:
        return BAND_EXPIRED
    if days <= 7:
        return BAND_CRITICAL
    if days <= 14:
        return BAND_WARNING
    return BAND_OK
