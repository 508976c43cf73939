from datetime import date, timedelta

import numpy as np
import pytest

from draw_records import Record, SEED_RECORDS, to_date


def make_records(rows):
    return [Record(date=to_date(d), am=am, pm=pm) for d, am, pm in rows]


@pytest.fixture
def seed_history():
    """The eight reference draws, newest first."""
    return make_records(SEED_RECORDS)


@pytest.fixture
def five_day_history():
    """43/91, 42/44, 71/68, 31/76, 45/05 (Fri back to Mon)."""
    return make_records(SEED_RECORDS[:5])


@pytest.fixture
def quiet_history():
    """Digits only from {1,2,4,7,8,9}; nothing points at 50."""
    return make_records([
        ("2026-01-23", "12", "24"),
        ("2026-01-22", "17", "42"),
        ("2026-01-21", "18", "44"),
        ("2026-01-20", "19", "27"),
        ("2026-01-19", "22", "48"),
    ])


def weekday_dates(start, n):
    out = []
    d = start
    while len(out) < n:
        if d.weekday() < 5:
            out.append(d)
        d += timedelta(days=1)
    return out


@pytest.fixture
def long_history():
    """80 pseudo-random weekday draws, newest first."""
    rng = np.random.default_rng(7)
    values = rng.integers(0, 100, size=(80, 2))
    dates = weekday_dates(date(2025, 6, 2), 80)
    recs = [Record(date=d, am=f"{a:02d}", pm=f"{b:02d}") for d, (a, b) in zip(dates, values)]
    return sorted(recs, key=lambda r: r.date, reverse=True)
