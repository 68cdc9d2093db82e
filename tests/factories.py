"""Test data factories for price series and observation histories.

Usage:
    from tests.factories import make_history, make_prices

    prices = make_prices([100.0, 101.0, 99.5])
    history = make_history([5.0, 4.0, 3.0])
"""

from __future__ import annotations

from datetime import date, timedelta

from quantsim.common.schemas import NormalizedObservation, PricePoint


def make_prices(
    closes: list[float],
    start: date | None = None,
    symbol: str = "TEST",
) -> list[PricePoint]:
    """Consecutive calendar-day bars with the given closes (open = high = low = close)."""
    if start is None:
        start = date(2024, 1, 1)
    return [
        PricePoint(
            symbol=symbol,
            date=start + timedelta(days=i),
            open=close,
            high=close,
            low=close,
            close=close,
            volume=1_000,
        )
        for i, close in enumerate(closes)
    ]


def make_history(values: list[float], current: date | None = None) -> list[NormalizedObservation]:
    """Most-recent-first observations; values[0] is dated the day before ``current``."""
    if current is None:
        current = date(2024, 6, 1)
    return [
        NormalizedObservation(date=current - timedelta(days=i + 1), value=v)
        for i, v in enumerate(values)
    ]


def make_observation(value: float, current: date | None = None) -> NormalizedObservation:
    """A single observation, dated ``current`` (default 2024-06-01)."""
    return NormalizedObservation(date=current or date(2024, 6, 1), value=value)
