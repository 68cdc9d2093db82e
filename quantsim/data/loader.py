"""Data loader — reads price history from CSV or generates synthetic prices.

Provides functions to:
1. Load a symbol's daily bars from a local CSV file
2. Generate a synthetic daily price series for offline runs and tests
3. Standardize a series into z-scored observations
4. Slice the most-recent-first history that strategies consume

Usage:
    from quantsim.data.loader import load_price_csv, standardize

    prices = load_price_csv("data/AAPL.csv", symbol="AAPL")
    observations = standardize(prices)
"""

from __future__ import annotations

import math
import random
from datetime import date, timedelta
from pathlib import Path

import numpy as np
import pandas as pd

from quantsim.common.exceptions import DataLoadError
from quantsim.common.logging import get_logger
from quantsim.common.schemas import NormalizedObservation, PricePoint

logger = get_logger("DATA")

CSV_COLUMNS: list[str] = ["Date", "Open", "High", "Low", "Close", "Volume"]


def load_price_csv(
    path: str | Path,
    symbol: str,
    start: date | None = None,
    end: date | None = None,
    date_format: str = "%Y-%m-%d",
) -> list[PricePoint]:
    """Load daily bars from a ``Date,Open,High,Low,Close,Volume`` CSV file.

    Rows outside [start, end] are dropped, the result is sorted ascending
    and duplicate dates keep their first occurrence.

    Args:
        path: CSV file path.
        symbol: Symbol stamped on every PricePoint.
        start: Inclusive lower date bound (None = unbounded).
        end: Inclusive upper date bound (None = unbounded).
        date_format: strptime format of the Date column.

    Returns:
        Ascending list of PricePoint.

    Raises:
        DataLoadError: If the file is missing or lacks required columns.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise DataLoadError("Price file not found", context={"path": str(csv_path)})

    try:
        frame = pd.read_csv(csv_path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataLoadError(
            "Failed to parse price file", context={"path": str(csv_path), "error": str(e)}
        ) from e

    missing = [col for col in CSV_COLUMNS if col not in frame.columns]
    if missing:
        raise DataLoadError(
            "Price file is missing required columns",
            context={"path": str(csv_path), "missing": missing},
        )

    try:
        frame["Date"] = pd.to_datetime(frame["Date"], format=date_format).dt.date
    except ValueError as e:
        raise DataLoadError(
            "Unparseable dates in price file",
            context={"path": str(csv_path), "date_format": date_format, "error": str(e)},
        ) from e

    if start is not None:
        frame = frame[frame["Date"] >= start]
    if end is not None:
        frame = frame[frame["Date"] <= end]

    frame = frame.sort_values("Date", kind="stable").drop_duplicates(subset="Date", keep="first")

    prices = [
        PricePoint(
            symbol=symbol,
            date=row.Date,
            open=float(row.Open),
            high=float(row.High),
            low=float(row.Low),
            close=float(row.Close),
            volume=int(row.Volume),
        )
        for row in frame.itertuples(index=False)
    ]

    logger.info(
        "Price history loaded",
        extra={"data": {"symbol": symbol, "path": str(csv_path), "rows": len(prices)}},
    )
    return prices


def generate_synthetic_series(
    symbol: str,
    start: date,
    days: int,
    start_price: float = 100.0,
    drift: float = 0.0003,
    volatility: float = 0.015,
    rng: random.Random | None = None,
) -> list[PricePoint]:
    """Generate a synthetic daily series as a geometric random walk.

    Only weekdays are emitted. Open/high/low are derived from the close
    with a small random intraday range.

    Args:
        symbol: Symbol stamped on every bar.
        start: First candidate calendar date.
        days: Number of trading days to produce.
        start_price: Close of the first bar.
        drift: Mean daily log return.
        volatility: Daily log-return standard deviation.
        rng: Random number generator for reproducibility.

    Returns:
        Ascending list of PricePoint with ``days`` entries.
    """
    if rng is None:
        rng = random.Random()

    prices: list[PricePoint] = []
    current = start
    close = start_price

    while len(prices) < days:
        if current.weekday() < 5:
            if prices:
                close = close * math.exp(rng.gauss(drift, volatility))
            open_ = close * math.exp(rng.gauss(0, volatility / 4))
            spread = abs(rng.gauss(0, volatility / 2))
            high = max(open_, close) * (1 + spread)
            low = min(open_, close) * (1 - spread)
            prices.append(
                PricePoint(
                    symbol=symbol,
                    date=current,
                    open=round(open_, 4),
                    high=round(high, 4),
                    low=round(low, 4),
                    close=round(close, 4),
                    volume=rng.randint(500_000, 5_000_000),
                )
            )
        current += timedelta(days=1)

    return prices


def standardize(prices: list[PricePoint]) -> list[NormalizedObservation]:
    """Z-score the closes of a series: (close - mean) / sample std.

    A series with fewer than two points or zero variance maps every
    observation to 0.0.

    Args:
        prices: Price series (any order; output preserves it).

    Returns:
        One NormalizedObservation per input point.
    """
    if not prices:
        return []

    closes = np.array([p.close for p in prices], dtype=np.float64)
    mean = float(closes.mean())
    std = float(closes.std(ddof=1)) if len(closes) > 1 else 0.0

    if std < 1e-12 or math.isnan(std):
        return [NormalizedObservation(date=p.date, value=0.0) for p in prices]

    return [NormalizedObservation(date=p.date, value=(p.close - mean) / std) for p in prices]


def to_observations(prices: list[PricePoint]) -> list[NormalizedObservation]:
    """Wrap raw closes as observations (value = close)."""
    return [NormalizedObservation(date=p.date, value=p.close) for p in prices]


def history_before(
    observations: list[NormalizedObservation],
    index: int,
) -> list[NormalizedObservation]:
    """Return the points preceding ``index`` ordered most-recent-first.

    Args:
        observations: Ascending observations.
        index: Position of the current observation.

    Returns:
        observations[index-1], observations[index-2], ..., observations[0].
    """
    return observations[:index][::-1]
