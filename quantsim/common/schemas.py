"""Pydantic schemas — the data shapes shared by every quantsim module.

RULES:
- Price records and derived observations are immutable (frozen models).
- A price series is a plain ``list[PricePoint]`` ordered ascending by date.
- History handed to a strategy is ordered most-recent-first.
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ─── Signals ───


class TradeSignal(StrEnum):
    """Decision emitted by a strategy for one date."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


# ─── Price Data ───


class PricePoint(BaseModel):
    """One daily OHLCV bar for a symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(default=0, ge=0)


class NormalizedObservation(BaseModel):
    """A dated scalar derived from a price series.

    ``value`` is either the z-scored close (see ``standardize``) or the raw
    close (see ``to_observations``), depending on what the consumer needs.
    """

    model_config = ConfigDict(frozen=True)

    date: date
    value: float


# ─── Portfolio ───


class PortfolioState(BaseModel):
    """Single-position account: fully in cash or fully invested."""

    cash: float = 0.0
    shares: float = 0.0

    @property
    def is_invested(self) -> bool:
        """True when the account holds shares."""
        return self.shares > 0


class Trade(BaseModel):
    """A closed round trip (BUY followed by SELL)."""

    model_config = ConfigDict(frozen=True)

    entry_date: date
    exit_date: date
    entry_price: float
    exit_price: float
    net_profit_fraction: float
    synthetic: bool = False  # closed at the last price for win-rate purposes only

    @property
    def won(self) -> bool:
        """A trade wins when its fee-adjusted return is strictly positive."""
        return self.net_profit_fraction > 0


# ─── Reports ───


class MetricReport(BaseModel):
    """Risk-adjusted performance summary for one backtest."""

    annualized_return: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    win_rate: float = 0.0
