"""Pydantic schemas for backtesting configuration and results."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from quantsim.common.config import Settings
from quantsim.common.schemas import MetricReport, Trade, TradeSignal

# ─── Configuration ───


class BacktestConfig(BaseModel):
    """Evaluation parameters for a backtest run."""

    initial_capital: float = Field(default=10_000.0, gt=0)
    transaction_fee: float = Field(default=0.001, ge=0.0, lt=1.0)  # fraction per side
    risk_free_rate: float = 0.02  # annual
    trading_days_per_year: int = Field(default=252, ge=1)

    @classmethod
    def from_settings(cls, settings: Settings) -> BacktestConfig:
        """Build a config from application settings."""
        return cls(
            initial_capital=settings.initial_capital,
            transaction_fee=settings.transaction_fee,
            risk_free_rate=settings.risk_free_rate,
            trading_days_per_year=settings.trading_days_per_year,
        )


# ─── Simulation ───


class SimulationStep(BaseModel):
    """Account state at the close of one simulated day (after its signal)."""

    date: date
    price: float
    signal: TradeSignal | None = None  # signal present for the day, executed or not
    executed: bool = False
    cash: float
    shares: float
    value: float


class OpenPosition(BaseModel):
    """A BUY that has not been closed by a SELL."""

    entry_date: date
    entry_price: float


class SimulationResult(BaseModel):
    """Full value and trade trajectory of one simulated run."""

    initial_capital: float
    transaction_fee: float
    steps: list[SimulationStep] = []
    trades: list[Trade] = []
    open_position: OpenPosition | None = None

    @property
    def values(self) -> list[float]:
        """Portfolio value per step."""
        return [s.value for s in self.steps]

    @property
    def final_value(self) -> float:
        """Value at the last step (open positions marked to market)."""
        return self.steps[-1].value if self.steps else self.initial_capital


# ─── Full Backtest Result ───


class BacktestResult(BaseModel):
    """Complete result of a backtest run."""

    symbol: str
    strategy: str
    config: BacktestConfig
    signals: dict[date, TradeSignal] = {}
    report: MetricReport = MetricReport()
    steps: list[SimulationStep] = []
    trades: list[Trade] = []
    predictions: dict[date, float] = {}
    feature_importance: dict[str, float] = {}
    prediction_errors: dict[str, float] | None = None
    training_samples: int = 0
    total_days_simulated: int = 0
    duration_seconds: float = 0.0
