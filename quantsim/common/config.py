"""Application configuration via environment variables.

Uses pydantic-settings to load from .env file and environment variables
(prefixed with QUANTSIM_). All config is centralized here; import `get_settings()`.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="QUANTSIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ─── App ───
    log_level: str = "INFO"

    # ─── Data ───
    data_dir: str = "data"
    date_format: str = "%Y-%m-%d"
    model_dir: str = "models"

    # ─── Strategy ───
    strategy_type: str = "moving_average"
    short_window: int = Field(default=5, ge=1)
    long_window: int = Field(default=20, ge=2)
    lookback_window: int = Field(default=10, ge=1)
    buy_threshold: float = 0.01
    sell_threshold: float = -0.01

    # ─── Ensemble Regressor ───
    num_trees: int = Field(default=100, ge=1)
    max_depth: int = Field(default=10, ge=1)
    random_seed: int = 42

    # ─── Evaluation ───
    initial_capital: float = Field(default=10_000.0, gt=0)
    transaction_fee: float = Field(default=0.001, ge=0.0, lt=1.0)
    risk_free_rate: float = 0.02
    trading_days_per_year: int = Field(default=252, ge=1)

    @model_validator(mode="after")
    def validate_windows(self) -> Settings:
        """Ensure the crossover windows are ordered."""
        if self.short_window >= self.long_window:
            msg = f"short_window ({self.short_window}) must be < long_window ({self.long_window})"
            raise ValueError(msg)
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton.

    Uses lru_cache so Settings is only instantiated once.
    In tests, call `get_settings.cache_clear()` to reset.
    """
    return Settings()
