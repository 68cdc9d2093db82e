"""quantsim — daily-bar strategy backtesting with a bagged-tree price model."""

from __future__ import annotations

__version__ = "0.1.0"
