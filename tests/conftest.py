"""Root test configuration — shared fixtures for all test modules.

Environment variables are set BEFORE any quantsim imports so that Settings
loads predictable values regardless of the developer's environment.
"""

from __future__ import annotations

import os

os.environ.setdefault("QUANTSIM_DATA_DIR", "data")

import math
import random

import pytest

from quantsim.common.config import get_settings
from quantsim.common.schemas import PricePoint
from tests.factories import make_prices

# ─── Clear cached settings so test env vars are used ───
get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Each test sees freshly loaded settings."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ─── Price Series ───


@pytest.fixture
def flat_prices() -> list[PricePoint]:
    """Five days at a constant close of 100."""
    return make_prices([100.0] * 5)


@pytest.fixture
def wave_prices() -> list[PricePoint]:
    """120 days of a slow sine wave around 100."""
    return make_prices([100.0 + 10.0 * math.sin(i / 8.0) for i in range(120)])


@pytest.fixture
def trending_prices() -> list[PricePoint]:
    """150 days of a seeded noisy upward drift."""
    rng = random.Random(7)
    closes = [100.0]
    for _ in range(149):
        closes.append(closes[-1] * (1 + rng.gauss(0.001, 0.01)))
    return make_prices(closes)
