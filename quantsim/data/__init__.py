"""Price data helpers — loading, synthetic generation and standardization."""

from __future__ import annotations
