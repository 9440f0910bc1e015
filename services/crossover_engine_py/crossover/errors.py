"""Exceptions raised by the crossover engine.

Neither error is recovered from inside the engine: a run either produces
every row from properly seeded averages or fails as a whole.
"""
from __future__ import annotations


class CrossoverError(Exception):
    """Base class for crossover engine errors."""


class InsufficientDataError(CrossoverError, ValueError):
    """A price series is shorter than the period needed to seed an EMA."""

    def __init__(self, period: int, available: int):
        self.period = period
        self.available = available
        super().__init__(
            f"Need at least {period} prices to seed EMA, got {available}."
        )


class DataSourceError(CrossoverError, RuntimeError):
    """Upstream price retrieval failed or returned unusable data."""
