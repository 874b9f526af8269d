"""Shared helpers for turning reading sequences into analysis-ready frames."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence, Union

import numpy as np
import pandas as pd

from .models import Reading

SeriesLike = Union[Sequence[Reading], Sequence[float]]


def sort_readings(readings: Iterable[Reading]) -> list[Reading]:
    """Return readings ordered by timestamp; duplicates keep their input order."""

    return sorted(readings, key=lambda reading: reading.timestamp)


def prepare_series(readings: Iterable[Reading]) -> pd.DataFrame:
    """Return a timestamp-ordered frame with ``timestamp``, ``value`` and local ``hour`` columns.

    Hours come from each timestamp as supplied, so callers control the local
    timezone by the datetimes they pass in.
    """

    ordered = sort_readings(readings)
    if not ordered:
        return pd.DataFrame(
            {
                "timestamp": pd.Series(dtype="object"),
                "value": pd.Series(dtype="float64"),
                "hour": pd.Series(dtype="int64"),
            }
        )
    return pd.DataFrame(
        {
            "timestamp": [reading.timestamp for reading in ordered],
            "value": np.array([reading.value for reading in ordered], dtype=float),
            "hour": np.array([reading.timestamp.hour for reading in ordered], dtype=int),
        }
    )


def series_values(series: SeriesLike) -> np.ndarray:
    """Return float values, sorting by timestamp first when given readings."""

    items = list(series)
    if items and isinstance(items[0], Reading):
        return np.array([reading.value for reading in sort_readings(items)], dtype=float)
    return np.asarray(items, dtype=float)


def sample_std(values: np.ndarray) -> float:
    """Sample standard deviation (n-1); 0.0 for fewer than two values."""

    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))


def season_of(timestamp: datetime) -> str:
    month = timestamp.month
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "autumn"
    return "winter"
