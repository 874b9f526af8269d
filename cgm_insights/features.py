"""Summary metrics over a glucose series."""
from __future__ import annotations

from typing import Final, Iterable

import numpy as np

from .models import GlucoseSummary, Reading
from .utils import sample_std, sort_readings

LOW_THRESHOLD: Final[float] = 70.0
HIGH_THRESHOLD: Final[float] = 180.0


def summarize_glucose(
    readings: Iterable[Reading],
    low_threshold: float = LOW_THRESHOLD,
    high_threshold: float = HIGH_THRESHOLD,
) -> GlucoseSummary:
    """Aggregate a glucose series into mean, variability and range percentages."""

    ordered = sort_readings(readings)
    if not ordered:
        return GlucoseSummary(
            total_readings=0,
            start=None,
            end=None,
            mean_glucose=0.0,
            glucose_variability=0.0,
            time_in_range=0.0,
            percent_low=0.0,
            percent_high=0.0,
            hypoglycemia_readings=0,
        )

    values = np.array([reading.value for reading in ordered], dtype=float)
    total = len(values)
    low_mask = values < low_threshold
    high_mask = values > high_threshold
    in_range = ~(low_mask | high_mask)

    return GlucoseSummary(
        total_readings=total,
        start=ordered[0].timestamp,
        end=ordered[-1].timestamp,
        mean_glucose=float(values.mean()),
        glucose_variability=sample_std(values),
        time_in_range=float(in_range.sum()) / total * 100,
        percent_low=float(low_mask.sum()) / total * 100,
        percent_high=float(high_mask.sum()) / total * 100,
        hypoglycemia_readings=int(low_mask.sum()),
    )
