"""Lagged cross-correlation between glucose and insulin series."""
from __future__ import annotations

from typing import Final

import numpy as np

from .models import CorrelationPattern, CorrelationResult
from .utils import SeriesLike, series_values

MIN_POINTS: Final[int] = 10
MAX_LAG: Final[int] = 5
STRONG_CORRELATION: Final[float] = 0.7
MODERATE_CORRELATION: Final[float] = 0.4


def _standardized_mean_product(left: np.ndarray, right: np.ndarray) -> float | None:
    """Mean product of the two standardized windows, i.e. their Pearson r."""

    if len(left) == 0:
        return None
    left_std = float(left.std())
    right_std = float(right.std())
    if left_std == 0 or right_std == 0:
        return 0.0
    left_z = (left - left.mean()) / left_std
    right_z = (right - right.mean()) / right_std
    return float(np.mean(left_z * right_z))


def lagged_correlation(glucose: np.ndarray, insulin: np.ndarray, lag: int) -> float | None:
    """Correlate ``glucose[i]`` with ``insulin[i + lag]`` over the overlapping indices."""

    n = len(glucose)
    start = max(0, -lag)
    stop = min(n, len(insulin) - lag)
    if stop <= start:
        return None
    return _standardized_mean_product(glucose[start:stop], insulin[start + lag : stop + lag])


def _strength_note(confidence: float) -> str:
    if confidence > STRONG_CORRELATION:
        return "Strong correlation detected - patterns are reliable"
    if confidence > MODERATE_CORRELATION:
        return "Moderate correlation - consider additional factors"
    return "Weak correlation - patterns may not be reliable"


def analyze_glucose_insulin_patterns(glucose: SeriesLike, insulin: SeriesLike) -> CorrelationResult:
    """Find the lag in ``[-MAX_LAG, MAX_LAG]`` with the strongest glucose/insulin correlation.

    A positive lag means glucose changes show up in insulin ``lag`` steps later.
    """

    glucose_values = series_values(glucose)
    insulin_values = series_values(insulin)
    if len(glucose_values) != len(insulin_values) or len(glucose_values) < MIN_POINTS:
        return CorrelationResult(
            correlation=0.0,
            lag=0,
            pattern=CorrelationPattern.INSUFFICIENT_DATA,
            confidence=0.0,
            recommendations=("Collect more data points for accurate analysis",),
        )

    best_lag = 0
    best_correlation = 0.0
    for lag in range(-MAX_LAG, MAX_LAG + 1):
        correlation = lagged_correlation(glucose_values, insulin_values, lag)
        if correlation is None:
            continue
        if abs(correlation) > abs(best_correlation):
            best_correlation = correlation
            best_lag = lag

    if best_lag < 0:
        pattern = CorrelationPattern.INSULIN_LEADS_GLUCOSE
        recommendations = [
            f"Insulin changes precede glucose changes by {abs(best_lag)} time units",
            "Consider adjusting insulin timing for better glucose control",
        ]
    elif best_lag > 0:
        pattern = CorrelationPattern.GLUCOSE_LEADS_INSULIN
        recommendations = [
            f"Glucose changes precede insulin changes by {best_lag} time units",
            "Monitor glucose trends to predict insulin needs",
        ]
    else:
        pattern = CorrelationPattern.SYNCHRONOUS_CHANGES
        recommendations = [
            "Glucose and insulin changes occur simultaneously",
            "Consider real-time glucose monitoring for immediate insulin adjustments",
        ]

    confidence = abs(best_correlation)
    recommendations.append(_strength_note(confidence))

    return CorrelationResult(
        correlation=best_correlation,
        lag=best_lag,
        pattern=pattern,
        confidence=confidence,
        recommendations=tuple(recommendations),
    )
