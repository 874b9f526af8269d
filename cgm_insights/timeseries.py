"""Descriptive time-series statistics: regression, anomalies, trend, seasonality."""
from __future__ import annotations

import math
from typing import Final, Iterable, Sequence

import numpy as np

from .models import AnomalyResult, Reading, RegressionResult, TimeSeriesResult, TrendDirection
from .utils import sample_std, sort_readings

DEFAULT_ANOMALY_THRESHOLD: Final[float] = 2.0
STABLE_SLOPE_LIMIT: Final[float] = 0.1
SEASONALITY_MIN_POINTS: Final[int] = 6
SEASONALITY_THRESHOLD: Final[float] = 0.3


def linear_regression(x: Sequence[float], y: Sequence[float]) -> RegressionResult:
    """Least-squares fit of ``y`` on ``x`` with the Pearson correlation.

    Mismatched lengths or fewer than two points yield an all-zero result.
    """

    if len(x) != len(y) or len(x) < 2:
        return RegressionResult(slope=0.0, intercept=0.0, correlation=0.0)

    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    n = len(xs)

    sum_x = xs.sum()
    sum_y = ys.sum()
    denominator = n * float(np.dot(xs, xs)) - sum_x * sum_x
    slope = (n * float(np.dot(xs, ys)) - sum_x * sum_y) / denominator if denominator != 0 else 0.0
    intercept = (sum_y - slope * sum_x) / n

    dx = xs - xs.mean()
    dy = ys - ys.mean()
    spread = math.sqrt(float(np.dot(dx, dx))) * math.sqrt(float(np.dot(dy, dy)))
    correlation = float(np.dot(dx, dy)) / spread if spread != 0 else 0.0

    return RegressionResult(slope=float(slope), intercept=float(intercept), correlation=correlation)


def detect_anomalies(values: Sequence[float], threshold: float = DEFAULT_ANOMALY_THRESHOLD) -> AnomalyResult:
    """Flag values whose z-score (sample std) exceeds ``threshold`` in magnitude."""

    data = np.asarray(values, dtype=float)
    if len(data) < 2:
        return AnomalyResult(
            anomalies=(),
            mean=float(data[0]) if len(data) else 0.0,
            std=0.0,
            z_scores=(),
        )

    mean = float(data.mean())
    std = sample_std(data)
    if std == 0:
        z_scores = np.zeros(len(data))
    else:
        z_scores = (data - mean) / std
    mask = np.abs(z_scores) > threshold

    return AnomalyResult(
        anomalies=tuple(float(value) for value in data[mask]),
        mean=mean,
        std=std,
        z_scores=tuple(float(score) for score in z_scores),
    )


def detect_seasonality(values: Sequence[float]) -> bool:
    """Autocorrelation check at lag ``n // 4``, normalized by the population variance."""

    data = np.asarray(values, dtype=float)
    n = len(data)
    if n < SEASONALITY_MIN_POINTS:
        return False

    variance = float(np.var(data))
    if variance == 0:
        return False

    lag = n // 4
    centred = data - data.mean()
    autocovariance = float(np.dot(centred[: n - lag], centred[lag:])) / (n - lag)
    return abs(autocovariance / variance) > SEASONALITY_THRESHOLD


def classify_trend(slope: float) -> TrendDirection:
    if abs(slope) < STABLE_SLOPE_LIMIT:
        return TrendDirection.STABLE
    return TrendDirection.INCREASING if slope > 0 else TrendDirection.DECREASING


def analyze_time_series(readings: Iterable[Reading]) -> TimeSeriesResult:
    """Trend, seasonality, volatility and a one-step linear extrapolation."""

    ordered = sort_readings(readings)
    if len(ordered) < 3:
        return TimeSeriesResult(
            trend=TrendDirection.STABLE,
            seasonality=False,
            volatility=0.0,
            prediction=0.0,
        )

    values = np.array([reading.value for reading in ordered], dtype=float)
    regression = linear_regression(np.arange(len(values), dtype=float), values)

    return TimeSeriesResult(
        trend=classify_trend(regression.slope),
        seasonality=detect_seasonality(values),
        volatility=sample_std(values),
        prediction=float(values[-1] + regression.slope),
    )
