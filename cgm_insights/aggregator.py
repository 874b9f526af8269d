"""Orchestrates the stateless analyzers into one insight bundle."""
from __future__ import annotations

from typing import Final, Iterable, Mapping, Sequence

import numpy as np

from .clustering import k_means_clustering
from .config import LearningSettings
from .correlation import analyze_glucose_insulin_patterns
from .features import summarize_glucose
from .hypoglycemia import detect_hypoglycemia_patterns
from .learning import DEFAULT_ADAPTIVE_WEIGHTS
from .medication import analyze_medication_effectiveness
from .models import (
    HypoglycemiaSeverity,
    InsightBundle,
    LifestyleSnapshot,
    MedicationWindow,
    PatternInsight,
    Reading,
    TrendDirection,
)
from .timeseries import analyze_time_series, detect_anomalies
from .utils import sort_readings

GLUCOSE_CONFIDENCE: Final[float] = 0.3
INSULIN_CONFIDENCE: Final[float] = 0.2
LIFESTYLE_CONFIDENCE: Final[float] = 0.1
STRONG_CORRELATION: Final[float] = 0.7
ANOMALY_RATE_LIMIT: Final[float] = 0.1
HIGH_STRESS: Final[float] = 7.0
MIN_SLEEP_HOURS: Final[float] = 7.0
GLUCOSE_CLUSTERS: Final[int] = 3


class InsightAggregator:
    """Runs the analyzers that apply to the supplied data and merges their outputs.

    The overall confidence is an additive, capped score per data domain present,
    not a calibrated probability. ``weights`` are the ensemble weights from the
    most recent learning cycle and are reported back in every bundle.
    """

    def __init__(
        self,
        weights: Mapping[str, float] | None = None,
        *,
        settings: LearningSettings | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._weights = dict(weights) if weights is not None else dict(DEFAULT_ADAPTIVE_WEIGHTS)
        self._settings = settings or LearningSettings()
        self._rng = rng

    def generate_comprehensive_insights(
        self,
        glucose: Sequence[Reading],
        insulin: Sequence[Reading] | None = None,
        medication: MedicationWindow | None = None,
        lifestyle: LifestyleSnapshot | None = None,
    ) -> InsightBundle:
        patterns: list[PatternInsight] = []
        risks: list[str] = []
        recommendations: list[str] = []
        confidence = 0.0

        ordered_glucose = sort_readings(glucose)
        summary = None

        if ordered_glucose:
            values = [reading.value for reading in ordered_glucose]
            time_series = analyze_time_series(ordered_glucose)
            anomalies = detect_anomalies(values, threshold=self._settings.anomaly_threshold)
            hypoglycemia = detect_hypoglycemia_patterns(ordered_glucose)
            clusters = k_means_clustering(values, min(GLUCOSE_CLUSTERS, len(values)), rng=self._rng)
            summary = summarize_glucose(ordered_glucose)

            patterns.append(PatternInsight(type="glucose_trend", data=time_series, confidence=0.8))
            patterns.append(PatternInsight(type="glucose_anomalies", data=anomalies, confidence=0.7))
            patterns.append(PatternInsight(type="hypoglycemia_risk", data=hypoglycemia, confidence=0.9))
            patterns.append(PatternInsight(type="glucose_clusters", data=clusters, confidence=0.6))

            if hypoglycemia.severity is HypoglycemiaSeverity.SEVERE:
                risks.append("High risk of severe hypoglycemia")
            if time_series.trend is TrendDirection.INCREASING:
                risks.append("Glucose levels trending upward")
            if len(anomalies.anomalies) > len(values) * ANOMALY_RATE_LIMIT:
                risks.append("High glucose variability detected")
            if hypoglycemia.episodes > 0:
                recommendations.extend(hypoglycemia.prevention)

            confidence += GLUCOSE_CONFIDENCE

        if insulin and ordered_glucose:
            correlation = analyze_glucose_insulin_patterns(ordered_glucose, sort_readings(insulin))
            patterns.append(PatternInsight(type="insulin_correlation", data=correlation, confidence=0.8))
            if correlation.confidence > STRONG_CORRELATION:
                recommendations.extend(correlation.recommendations)
            confidence += INSULIN_CONFIDENCE

        if medication is not None:
            effectiveness = analyze_medication_effectiveness(medication.before, medication.after)
            patterns.append(PatternInsight(type="medication_effectiveness", data=effectiveness, confidence=0.7))
            recommendations.extend(effectiveness.recommendations)

        if lifestyle is not None:
            if lifestyle.exercise:
                recommendations.append("Exercise detected - monitor glucose during and after physical activity")
            if lifestyle.stress > HIGH_STRESS:
                risks.append("High stress levels may affect glucose control")
                recommendations.append("Consider stress management techniques")
            if lifestyle.sleep < MIN_SLEEP_HOURS:
                risks.append("Insufficient sleep may affect glucose metabolism")
                recommendations.append("Aim for 7-9 hours of sleep per night")
            confidence += LIFESTYLE_CONFIDENCE

        return InsightBundle(
            patterns=tuple(patterns),
            risks=tuple(risks),
            recommendations=tuple(_unique(recommendations)),
            confidence=min(confidence, 1.0),
            summary=summary,
            ensemble_weights=dict(self._weights),
        )


def _unique(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered
