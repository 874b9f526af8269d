"""CGM analytics: pattern detection and adaptive learning over physiological time series."""

from .aggregator import InsightAggregator
from .clustering import k_means_clustering
from .config import LearningSettings
from .correlation import analyze_glucose_insulin_patterns
from .features import summarize_glucose
from .hypoglycemia import detect_hypoglycemia_patterns
from .learning import AdaptiveLearningEngine
from .medication import SIGNIFICANCE_T_THRESHOLD, analyze_medication_effectiveness
from .models import (
    AdaptationLevel,
    CorrelationPattern,
    EnvironmentalFeedback,
    GlucoseFeedback,
    HypoglycemiaSeverity,
    InsightBundle,
    InsulinFeedback,
    LearningBatch,
    LearningOutcome,
    LifestyleFeedback,
    LifestyleSnapshot,
    MedicationWindow,
    PerformanceTrend,
    Reading,
    SystemStatus,
    TrendDirection,
)
from .timeseries import analyze_time_series, detect_anomalies, detect_seasonality, linear_regression

__all__ = [
    "AdaptationLevel",
    "AdaptiveLearningEngine",
    "CorrelationPattern",
    "EnvironmentalFeedback",
    "GlucoseFeedback",
    "HypoglycemiaSeverity",
    "InsightAggregator",
    "InsightBundle",
    "InsulinFeedback",
    "LearningBatch",
    "LearningOutcome",
    "LearningSettings",
    "LifestyleFeedback",
    "LifestyleSnapshot",
    "MedicationWindow",
    "PerformanceTrend",
    "Reading",
    "SIGNIFICANCE_T_THRESHOLD",
    "SystemStatus",
    "TrendDirection",
    "analyze_glucose_insulin_patterns",
    "analyze_medication_effectiveness",
    "analyze_time_series",
    "detect_anomalies",
    "detect_hypoglycemia_patterns",
    "detect_seasonality",
    "k_means_clustering",
    "linear_regression",
    "summarize_glucose",
]
