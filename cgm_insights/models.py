"""Core data models for CGM analytics and adaptive learning."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Sequence


@dataclass(frozen=True)
class Reading:
    """Single timestamped scalar measurement (glucose mg/dL, insulin units, ...)."""

    timestamp: datetime
    value: float
    unit: Optional[str] = None


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class HypoglycemiaSeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class CorrelationPattern(str, Enum):
    """Lead/lag relationship between glucose and insulin series."""

    INSUFFICIENT_DATA = "insufficient_data"
    INSULIN_LEADS_GLUCOSE = "insulin_leads_glucose"
    GLUCOSE_LEADS_INSULIN = "glucose_leads_insulin"
    SYNCHRONOUS_CHANGES = "synchronous_changes"


class AdaptationLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PerformanceTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass(frozen=True)
class RegressionResult:
    slope: float
    intercept: float
    correlation: float


@dataclass(frozen=True)
class AnomalyResult:
    anomalies: Sequence[float]
    mean: float
    std: float
    z_scores: Sequence[float]


@dataclass(frozen=True)
class TimeSeriesResult:
    trend: TrendDirection
    seasonality: bool
    volatility: float
    prediction: float


@dataclass(frozen=True)
class ClusterResult:
    """Outcome of 1-D k-means; ``inertia_history`` holds one entry per iteration."""

    clusters: Sequence[int]
    centroids: Sequence[float]
    inertia: float
    iterations: int = 0
    inertia_history: Sequence[float] = field(default_factory=tuple)


@dataclass(frozen=True)
class CorrelationResult:
    correlation: float
    lag: int
    pattern: CorrelationPattern
    confidence: float
    recommendations: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class HypoglycemiaResult:
    episodes: int
    frequency: float
    severity: HypoglycemiaSeverity
    risk_factors: Sequence[str] = field(default_factory=tuple)
    prevention: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class MedicationResult:
    effectiveness: float
    improvement: bool
    statistical_significance: bool
    t_statistic: float = 0.0
    recommendations: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class GlucoseSummary:
    """Descriptive statistics over a glucose series."""

    total_readings: int
    start: Optional[datetime]
    end: Optional[datetime]
    mean_glucose: float
    glucose_variability: float
    time_in_range: float
    percent_low: float
    percent_high: float
    hypoglycemia_readings: int


@dataclass(frozen=True)
class LifestyleSnapshot:
    """Point-in-time lifestyle context used by the insight aggregator."""

    exercise: bool
    stress: float
    sleep: float


@dataclass(frozen=True)
class MedicationWindow:
    """Glucose values recorded before and after a medication change."""

    before: Sequence[float]
    after: Sequence[float]
    name: Optional[str] = None


@dataclass(frozen=True)
class PatternInsight:
    """One analyzer output wrapped with a fixed confidence."""

    type: str
    data: Any
    confidence: float


@dataclass(frozen=True)
class InsightBundle:
    patterns: Sequence[PatternInsight]
    risks: Sequence[str]
    recommendations: Sequence[str]
    confidence: float
    summary: Optional[GlucoseSummary] = None
    ensemble_weights: Mapping[str, float] = field(default_factory=dict)


# Learning feedback inputs


@dataclass(frozen=True)
class GlucoseFeedback:
    timestamp: datetime
    value: float
    actual: Optional[float] = None


@dataclass(frozen=True)
class InsulinFeedback:
    timestamp: datetime
    value: float
    effectiveness: Optional[float] = None


@dataclass(frozen=True)
class EnvironmentalFeedback:
    timestamp: datetime
    temperature: float
    humidity: float
    air_quality: float
    actual_impact: Optional[float] = None


@dataclass(frozen=True)
class LifestyleFeedback:
    timestamp: datetime
    exercise: bool
    stress: float
    sleep: float
    glucose_impact: Optional[float] = None


@dataclass(frozen=True)
class LearningBatch:
    """Feedback for one learning cycle; ``None`` means the domain was not supplied."""

    glucose: Optional[Sequence[GlucoseFeedback]] = None
    insulin: Optional[Sequence[InsulinFeedback]] = None
    environmental: Optional[Sequence[EnvironmentalFeedback]] = None
    lifestyle: Optional[Sequence[LifestyleFeedback]] = None

    def supplied_domains(self) -> list[str]:
        return [
            name
            for name in ("glucose", "insulin", "environmental", "lifestyle")
            if getattr(self, name) is not None
        ]


# Learning memory entries


@dataclass(frozen=True)
class GlucoseMemoryEntry:
    timestamp: datetime
    predicted: float
    actual: float
    error: float
    context: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InsulinMemoryEntry:
    timestamp: datetime
    dose: float
    expected_effectiveness: float
    actual_effectiveness: float
    error: float
    context: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EnvironmentalMemoryEntry:
    timestamp: datetime
    temperature: float
    humidity: float
    air_quality: float
    predicted_impact: float
    actual_impact: float
    error: float


@dataclass(frozen=True)
class LifestyleMemoryEntry:
    timestamp: datetime
    exercise: bool
    stress: float
    sleep: float
    predicted_impact: float
    actual_impact: float
    error: float


# Learning outputs


@dataclass(frozen=True)
class PerformanceMetric:
    timestamp: datetime
    overall_improvement: float
    individual_improvements: Mapping[str, float] = field(default_factory=dict)
    model_accuracies: Mapping[str, float] = field(default_factory=dict)
    adaptive_weights: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class LearningOutcome:
    learning_outcome: str
    accuracy_improvements: Mapping[str, float]
    new_insights: Sequence[str]
    adaptation_level: AdaptationLevel


@dataclass(frozen=True)
class SystemStatus:
    """Read-only snapshot of an engine; never shares containers with it."""

    memory_usage: Mapping[str, int]
    model_accuracy: Mapping[str, float]
    adaptive_weights: Mapping[str, float]
    recent_performance: Sequence[PerformanceMetric]
    learning_rate: float


@dataclass(frozen=True)
class LearningInsights:
    top_insights: Sequence[str]
    performance_trend: PerformanceTrend
    recommendation: str
