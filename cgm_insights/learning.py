"""Online learning loop that recalibrates accuracy estimates and ensemble weights.

Each call to :meth:`AdaptiveLearningEngine.learn_from_new_data` runs four
independent sub-loops (glucose, insulin, environmental, lifestyle). Every
sub-loop predicts the ground truth it is given, stores the prediction error
in a bounded memory, and reports a mean improvement score in ``[0, 1]``. The
improvements then drive ensemble weight adaptation and the self-tuning
learning rate, and a performance snapshot is appended to a capped history.

The engine is a single-writer object. All public methods hold the same
re-entrant lock, so one instance may be shared between threads, but a learning
call always runs to completion before the next begins.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Final, Mapping, Sequence

from .config import MAX_LEARNING_RATE, MIN_LEARNING_RATE, LearningSettings
from .memory import BoundedMemory
from .models import (
    AdaptationLevel,
    EnvironmentalFeedback,
    EnvironmentalMemoryEntry,
    GlucoseFeedback,
    GlucoseMemoryEntry,
    InsulinFeedback,
    InsulinMemoryEntry,
    LearningBatch,
    LearningInsights,
    LearningOutcome,
    LifestyleFeedback,
    LifestyleMemoryEntry,
    PerformanceMetric,
    PerformanceTrend,
    SystemStatus,
)
from .utils import season_of

GLUCOSE_PREDICTION: Final[str] = "glucose_prediction"
INSULIN_OPTIMIZATION: Final[str] = "insulin_optimization"
ENVIRONMENTAL_CORRELATION: Final[str] = "environmental_correlation"
LIFESTYLE_CORRELATION: Final[str] = "lifestyle_correlation"

DEFAULT_MODEL_ACCURACY: Final[Mapping[str, float]] = {
    GLUCOSE_PREDICTION: 0.8,
    INSULIN_OPTIMIZATION: 0.75,
    "risk_assessment": 0.85,
    "pattern_detection": 0.8,
}
DEFAULT_ADAPTIVE_WEIGHTS: Final[Mapping[str, float]] = {
    "neural": 0.4,
    "statistical": 0.3,
    "temporal": 0.2,
    "environmental": 0.1,
}
# Ensemble method credited with each domain's improvement.
WEIGHT_METHOD_BY_DOMAIN: Final[Mapping[str, str]] = {
    GLUCOSE_PREDICTION: "neural",
    INSULIN_OPTIMIZATION: "statistical",
    LIFESTYLE_CORRELATION: "temporal",
    ENVIRONMENTAL_CORRELATION: "environmental",
}

MAX_METHOD_WEIGHT: Final[float] = 0.5
WEIGHT_STEP: Final[float] = 0.1
ACCURACY_STEP: Final[float] = 0.1
HIGH_ACCURACY: Final[float] = 0.9
LOW_ACCURACY: Final[float] = 0.7
HISTORY_LIMIT: Final[int] = 100
STATUS_HISTORY: Final[int] = 10
TREND_WINDOW: Final[int] = 5
TREND_DEAD_ZONE: Final[float] = 0.05
INSIGHT_LIMIT: Final[int] = 5
GLUCOSE_LOOKBACK: Final[int] = 5
DEFAULT_INSULIN_EFFECTIVENESS: Final[float] = 0.8

LARGE_GLUCOSE_ERROR: Final[float] = 30.0
LOW_INSULIN_EFFECTIVENESS: Final[float] = 0.5
COLD_TEMPERATURE: Final[float] = 10.0
HOT_TEMPERATURE: Final[float] = 30.0
HIGH_STRESS_ALERT: Final[float] = 8.0
SHORT_SLEEP_ALERT: Final[float] = 6.0

_TREND_RECOMMENDATIONS: Final[Mapping[PerformanceTrend, str]] = {
    PerformanceTrend.IMPROVING: "Continue current learning approach - system is improving well",
    PerformanceTrend.STABLE: "Consider increasing data diversity to improve learning",
    PerformanceTrend.DECLINING: "Review recent data quality and consider adjusting learning parameters",
}


@dataclass(frozen=True)
class DomainLearning:
    """Outcome of one learning sub-loop, not yet applied to the engine.

    ``entries`` are the memory entries to store once every supplied domain
    has been processed without error.
    """

    key: str
    memory: str
    improvement: float
    insights: Sequence[str] = field(default_factory=tuple)
    entries: Sequence[Any] = field(default_factory=tuple)


def calculate_improvement(error: float) -> float:
    """Map an absolute error onto ``[0, 1]``; an error of 100 or more scores zero."""

    return max(0.0, 1.0 - error / 100.0)


def determine_adaptation_level(total_improvement: float) -> AdaptationLevel:
    if total_improvement > 0.3:
        return AdaptationLevel.HIGH
    if total_improvement > 0.1:
        return AdaptationLevel.MEDIUM
    return AdaptationLevel.LOW


def predict_environmental_impact(reading: EnvironmentalFeedback) -> float:
    """Normalized deviation from a comfortable 20 °C / 50 % humidity baseline."""

    temperature_impact = abs(reading.temperature - 20) / 30
    humidity_impact = abs(reading.humidity - 50) / 50
    return (temperature_impact + humidity_impact) / 2


def predict_lifestyle_impact(entry: LifestyleFeedback) -> float:
    impact = 0.0
    if entry.exercise:
        impact += 0.2
    if entry.stress > 7:
        impact += 0.3
    if entry.sleep < 7:
        impact += 0.2
    return impact


def _timing_context(timestamp: datetime) -> dict[str, Any]:
    return {"time_of_day": timestamp.hour, "day_of_week": timestamp.weekday()}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdaptiveLearningEngine:
    """Owns the feedback memories, accuracy estimates and ensemble weights."""

    def __init__(
        self,
        settings: LearningSettings | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings or LearningSettings()
        self._clock = clock or _utcnow
        self._lock = threading.RLock()

        capacity = self._settings.max_memory_size
        self._glucose_memory: BoundedMemory[GlucoseMemoryEntry] = BoundedMemory(capacity)
        self._insulin_memory: BoundedMemory[InsulinMemoryEntry] = BoundedMemory(capacity)
        self._environmental_memory: BoundedMemory[EnvironmentalMemoryEntry] = BoundedMemory(capacity)
        self._lifestyle_memory: BoundedMemory[LifestyleMemoryEntry] = BoundedMemory(capacity)

        self._performance_history: list[PerformanceMetric] = []
        self._model_accuracy: dict[str, float] = {}
        self._adaptive_weights: dict[str, float] = {}
        self._learning_rate = self._settings.learning_rate
        self._adaptation_threshold = self._settings.adaptation_threshold
        self._initialize_state()

    @property
    def settings(self) -> LearningSettings:
        return self._settings

    @property
    def learning_rate(self) -> float:
        return self._learning_rate

    @property
    def adaptation_threshold(self) -> float:
        return self._adaptation_threshold

    def _initialize_state(self) -> None:
        for memory in self._memories().values():
            memory.clear()
        self._performance_history = []
        self._model_accuracy = dict(DEFAULT_MODEL_ACCURACY)
        self._adaptive_weights = dict(DEFAULT_ADAPTIVE_WEIGHTS)

    def _memories(self) -> dict[str, BoundedMemory[Any]]:
        return {
            "glucose": self._glucose_memory,
            "insulin": self._insulin_memory,
            "environmental": self._environmental_memory,
            "lifestyle": self._lifestyle_memory,
        }

    # Learning

    def learn_from_new_data(self, batch: LearningBatch) -> LearningOutcome:
        """Run one learning cycle; faults are logged and reported as a degraded outcome."""

        with self._lock:
            try:
                return self._learn(batch)
            except Exception:
                logging.exception("Error in adaptive learning cycle")
                return LearningOutcome(
                    learning_outcome="Learning failed due to error",
                    accuracy_improvements={},
                    new_insights=("Error occurred during learning process",),
                    adaptation_level=AdaptationLevel.LOW,
                )

    def _learn(self, batch: LearningBatch) -> LearningOutcome:
        results: list[DomainLearning] = []
        if batch.glucose is not None:
            results.append(self._learn_glucose(batch.glucose))
        if batch.insulin is not None:
            results.append(self._learn_insulin(batch.insulin))
        if batch.environmental is not None:
            results.append(self._learn_environmental(batch.environmental))
        if batch.lifestyle is not None:
            results.append(self._learn_lifestyle(batch.lifestyle))

        # Nothing above touches engine state, so a failure leaves it as it was.
        improvements: dict[str, float] = {}
        insights: list[str] = []
        memories = self._memories()
        for result in results:
            for entry in result.entries:
                memories[result.memory].append(entry)
            self._nudge_accuracy(result.key, result.improvement)
            improvements[result.key] = result.improvement
            insights.extend(result.insights)

        total_improvement = sum(improvements.values())
        self._update_adaptive_weights(improvements)
        self._adapt_ensemble_methods()
        self._update_performance_history(improvements)

        level = determine_adaptation_level(total_improvement)
        domains = batch.supplied_domains()
        logging.info(
            f"Adaptive learning cycle over {domains}: total improvement {total_improvement:.3f}, "
            f"adaptation {level.value}, learning rate {self._learning_rate:.4f}"
        )
        return LearningOutcome(
            learning_outcome=f"Successfully learned from {len(domains)} data types",
            accuracy_improvements=dict(improvements),
            new_insights=tuple(insights),
            adaptation_level=level,
        )

    def _nudge_accuracy(self, key: str, improvement: float) -> None:
        # Accuracy only ever moves up; poor cycles leave it unchanged.
        if key in self._model_accuracy:
            self._model_accuracy[key] = min(1.0, self._model_accuracy[key] + improvement * ACCURACY_STEP)

    def _predict_glucose(self, reading: GlucoseFeedback, pending: Sequence[GlucoseMemoryEntry]) -> float:
        """Mean of the last few observed actuals, counting entries from the current batch."""

        recent = self._glucose_memory.recent(GLUCOSE_LOOKBACK) + list(pending[-GLUCOSE_LOOKBACK:])
        recent = recent[-GLUCOSE_LOOKBACK:]
        if not recent:
            return reading.value
        return sum(entry.actual for entry in recent) / len(recent)

    def _learn_glucose(self, readings: Sequence[GlucoseFeedback]) -> DomainLearning:
        entries: list[GlucoseMemoryEntry] = []
        insights: list[str] = []
        total = 0.0
        count = 0
        for reading in readings:
            if reading.actual is None:
                continue
            prediction = self._predict_glucose(reading, entries)
            error = abs(prediction - reading.actual)
            context = _timing_context(reading.timestamp)
            context["season"] = season_of(reading.timestamp)
            entries.append(
                GlucoseMemoryEntry(
                    timestamp=reading.timestamp,
                    predicted=prediction,
                    actual=reading.actual,
                    error=error,
                    context=context,
                )
            )
            total += calculate_improvement(error)
            count += 1
            if error > LARGE_GLUCOSE_ERROR:
                insights.append(
                    f"Large prediction error detected: predicted {prediction:.0f}, actual {reading.actual:.0f}"
                )

        return DomainLearning(
            key=GLUCOSE_PREDICTION,
            memory="glucose",
            improvement=total / count if count else 0.0,
            insights=tuple(insights[:INSIGHT_LIMIT]),
            entries=tuple(entries),
        )

    def _learn_insulin(self, doses: Sequence[InsulinFeedback]) -> DomainLearning:
        entries: list[InsulinMemoryEntry] = []
        insights: list[str] = []
        total = 0.0
        count = 0
        for dose in doses:
            if dose.effectiveness is None:
                continue
            expected = DEFAULT_INSULIN_EFFECTIVENESS
            error = abs(expected - dose.effectiveness)
            context = _timing_context(dose.timestamp)
            context["dose_size"] = dose.value
            entries.append(
                InsulinMemoryEntry(
                    timestamp=dose.timestamp,
                    dose=dose.value,
                    expected_effectiveness=expected,
                    actual_effectiveness=dose.effectiveness,
                    error=error,
                    context=context,
                )
            )
            total += calculate_improvement(error)
            count += 1
            if dose.effectiveness < LOW_INSULIN_EFFECTIVENESS:
                insights.append(f"Low insulin effectiveness detected: {dose.effectiveness * 100:.0f}%")

        return DomainLearning(
            key=INSULIN_OPTIMIZATION,
            memory="insulin",
            improvement=total / count if count else 0.0,
            insights=tuple(insights[:INSIGHT_LIMIT]),
            entries=tuple(entries),
        )

    def _learn_environmental(self, readings: Sequence[EnvironmentalFeedback]) -> DomainLearning:
        entries: list[EnvironmentalMemoryEntry] = []
        insights: list[str] = []
        total = 0.0
        count = 0
        for reading in readings:
            if reading.temperature > HOT_TEMPERATURE or reading.temperature < COLD_TEMPERATURE:
                insights.append(f"Extreme temperature detected: {reading.temperature:g}°C")
            if reading.actual_impact is None:
                continue
            predicted = predict_environmental_impact(reading)
            error = abs(predicted - reading.actual_impact)
            entries.append(
                EnvironmentalMemoryEntry(
                    timestamp=reading.timestamp,
                    temperature=reading.temperature,
                    humidity=reading.humidity,
                    air_quality=reading.air_quality,
                    predicted_impact=predicted,
                    actual_impact=reading.actual_impact,
                    error=error,
                )
            )
            total += calculate_improvement(error)
            count += 1

        return DomainLearning(
            key=ENVIRONMENTAL_CORRELATION,
            memory="environmental",
            improvement=total / count if count else 0.0,
            insights=tuple(insights[:INSIGHT_LIMIT]),
            entries=tuple(entries),
        )

    def _learn_lifestyle(self, logs: Sequence[LifestyleFeedback]) -> DomainLearning:
        entries: list[LifestyleMemoryEntry] = []
        insights: list[str] = []
        total = 0.0
        count = 0
        for entry in logs:
            if entry.stress > HIGH_STRESS_ALERT:
                insights.append(f"High stress level detected: {entry.stress:g}/10")
            if entry.sleep < SHORT_SLEEP_ALERT:
                insights.append(f"Insufficient sleep detected: {entry.sleep:g} hours")
            if entry.glucose_impact is None:
                continue
            predicted = predict_lifestyle_impact(entry)
            error = abs(predicted - entry.glucose_impact)
            entries.append(
                LifestyleMemoryEntry(
                    timestamp=entry.timestamp,
                    exercise=entry.exercise,
                    stress=entry.stress,
                    sleep=entry.sleep,
                    predicted_impact=predicted,
                    actual_impact=entry.glucose_impact,
                    error=error,
                )
            )
            total += calculate_improvement(error)
            count += 1

        return DomainLearning(
            key=LIFESTYLE_CORRELATION,
            memory="lifestyle",
            improvement=total / count if count else 0.0,
            insights=tuple(insights[:INSIGHT_LIMIT]),
            entries=tuple(entries),
        )

    # Adaptation

    def _update_adaptive_weights(self, improvements: Mapping[str, float]) -> None:
        total_improvement = sum(improvements.values())
        if total_improvement <= self._adaptation_threshold:
            return

        for domain, improvement in improvements.items():
            if improvement <= 0:
                continue
            method = WEIGHT_METHOD_BY_DOMAIN[domain]
            current = self._adaptive_weights[method]
            self._adaptive_weights[method] = min(MAX_METHOD_WEIGHT, current + improvement * WEIGHT_STEP)

        self._normalize_weights()
        logging.info(f"Adaptive weights updated: {self._adaptive_weights}")

    def _normalize_weights(self) -> None:
        total_weight = sum(self._adaptive_weights.values())
        if total_weight > 0:
            for method in self._adaptive_weights:
                self._adaptive_weights[method] /= total_weight

    def _adapt_ensemble_methods(self) -> None:
        overall_accuracy = sum(self._model_accuracy.values()) / len(self._model_accuracy)
        if overall_accuracy > HIGH_ACCURACY:
            self._learning_rate = min(MAX_LEARNING_RATE, self._learning_rate * 1.1)
        elif overall_accuracy < LOW_ACCURACY:
            self._learning_rate = max(MIN_LEARNING_RATE, self._learning_rate * 0.9)

    def _update_performance_history(self, improvements: Mapping[str, float]) -> None:
        overall = sum(improvements.values()) / len(improvements) if improvements else 0.0
        self._performance_history.append(
            PerformanceMetric(
                timestamp=self._clock(),
                overall_improvement=overall,
                individual_improvements=dict(improvements),
                model_accuracies=dict(self._model_accuracy),
                adaptive_weights=dict(self._adaptive_weights),
            )
        )
        if len(self._performance_history) > HISTORY_LIMIT:
            self._performance_history = self._performance_history[-HISTORY_LIMIT:]

    # Queries

    def get_system_status(self) -> SystemStatus:
        with self._lock:
            return SystemStatus(
                memory_usage={name: len(memory) for name, memory in self._memories().items()},
                model_accuracy=dict(self._model_accuracy),
                adaptive_weights=dict(self._adaptive_weights),
                recent_performance=tuple(self._performance_history[-STATUS_HISTORY:]),
                learning_rate=self._learning_rate,
            )

    def memory_snapshot(self, domain: str) -> tuple[Any, ...]:
        """Return a copy of one domain's memory, oldest entry first."""

        memories = self._memories()
        if domain not in memories:
            raise ValueError(f"Unknown memory domain {domain!r}; expected one of {sorted(memories)}")
        with self._lock:
            return memories[domain].snapshot()

    def performance_history(self) -> tuple[PerformanceMetric, ...]:
        """Return a copy of the retained performance metrics, oldest first."""

        with self._lock:
            return tuple(self._performance_history)

    def get_learning_insights(self) -> LearningInsights:
        with self._lock:
            trend = self._performance_trend(self._performance_history[-TREND_WINDOW:])
            return LearningInsights(
                top_insights=tuple(self._top_insights()),
                performance_trend=trend,
                recommendation=_TREND_RECOMMENDATIONS[trend],
            )

    @staticmethod
    def _performance_trend(recent: Sequence[PerformanceMetric]) -> PerformanceTrend:
        if len(recent) < 2:
            return PerformanceTrend.STABLE
        change = recent[-1].overall_improvement - recent[0].overall_improvement
        if change > TREND_DEAD_ZONE:
            return PerformanceTrend.IMPROVING
        if change < -TREND_DEAD_ZONE:
            return PerformanceTrend.DECLINING
        return PerformanceTrend.STABLE

    def _top_insights(self) -> list[str]:
        insights: list[str] = []

        high_error = sum(1 for entry in self._glucose_memory if entry.error > LARGE_GLUCOSE_ERROR)
        if high_error:
            insights.append(f"{high_error} high-error glucose predictions detected")

        low_effectiveness = sum(
            1 for entry in self._insulin_memory if entry.actual_effectiveness < LOW_INSULIN_EFFECTIVENESS
        )
        if low_effectiveness:
            insights.append(f"{low_effectiveness} low-effectiveness insulin doses detected")

        extreme = sum(
            1
            for entry in self._environmental_memory
            if entry.temperature > HOT_TEMPERATURE or entry.temperature < COLD_TEMPERATURE
        )
        if extreme:
            insights.append(f"{extreme} extreme environmental conditions detected")

        return insights[:INSIGHT_LIMIT]

    def reset_learning_system(self) -> None:
        """Drop all learned state and restore the configured learning rate and threshold."""

        with self._lock:
            self._initialize_state()
            self._learning_rate = self._settings.learning_rate
            self._adaptation_threshold = self._settings.adaptation_threshold
            logging.info("Adaptive learning system reset")
