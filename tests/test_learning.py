from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import numpy as np
import pytest

from cgm_insights.config import LearningSettings
from cgm_insights.learning import (
    DEFAULT_ADAPTIVE_WEIGHTS,
    DEFAULT_MODEL_ACCURACY,
    AdaptiveLearningEngine,
    calculate_improvement,
    predict_environmental_impact,
    predict_lifestyle_impact,
)
from cgm_insights.models import (
    AdaptationLevel,
    EnvironmentalFeedback,
    GlucoseFeedback,
    InsulinFeedback,
    LearningBatch,
    LifestyleFeedback,
    PerformanceTrend,
)

START = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)


def _fixed_clock():
    return START


def _glucose(values_and_actuals) -> tuple[GlucoseFeedback, ...]:
    return tuple(
        GlucoseFeedback(timestamp=START + timedelta(minutes=5 * idx), value=value, actual=actual)
        for idx, (value, actual) in enumerate(values_and_actuals)
    )


def _perfect_batch() -> LearningBatch:
    return LearningBatch(
        glucose=_glucose([(120.0, 120.0)]),
        insulin=(InsulinFeedback(timestamp=START, value=4.0, effectiveness=0.8),),
    )


def test_improvement_mapping_and_baseline_predictors():
    assert calculate_improvement(0.0) == 1.0
    assert calculate_improvement(25.0) == pytest.approx(0.75)
    assert calculate_improvement(150.0) == 0.0

    comfortable = EnvironmentalFeedback(timestamp=START, temperature=20, humidity=50, air_quality=30)
    hot = EnvironmentalFeedback(timestamp=START, temperature=35, humidity=75, air_quality=30)
    assert predict_environmental_impact(comfortable) == 0.0
    assert predict_environmental_impact(hot) == pytest.approx((15 / 30 + 25 / 50) / 2)

    stressed = LifestyleFeedback(timestamp=START, exercise=True, stress=8, sleep=6)
    assert predict_lifestyle_impact(stressed) == pytest.approx(0.7)


def test_first_glucose_cycle_updates_accuracy_and_weights():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)

    outcome = engine.learn_from_new_data(LearningBatch(glucose=_glucose([(110.0, 110.0)])))

    assert outcome.learning_outcome == "Successfully learned from 1 data types"
    assert outcome.accuracy_improvements == {"glucose_prediction": 1.0}
    assert outcome.adaptation_level is AdaptationLevel.HIGH

    status = engine.get_system_status()
    assert status.model_accuracy["glucose_prediction"] == pytest.approx(0.9)
    assert status.model_accuracy["insulin_optimization"] == DEFAULT_MODEL_ACCURACY["insulin_optimization"]
    assert sum(status.adaptive_weights.values()) == pytest.approx(1.0, abs=1e-9)
    assert status.adaptive_weights["neural"] == pytest.approx(0.5 / 1.1)
    assert status.memory_usage == {"glucose": 1, "insulin": 0, "environmental": 0, "lifestyle": 0}


def test_glucose_prediction_uses_recent_actuals():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)
    engine.learn_from_new_data(LearningBatch(glucose=_glucose([(100.0, 100.0), (0.0, 200.0)])))

    entries = engine.memory_snapshot("glucose")

    assert entries[0].predicted == 100.0
    assert entries[1].predicted == 100.0
    assert entries[1].error == 100.0
    assert entries[1].context["season"] == "summer"


def test_memory_is_bounded_and_keeps_most_recent_entries():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)
    readings = tuple(
        GlucoseFeedback(timestamp=START + timedelta(minutes=idx), value=float(idx), actual=float(idx))
        for idx in range(50_000)
    )

    engine.learn_from_new_data(LearningBatch(glucose=readings))

    entries = engine.memory_snapshot("glucose")
    assert engine.get_system_status().memory_usage["glucose"] == 10_000
    assert len(entries) == 10_000
    assert entries[0].actual == 40_000.0
    assert entries[-1].actual == 49_999.0


def test_small_memory_capacity_from_settings():
    engine = AdaptiveLearningEngine(LearningSettings(max_memory_size=3), clock=_fixed_clock)
    doses = tuple(
        InsulinFeedback(timestamp=START + timedelta(hours=idx), value=float(idx), effectiveness=0.7)
        for idx in range(7)
    )

    engine.learn_from_new_data(LearningBatch(insulin=doses))

    assert [entry.dose for entry in engine.memory_snapshot("insulin")] == [4.0, 5.0, 6.0]


def test_weights_stay_normalized_over_mixed_cycles():
    rng = np.random.default_rng(42)
    engine = AdaptiveLearningEngine(clock=_fixed_clock)

    for cycle in range(30):
        batch = LearningBatch(
            glucose=_glucose([(float(v), float(v + rng.normal(0, 20))) for v in rng.normal(150, 30, 5)]),
            insulin=(InsulinFeedback(timestamp=START, value=3.0, effectiveness=float(rng.uniform(0, 1))),),
            environmental=(
                EnvironmentalFeedback(
                    timestamp=START,
                    temperature=float(rng.uniform(0, 40)),
                    humidity=float(rng.uniform(20, 90)),
                    air_quality=50.0,
                    actual_impact=float(rng.uniform(0, 1)),
                ),
            ),
            lifestyle=(
                LifestyleFeedback(
                    timestamp=START,
                    exercise=bool(cycle % 2),
                    stress=float(rng.uniform(0, 10)),
                    sleep=float(rng.uniform(4, 9)),
                    glucose_impact=float(rng.uniform(0, 1)),
                ),
            ),
        )
        engine.learn_from_new_data(batch)
        weights = engine.get_system_status().adaptive_weights
        assert sum(weights.values()) == pytest.approx(1.0, abs=1e-9)
        assert set(weights) == set(DEFAULT_ADAPTIVE_WEIGHTS)


def test_below_threshold_improvement_leaves_weights_untouched():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)

    outcome = engine.learn_from_new_data(LearningBatch(glucose=_glucose([(0.0, 95.0)])))

    assert outcome.accuracy_improvements["glucose_prediction"] == pytest.approx(0.05)
    assert outcome.adaptation_level is AdaptationLevel.LOW
    assert engine.get_system_status().adaptive_weights == dict(DEFAULT_ADAPTIVE_WEIGHTS)


def test_learning_rate_rises_with_high_accuracy_and_is_capped():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)

    for _ in range(20):
        engine.learn_from_new_data(_perfect_batch())

    status = engine.get_system_status()
    assert status.model_accuracy["glucose_prediction"] == 1.0
    assert status.model_accuracy["insulin_optimization"] == 1.0
    assert status.learning_rate == pytest.approx(0.02)


def test_learning_rate_unchanged_inside_dead_zone():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)

    engine.learn_from_new_data(LearningBatch(lifestyle=()))

    assert engine.learning_rate == 0.01


def test_domains_without_ground_truth_report_zero_improvement():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)
    batch = LearningBatch(
        glucose=_glucose([(120.0, None)]),
        environmental=(EnvironmentalFeedback(timestamp=START, temperature=22, humidity=45, air_quality=20),),
    )

    outcome = engine.learn_from_new_data(batch)

    assert outcome.accuracy_improvements == {"glucose_prediction": 0.0, "environmental_correlation": 0.0}
    assert engine.get_system_status().memory_usage["environmental"] == 0


def test_insights_are_capped_per_domain():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)
    readings = tuple(
        EnvironmentalFeedback(
            timestamp=START + timedelta(hours=idx),
            temperature=35.0,
            humidity=50,
            air_quality=40,
            actual_impact=0.3,
        )
        for idx in range(8)
    )
    lifestyle = (LifestyleFeedback(timestamp=START, exercise=False, stress=9, sleep=5.5, glucose_impact=0.5),)

    outcome = engine.learn_from_new_data(LearningBatch(environmental=readings, lifestyle=lifestyle))

    assert outcome.new_insights.count("Extreme temperature detected: 35°C") == 5
    assert "High stress level detected: 9/10" in outcome.new_insights
    assert "Insufficient sleep detected: 5.5 hours" in outcome.new_insights
    assert engine.get_learning_insights().top_insights == ("8 extreme environmental conditions detected",)


def test_low_insulin_effectiveness_produces_insight():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)

    outcome = engine.learn_from_new_data(
        LearningBatch(insulin=(InsulinFeedback(timestamp=START, value=6.0, effectiveness=0.3),))
    )

    assert outcome.new_insights == ("Low insulin effectiveness detected: 30%",)
    assert engine.memory_snapshot("insulin")[0].context["dose_size"] == 6.0


def test_failed_cycle_returns_degraded_outcome():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)
    broken = LearningBatch(glucose=(GlucoseFeedback(timestamp=START, value=100.0, actual="high"),))

    outcome = engine.learn_from_new_data(broken)

    assert outcome.learning_outcome == "Learning failed due to error"
    assert outcome.accuracy_improvements == {}
    assert outcome.new_insights == ("Error occurred during learning process",)
    assert outcome.adaptation_level is AdaptationLevel.LOW


def test_status_is_idempotent_and_detached():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)
    engine.learn_from_new_data(_perfect_batch())

    first = engine.get_system_status()
    second = engine.get_system_status()
    assert first == second

    first.adaptive_weights["neural"] = 99.0
    assert engine.get_system_status().adaptive_weights["neural"] != 99.0


def test_performance_history_is_capped():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)

    for _ in range(105):
        engine.learn_from_new_data(LearningBatch())

    assert len(engine.performance_history()) == 100
    assert len(engine.get_system_status().recent_performance) == 10


def test_performance_trend_improving_and_declining():
    improving = AdaptiveLearningEngine(clock=_fixed_clock)
    improving.learn_from_new_data(LearningBatch(glucose=_glucose([(100.0, 180.0)])))
    improving.learn_from_new_data(LearningBatch(glucose=_glucose([(0.0, 180.0)])))
    insights = improving.get_learning_insights()
    assert insights.performance_trend is PerformanceTrend.IMPROVING
    assert insights.recommendation == "Continue current learning approach - system is improving well"

    declining = AdaptiveLearningEngine(clock=_fixed_clock)
    declining.learn_from_new_data(LearningBatch(glucose=_glucose([(100.0, 100.0)])))
    declining.learn_from_new_data(LearningBatch(glucose=_glucose([(0.0, 190.0)])))
    assert declining.get_learning_insights().performance_trend is PerformanceTrend.DECLINING

    fresh = AdaptiveLearningEngine(clock=_fixed_clock)
    assert fresh.get_learning_insights().performance_trend is PerformanceTrend.STABLE


def test_reset_restores_initial_state():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)
    for _ in range(20):
        engine.learn_from_new_data(_perfect_batch())

    engine.reset_learning_system()

    status = engine.get_system_status()
    assert status.memory_usage == {"glucose": 0, "insulin": 0, "environmental": 0, "lifestyle": 0}
    assert status.model_accuracy == dict(DEFAULT_MODEL_ACCURACY)
    assert status.adaptive_weights == dict(DEFAULT_ADAPTIVE_WEIGHTS)
    assert status.recent_performance == ()
    assert status.learning_rate == 0.01
    assert engine.adaptation_threshold == 0.1


def test_unknown_memory_domain_is_rejected():
    with pytest.raises(ValueError):
        AdaptiveLearningEngine().memory_snapshot("sleep")


def test_failed_cycle_leaves_engine_state_untouched():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)
    engine.learn_from_new_data(_perfect_batch())
    before = engine.get_system_status()
    glucose_before = engine.memory_snapshot("glucose")

    broken = LearningBatch(
        glucose=_glucose([(130.0, 140.0), (135.0, 150.0)]),
        insulin=(
            InsulinFeedback(timestamp=START, value=3.0, effectiveness=0.6),
            InsulinFeedback(timestamp=START, value=3.0, effectiveness="unknown"),
        ),
    )
    outcome = engine.learn_from_new_data(broken)

    assert outcome.learning_outcome == "Learning failed due to error"
    assert engine.get_system_status() == before
    assert engine.memory_snapshot("glucose") == glucose_before
    assert len(engine.performance_history()) == 1


def test_glucose_predictions_use_earlier_items_of_the_same_batch():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)

    engine.learn_from_new_data(LearningBatch(glucose=_glucose([(100.0, 100.0), (0.0, 160.0), (0.0, 130.0)])))

    predictions = [entry.predicted for entry in engine.memory_snapshot("glucose")]
    assert predictions == [100.0, 100.0, 130.0]


def test_shared_engine_serializes_concurrent_learning_calls():
    engine = AdaptiveLearningEngine(clock=_fixed_clock)
    calls = 40
    glucose_per_call = 3
    insulin_per_call = 2

    def _learn(call: int):
        batch = LearningBatch(
            glucose=_glucose([(100.0 + call, 100.0 + call + idx * 10) for idx in range(glucose_per_call)]),
            insulin=tuple(
                InsulinFeedback(timestamp=START, value=2.0 + idx, effectiveness=0.6 + 0.1 * idx)
                for idx in range(insulin_per_call)
            ),
        )
        return engine.learn_from_new_data(batch)

    with ThreadPoolExecutor(max_workers=8) as executor:
        outcomes = list(executor.map(_learn, range(calls)))

    assert all(outcome.learning_outcome == "Successfully learned from 2 data types" for outcome in outcomes)
    status = engine.get_system_status()
    assert len(engine.performance_history()) == calls
    assert sum(status.adaptive_weights.values()) == pytest.approx(1.0, abs=1e-9)
    assert status.memory_usage["glucose"] == calls * glucose_per_call
    assert status.memory_usage["insulin"] == calls * insulin_per_call
