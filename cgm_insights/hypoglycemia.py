"""Hypoglycemia episode extraction, severity and prevention strategies."""
from __future__ import annotations

from typing import Final, Iterable, Sequence

import pandas as pd

from .models import HypoglycemiaResult, HypoglycemiaSeverity, Reading
from .utils import prepare_series

HYPOGLYCEMIA_THRESHOLD: Final[float] = 70.0
MODERATE_FLOOR: Final[float] = 54.0
SEVERE_FLOOR: Final[float] = 40.0
RAPID_DECLINE_DELTA: Final[float] = 30.0

RAPID_DECLINE = "Rapid glucose decline detected"
OVERNIGHT = "Overnight hypoglycemia episodes detected"
EXERCISE_RELATED = "Exercise-related hypoglycemia detected"
NO_RISK_FACTORS = "No specific risk factors identified"

# Prevention advice keyed by risk factor, applied in this order.
PREVENTION_RULES: Final[dict[str, tuple[str, ...]]] = {
    RAPID_DECLINE: (
        "Monitor glucose more frequently during periods of rapid change",
        "Consider adjusting insulin sensitivity factor",
    ),
    OVERNIGHT: (
        "Check glucose before bedtime and set overnight alerts",
        "Consider reducing basal insulin overnight",
    ),
    EXERCISE_RELATED: (
        "Reduce insulin before exercise or consume additional carbohydrates",
        "Monitor glucose during and after exercise",
    ),
}
SEVERE_PREVENTION: Final[tuple[str, ...]] = (
    "Consult healthcare provider immediately",
    "Consider continuous glucose monitoring",
)


def classify_severity(values: Iterable[float]) -> HypoglycemiaSeverity:
    lowest = min(values)
    if lowest >= MODERATE_FLOOR:
        return HypoglycemiaSeverity.MILD
    if lowest >= SEVERE_FLOOR:
        return HypoglycemiaSeverity.MODERATE
    return HypoglycemiaSeverity.SEVERE


def identify_risk_factors(frame: pd.DataFrame, episodes: pd.DataFrame) -> list[str]:
    """Scan the ordered series and its episodes for known hypoglycemia triggers."""

    risk_factors: list[str] = []

    declines = -frame["value"].diff()
    if bool((declines > RAPID_DECLINE_DELTA).any()):
        risk_factors.append(RAPID_DECLINE)

    hours = episodes["hour"]
    if bool(((hours >= 22) | (hours <= 6)).any()):
        risk_factors.append(OVERNIGHT)
    if bool(((hours >= 16) & (hours <= 20)).any()):
        risk_factors.append(EXERCISE_RELATED)

    if not risk_factors:
        risk_factors.append(NO_RISK_FACTORS)
    return risk_factors


def generate_prevention(risk_factors: Sequence[str], severity: HypoglycemiaSeverity) -> list[str]:
    prevention: list[str] = []
    for factor, advice in PREVENTION_RULES.items():
        if factor in risk_factors:
            prevention.extend(advice)
    if severity is HypoglycemiaSeverity.SEVERE:
        prevention.extend(SEVERE_PREVENTION)
    if not prevention:
        prevention.append("Maintain current management strategy")
    return prevention


def detect_hypoglycemia_patterns(readings: Iterable[Reading]) -> HypoglycemiaResult:
    """Count readings below 70 mg/dL and derive severity, risk factors and advice."""

    frame = prepare_series(readings)
    episodes = frame.loc[frame["value"] < HYPOGLYCEMIA_THRESHOLD]
    if episodes.empty:
        return HypoglycemiaResult(
            episodes=0,
            frequency=0.0,
            severity=HypoglycemiaSeverity.MILD,
            risk_factors=("No hypoglycemia detected",),
            prevention=("Continue current management strategy",),
        )

    severity = classify_severity(episodes["value"])
    risk_factors = identify_risk_factors(frame, episodes)
    return HypoglycemiaResult(
        episodes=len(episodes),
        frequency=len(episodes) / len(frame),
        severity=severity,
        risk_factors=tuple(risk_factors),
        prevention=tuple(generate_prevention(risk_factors, severity)),
    )
