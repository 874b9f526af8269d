"""Before/after comparison of glucose values around a medication change."""
from __future__ import annotations

import math
from typing import Final, Sequence

import numpy as np

from .models import MedicationResult

MIN_POINTS_PER_SIDE: Final[int] = 5
# Rough cut-off on the pooled two-sample t statistic; not a critical-value lookup.
SIGNIFICANCE_T_THRESHOLD: Final[float] = 2.0

_RECOMMENDATIONS: Final[dict[tuple[bool, bool], tuple[str, str]]] = {
    (True, True): (
        "Medication shows significant improvement in glucose control",
        "Continue current medication regimen",
    ),
    (True, False): (
        "Medication shows improvement but not statistically significant",
        "Monitor for longer period to confirm effectiveness",
    ),
    (False, True): (
        "Medication shows significant worsening of glucose control",
        "Consult healthcare provider about medication adjustment",
    ),
    (False, False): (
        "No significant change in glucose control",
        "Consider alternative treatment options",
    ),
}


def pooled_t_statistic(before: np.ndarray, after: np.ndarray) -> float:
    """Absolute two-sample t statistic using the pooled sample variance."""

    n1, n2 = len(before), len(after)
    pooled_variance = (
        (n1 - 1) * float(np.var(before, ddof=1)) + (n2 - 1) * float(np.var(after, ddof=1))
    ) / (n1 + n2 - 2)
    standard_error = math.sqrt(pooled_variance * (1 / n1 + 1 / n2))
    difference = abs(float(before.mean()) - float(after.mean()))
    if standard_error == 0:
        return math.inf if difference > 0 else 0.0
    return difference / standard_error


def analyze_medication_effectiveness(before: Sequence[float], after: Sequence[float]) -> MedicationResult:
    """Compare mean glucose before and after a change; lower is treated as better."""

    if len(before) < MIN_POINTS_PER_SIDE or len(after) < MIN_POINTS_PER_SIDE:
        return MedicationResult(
            effectiveness=0.0,
            improvement=False,
            statistical_significance=False,
            t_statistic=0.0,
            recommendations=("Insufficient data for analysis",),
        )

    before_values = np.asarray(before, dtype=float)
    after_values = np.asarray(after, dtype=float)
    before_mean = float(before_values.mean())
    after_mean = float(after_values.mean())

    improvement = after_mean < before_mean
    effectiveness = abs((before_mean - after_mean) / before_mean) * 100 if before_mean != 0 else 0.0
    t_statistic = pooled_t_statistic(before_values, after_values)
    significant = t_statistic > SIGNIFICANCE_T_THRESHOLD

    return MedicationResult(
        effectiveness=effectiveness,
        improvement=improvement,
        statistical_significance=significant,
        t_statistic=t_statistic,
        recommendations=_RECOMMENDATIONS[(improvement, significant)],
    )
