"""Pydantic wire models for upstream records."""

from .reading_models import (
    EnvironmentalRecord,
    GlucoseFeedbackRecord,
    InsightRequest,
    InsulinFeedbackRecord,
    LearningRequest,
    LifestyleRecord,
    LifestyleSnapshotRecord,
    MedicationWindowRecord,
    ReadingRecord,
)

__all__ = [
    "EnvironmentalRecord",
    "GlucoseFeedbackRecord",
    "InsightRequest",
    "InsulinFeedbackRecord",
    "LearningRequest",
    "LifestyleRecord",
    "LifestyleSnapshotRecord",
    "MedicationWindowRecord",
    "ReadingRecord",
]
