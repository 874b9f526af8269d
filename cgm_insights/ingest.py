"""
Boundary conversion from upstream payloads to core dataclasses.
"""
import logging
from typing import Any, Iterable, Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from models.reading_models import (
    EnvironmentalRecord,
    GlucoseFeedbackRecord,
    InsightRequest,
    InsulinFeedbackRecord,
    LearningRequest,
    LifestyleRecord,
    ReadingRecord,
)

from .models import (
    EnvironmentalFeedback,
    GlucoseFeedback,
    InsulinFeedback,
    LearningBatch,
    LifestyleFeedback,
    LifestyleSnapshot,
    MedicationWindow,
    Reading,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ReadingParseError(ValueError):
    """Raised when an upstream record fails validation."""

    def __init__(self, model_name: str, errors: list[dict[str, Any]]):
        self.model_name = model_name
        self.errors = errors
        locations = ", ".join(".".join(str(part) for part in error.get("loc", ())) for error in errors)
        super().__init__(f"Invalid {model_name} payload: {locations or 'unknown field'}")


def _validate(model: type[ModelT], payload: Any) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        errors = exc.errors()
        logging.warning(f"Rejected {model.__name__} payload with {len(errors)} error(s)")
        raise ReadingParseError(model.__name__, errors) from exc


def convert_reading(record: ReadingRecord) -> Reading:
    return Reading(timestamp=record.timestamp, value=record.value, unit=record.unit)


def convert_insight_request(request: InsightRequest) -> dict[str, Any]:
    """Return keyword arguments for ``InsightAggregator.generate_comprehensive_insights``."""

    medication: Optional[MedicationWindow] = None
    if request.medication is not None:
        medication = MedicationWindow(
            before=tuple(request.medication.before),
            after=tuple(request.medication.after),
            name=request.medication.name,
        )
    lifestyle: Optional[LifestyleSnapshot] = None
    if request.lifestyle is not None:
        lifestyle = LifestyleSnapshot(
            exercise=request.lifestyle.exercise,
            stress=request.lifestyle.stress,
            sleep=request.lifestyle.sleep,
        )
    insulin = None
    if request.insulin is not None:
        insulin = [convert_reading(record) for record in request.insulin]
    return {
        "glucose": [convert_reading(record) for record in request.glucose],
        "insulin": insulin,
        "medication": medication,
        "lifestyle": lifestyle,
    }


def _glucose_feedback(record: GlucoseFeedbackRecord) -> GlucoseFeedback:
    return GlucoseFeedback(timestamp=record.timestamp, value=record.value, actual=record.actual)


def _insulin_feedback(record: InsulinFeedbackRecord) -> InsulinFeedback:
    return InsulinFeedback(timestamp=record.timestamp, value=record.value, effectiveness=record.effectiveness)


def _environmental_feedback(record: EnvironmentalRecord) -> EnvironmentalFeedback:
    return EnvironmentalFeedback(
        timestamp=record.timestamp,
        temperature=record.temperature,
        humidity=record.humidity,
        air_quality=record.airQuality,
        actual_impact=record.actualImpact,
    )


def _lifestyle_feedback(record: LifestyleRecord) -> LifestyleFeedback:
    return LifestyleFeedback(
        timestamp=record.timestamp,
        exercise=record.exercise,
        stress=record.stress,
        sleep=record.sleep,
        glucose_impact=record.glucoseImpact,
    )


def convert_learning_request(request: LearningRequest) -> LearningBatch:
    return LearningBatch(
        glucose=None if request.glucose is None else tuple(_glucose_feedback(r) for r in request.glucose),
        insulin=None if request.insulin is None else tuple(_insulin_feedback(r) for r in request.insulin),
        environmental=(
            None if request.environmental is None else tuple(_environmental_feedback(r) for r in request.environmental)
        ),
        lifestyle=None if request.lifestyle is None else tuple(_lifestyle_feedback(r) for r in request.lifestyle),
    )


def parse_readings(records: Iterable[Mapping[str, Any]]) -> list[Reading]:
    """Validate raw reading mappings, rejecting the first malformed record."""

    return [convert_reading(_validate(ReadingRecord, record)) for record in records]


def parse_insight_request(payload: Mapping[str, Any]) -> dict[str, Any]:
    return convert_insight_request(_validate(InsightRequest, payload))


def parse_learning_batch(payload: Mapping[str, Any]) -> LearningBatch:
    return convert_learning_request(_validate(LearningRequest, payload))
