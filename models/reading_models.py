"""
Wire models for normalized readings and learning feedback supplied by upstream producers.
"""
from typing import List, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class ReadingRecord(BaseModel):
    """
    Model for a single normalized reading.
    """
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    timestamp: AwareDatetime = Field(description="Reading time")
    value: float = Field(description="Measured value")
    unit: Optional[str] = Field(default=None, description="Unit of measure")


class GlucoseFeedbackRecord(BaseModel):
    """
    Model for a glucose prediction paired with the observed value.
    """
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    timestamp: AwareDatetime = Field(description="Reading time")
    value: float = Field(description="Glucose value in mg/dL")
    actual: Optional[float] = Field(default=None, description="Observed glucose in mg/dL")


class InsulinFeedbackRecord(BaseModel):
    """
    Model for an insulin dose and its observed effectiveness.
    """
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    timestamp: AwareDatetime = Field(description="Dose time")
    value: float = Field(description="Dose in units")
    effectiveness: Optional[float] = Field(default=None, description="Observed effectiveness (0-1)")


class EnvironmentalRecord(BaseModel):
    """
    Model for an environmental observation.
    """
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    timestamp: AwareDatetime = Field(description="Observation time")
    temperature: float = Field(description="Temperature in Celsius")
    humidity: float = Field(description="Relative humidity percent")
    airQuality: float = Field(description="Air quality index")
    actualImpact: Optional[float] = Field(default=None, description="Observed glucose impact")


class LifestyleRecord(BaseModel):
    """
    Model for a lifestyle log entry.
    """
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    timestamp: AwareDatetime = Field(description="Entry time")
    exercise: bool = Field(description="Exercise performed")
    stress: float = Field(description="Stress level (0-10)")
    sleep: float = Field(description="Sleep in hours")
    glucoseImpact: Optional[float] = Field(default=None, description="Observed glucose impact")


class LifestyleSnapshotRecord(BaseModel):
    """
    Model for the lifestyle context of an insight request.
    """
    model_config = ConfigDict(allow_inf_nan=False)

    exercise: bool = Field(description="Exercise performed")
    stress: float = Field(description="Stress level (0-10)")
    sleep: float = Field(description="Sleep in hours")


class MedicationWindowRecord(BaseModel):
    """
    Model for glucose values before and after a medication change.
    """
    model_config = ConfigDict(allow_inf_nan=False)

    name: Optional[str] = Field(default=None, description="Medication name")
    before: List[float] = Field(description="Glucose values before the change")
    after: List[float] = Field(description="Glucose values after the change")


# Request models
class InsightRequest(BaseModel):
    """
    Request model for comprehensive insight generation.
    """
    glucose: List[ReadingRecord] = Field(default_factory=list, description="Glucose readings")
    insulin: Optional[List[ReadingRecord]] = Field(default=None, description="Insulin readings")
    medication: Optional[MedicationWindowRecord] = Field(default=None, description="Medication comparison")
    lifestyle: Optional[LifestyleSnapshotRecord] = Field(default=None, description="Lifestyle context")


class LearningRequest(BaseModel):
    """
    Request model for one adaptive learning cycle.
    """
    glucose: Optional[List[GlucoseFeedbackRecord]] = Field(default=None, description="Glucose feedback")
    insulin: Optional[List[InsulinFeedbackRecord]] = Field(default=None, description="Insulin feedback")
    environmental: Optional[List[EnvironmentalRecord]] = Field(default=None, description="Environmental feedback")
    lifestyle: Optional[List[LifestyleRecord]] = Field(default=None, description="Lifestyle feedback")
