from datetime import datetime, timedelta, timezone

import pytest

from cgm_insights.ingest import (
    ReadingParseError,
    convert_insight_request,
    convert_learning_request,
    parse_insight_request,
    parse_learning_batch,
    parse_readings,
)
from cgm_insights.models import LearningBatch, LifestyleSnapshot, MedicationWindow, Reading
from cgm_insights.utils import sort_readings
from models.reading_models import (
    InsightRequest,
    LearningRequest,
    LifestyleSnapshotRecord,
    MedicationWindowRecord,
    ReadingRecord,
)


def _sample_insight_request() -> InsightRequest:
    return InsightRequest(
        glucose=[
            ReadingRecord(timestamp="2025-01-01T00:00:00Z", value=110),
            ReadingRecord(timestamp="2025-01-01T00:05:00Z", value=115, unit="mg/dL"),
        ],
        insulin=[ReadingRecord(timestamp="2025-01-01T00:00:00Z", value=2.5)],
        medication=MedicationWindowRecord(name="metformin", before=[200, 190], after=[150, 140]),
        lifestyle=LifestyleSnapshotRecord(exercise=True, stress=4, sleep=7.5),
    )


def test_convert_insight_request_builds_dataclasses():
    kwargs = convert_insight_request(_sample_insight_request())

    assert set(kwargs) == {"glucose", "insulin", "medication", "lifestyle"}
    assert kwargs["glucose"][0] == Reading(
        timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc), value=110.0, unit=None
    )
    assert kwargs["glucose"][1].unit == "mg/dL"
    assert len(kwargs["insulin"]) == 1
    assert kwargs["medication"] == MedicationWindow(before=(200.0, 190.0), after=(150.0, 140.0), name="metformin")
    assert kwargs["lifestyle"] == LifestyleSnapshot(exercise=True, stress=4.0, sleep=7.5)


def test_convert_insight_request_keeps_missing_sections_empty():
    kwargs = convert_insight_request(InsightRequest())

    assert kwargs == {"glucose": [], "insulin": None, "medication": None, "lifestyle": None}


def test_convert_learning_request_maps_camel_case_fields():
    request = LearningRequest.model_validate(
        {
            "environmental": [
                {
                    "timestamp": "2025-01-01T12:00:00Z",
                    "temperature": 31,
                    "humidity": 40,
                    "airQuality": 120,
                    "actualImpact": 0.4,
                }
            ],
            "lifestyle": [
                {
                    "timestamp": "2025-01-01T12:00:00Z",
                    "exercise": False,
                    "stress": 8,
                    "sleep": 5,
                    "glucoseImpact": 0.6,
                }
            ],
        }
    )

    batch = convert_learning_request(request)

    assert isinstance(batch, LearningBatch)
    assert batch.glucose is None
    assert batch.insulin is None
    assert batch.environmental[0].air_quality == 120.0
    assert batch.environmental[0].actual_impact == 0.4
    assert batch.lifestyle[0].glucose_impact == 0.6
    assert batch.supplied_domains() == ["environmental", "lifestyle"]


def test_parse_learning_batch_keeps_empty_lists_distinct_from_absent():
    batch = parse_learning_batch({"glucose": [], "insulin": None})

    assert batch.glucose == ()
    assert batch.insulin is None


def test_parse_readings_ignores_extra_fields():
    readings = parse_readings(
        [{"timestamp": "2025-01-01T00:00:00Z", "value": "120.5", "device": "sensor-1"}]
    )

    assert readings == [Reading(timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc), value=120.5)]


def test_parse_readings_rejects_malformed_record():
    with pytest.raises(ReadingParseError) as excinfo:
        parse_readings([{"timestamp": "2025-01-01T00:00:00Z", "value": 100}, {"timestamp": "yesterday"}])

    error = excinfo.value
    assert isinstance(error, ValueError)
    assert error.model_name == "ReadingRecord"
    locations = {tuple(item["loc"]) for item in error.errors}
    assert ("timestamp",) in locations
    assert ("value",) in locations


def test_parse_insight_request_rejects_bad_lifestyle():
    with pytest.raises(ReadingParseError) as excinfo:
        parse_insight_request({"glucose": [], "lifestyle": {"exercise": True, "stress": "high", "sleep": 7}})

    assert "lifestyle.stress" in str(excinfo.value)


@pytest.mark.parametrize("bad_value", [float("nan"), float("inf"), float("-inf")])
def test_parse_readings_rejects_non_finite_values(bad_value):
    with pytest.raises(ReadingParseError) as excinfo:
        parse_readings([{"timestamp": "2025-01-01T00:00:00Z", "value": bad_value}])

    assert [tuple(item["loc"]) for item in excinfo.value.errors] == [("value",)]


def test_parse_learning_batch_rejects_nan_ground_truth():
    with pytest.raises(ReadingParseError) as excinfo:
        parse_learning_batch(
            {"glucose": [{"timestamp": "2025-01-01T00:00:00Z", "value": 120, "actual": float("nan")}]}
        )

    assert excinfo.value.model_name == "LearningRequest"
    assert "glucose.0.actual" in str(excinfo.value)


def test_parse_insight_request_rejects_non_finite_medication_values():
    with pytest.raises(ReadingParseError) as excinfo:
        parse_insight_request({"medication": {"before": [200, float("inf")], "after": [150, 140]}})

    assert "medication.before.1" in str(excinfo.value)


def test_parse_readings_rejects_naive_timestamps():
    with pytest.raises(ReadingParseError) as excinfo:
        parse_readings([{"timestamp": "2025-01-01T00:00:00", "value": 100}])

    assert [tuple(item["loc"]) for item in excinfo.value.errors] == [("timestamp",)]


def test_mixed_timezone_payload_is_rejected_before_analysis():
    payload = {
        "glucose": [
            {"timestamp": "2025-01-01T00:00:00Z", "value": 110},
            {"timestamp": "2025-01-01T00:05:00", "value": 115},
            {"timestamp": "2025-01-01T00:10:00+01:00", "value": 120},
        ]
    }

    with pytest.raises(ReadingParseError) as excinfo:
        parse_insight_request(payload)

    assert "glucose.1.timestamp" in str(excinfo.value)


def test_offset_timestamps_are_kept_and_ordered_by_instant():
    kwargs = parse_insight_request(
        {
            "glucose": [
                {"timestamp": "2025-01-01T00:30:00+01:00", "value": 120},
                {"timestamp": "2025-01-01T00:00:00Z", "value": 110},
            ]
        }
    )

    readings = sort_readings(kwargs["glucose"])
    assert [reading.value for reading in readings] == [120.0, 110.0]
    assert readings[0].timestamp.utcoffset() == timedelta(hours=1)
