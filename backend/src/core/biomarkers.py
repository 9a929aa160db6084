"""Biomarker Classification - Pure functions for lab value ranges.

All functions are pure: same input always produces same output, no side effects.
"""

import math
from datetime import datetime
from typing import Iterable, Optional

from .models import BiomarkerReading, BiomarkerStatus, ReferenceRange


REFERENCE_RANGES: dict[str, ReferenceRange] = {
    "hemoglobin": ReferenceRange(name="Hemoglobin", unit="g/dL", normal_min=12.0, normal_max=16.0),
    "glucose": ReferenceRange(name="Blood Glucose", unit="mg/dL", normal_min=70, normal_max=100),
    "cholesterol": ReferenceRange(name="Total Cholesterol", unit="mg/dL", normal_min=125, normal_max=200),
    "ldl": ReferenceRange(name="LDL Cholesterol", unit="mg/dL", normal_min=0, normal_max=100),
    "hdl": ReferenceRange(name="HDL Cholesterol", unit="mg/dL", normal_min=40, normal_max=999),
    "triglycerides": ReferenceRange(name="Triglycerides", unit="mg/dL", normal_min=0, normal_max=150),
    "hba1c": ReferenceRange(name="HbA1c", unit="%", normal_min=4.0, normal_max=5.7),
    "systolic_bp": ReferenceRange(name="Systolic Blood Pressure", unit="mmHg", normal_min=90, normal_max=120),
    "diastolic_bp": ReferenceRange(name="Diastolic Blood Pressure", unit="mmHg", normal_min=60, normal_max=80),
}


def classify(value: float, normal_min: float, normal_max: float) -> BiomarkerStatus:
    """Classify a measured value against its normal range.

    Both bounds are inclusive.

    Args:
        value: Measured value
        normal_min: Lower bound of the normal range
        normal_max: Upper bound of the normal range

    Returns:
        LOW, NORMAL or HIGH

    Raises:
        ValueError: If any argument is NaN
    """
    if math.isnan(value) or math.isnan(normal_min) or math.isnan(normal_max):
        raise ValueError("Cannot classify NaN biomarker values")

    if value < normal_min:
        return BiomarkerStatus.LOW
    if value > normal_max:
        return BiomarkerStatus.HIGH
    return BiomarkerStatus.NORMAL


def reading_from_reference(
    key: str, value: float, measured_at: Optional[datetime] = None
) -> BiomarkerReading:
    """Build a reading for a canonical biomarker using the reference table.

    Args:
        key: Key into REFERENCE_RANGES (e.g. "glucose")
        value: Measured value
        measured_at: Measurement time (defaults to now)

    Returns:
        BiomarkerReading carrying the reference name, unit and range

    Raises:
        KeyError: If the key is not a known biomarker
    """
    ref = REFERENCE_RANGES[key]
    data = {
        "name": ref.name,
        "value": value,
        "unit": ref.unit,
        "normal_min": ref.normal_min,
        "normal_max": ref.normal_max,
    }
    if measured_at is not None:
        data["measured_at"] = measured_at
    return BiomarkerReading(**data)


def abnormal_readings(readings: Iterable[BiomarkerReading]) -> list[BiomarkerReading]:
    """Readings outside their normal range, in input order."""
    return [r for r in readings if r.status is not BiomarkerStatus.NORMAL]
