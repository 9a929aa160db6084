"""Mock collaborators - stand-ins for report extraction and condition prediction.

Real extraction reads values out of an uploaded document with a vision
model and real prediction is a trained classifier; both live outside this
repo. These stand-ins return deterministic results with the same shapes.
"""

import logging
import time
from typing import Iterable

from ..core.biomarkers import REFERENCE_RANGES, reading_from_reference
from ..core.models import BiomarkerReading, BiomarkerStatus, ConditionTag


logger = logging.getLogger(__name__)

# Sample values with several readings outside their normal range
SAMPLE_VALUES: dict[str, float] = {
    "hemoglobin": 10.5,
    "glucose": 125,
    "cholesterol": 220,
    "ldl": 110,
    "hdl": 55,
    "triglycerides": 140,
    "hba1c": 6.2,
    "systolic_bp": 142,
    "diastolic_bp": 88,
}

# Checked in order; the first matching condition wins.
CONDITION_SIGNALS: tuple[tuple[ConditionTag, tuple[tuple[str, BiomarkerStatus], ...]], ...] = (
    (ConditionTag.ANEMIA, (("hemoglobin", BiomarkerStatus.LOW),)),
    (ConditionTag.DIABETES, (("glucose", BiomarkerStatus.HIGH), ("hba1c", BiomarkerStatus.HIGH))),
    (ConditionTag.HYPERTENSION, (("systolic_bp", BiomarkerStatus.HIGH), ("diastolic_bp", BiomarkerStatus.HIGH))),
    (ConditionTag.CHOLESTEROL, (
        ("cholesterol", BiomarkerStatus.HIGH),
        ("ldl", BiomarkerStatus.HIGH),
        ("triglycerides", BiomarkerStatus.HIGH),
        ("hdl", BiomarkerStatus.LOW),
    )),
)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def extract_biomarkers(file_name: str) -> tuple[list[BiomarkerReading], int]:
    """Pretend to extract readings from an uploaded report.

    Args:
        file_name: Name of the uploaded file (only logged)

    Returns:
        Tuple of (readings, elapsed milliseconds)
    """
    started = time.perf_counter()
    logger.info("Mock extraction for report: %s", file_name)
    readings = [reading_from_reference(key, value) for key, value in SAMPLE_VALUES.items()]
    return readings, _elapsed_ms(started)


def predict_condition(readings: Iterable[BiomarkerReading]) -> tuple[ConditionTag, int]:
    """Pick a condition tag from out-of-range readings.

    Readings are matched to reference biomarkers by display name. With no
    matching signal the result is FIT.

    Returns:
        Tuple of (condition, elapsed milliseconds)
    """
    started = time.perf_counter()
    names = {ref.name: key for key, ref in REFERENCE_RANGES.items()}
    statuses = {names[r.name]: r.status for r in readings if r.name in names}

    condition = ConditionTag.FIT
    for tag, signals in CONDITION_SIGNALS:
        if any(statuses.get(key) == status for key, status in signals):
            condition = tag
            break

    logger.info("Mock prediction: %s", condition.value)
    return condition, _elapsed_ms(started)
