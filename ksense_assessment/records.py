from __future__ import annotations

from collections.abc import Mapping
from typing import Any, NamedTuple, Optional, Sequence

ID_KEYS = ("patient_id", "patientId", "id", "patientID")
BP_KEYS = ("blood_pressure", "bloodPressure", "bp", "bloodPressureReading")
TEMP_KEYS = ("temperature", "temp", "temp_f", "temperature_f", "temperatureF", "tempF")
AGE_KEYS = ("age", "Age", "patient_age", "patientAge")


class RiskInputs(NamedTuple):
    bp: Any
    temp: Any
    age: Any


def get_patient_id(record: Any) -> Optional[str]:
    """Canonical identifier of a record, or None when it has no usable one."""
    if not isinstance(record, Mapping):
        return None
    for key in ID_KEYS:
        candidate = record.get(key)
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def pick_field(record: Any, keys: Sequence[str], default: Any = None) -> Any:
    # presence wins, even when the stored value is None
    if isinstance(record, Mapping):
        for key in keys:
            if key in record:
                return record[key]
    return default


def extract_risk_inputs(record: Any) -> RiskInputs:
    return RiskInputs(
        bp=pick_field(record, BP_KEYS),
        temp=pick_field(record, TEMP_KEYS),
        age=pick_field(record, AGE_KEYS),
    )
