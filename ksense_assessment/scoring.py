from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

from .parsing import parse_bp, parse_number
from .records import extract_risk_inputs, get_patient_id

FEVER_THRESHOLD = 99.6
HIGH_RISK_THRESHOLD = 4


@dataclass(frozen=True)
class BloodPressureScore:
    score: int
    valid: bool


@dataclass(frozen=True)
class TemperatureScore:
    score: int
    valid: bool
    fever: bool
    temp: Optional[float]


@dataclass(frozen=True)
class AgeScore:
    score: int
    valid: bool
    age: Optional[int]


@dataclass(frozen=True)
class PatientRisk:
    patient_id: str
    bp: int
    temp: int
    age: int
    total: int
    bp_valid: bool
    temp_valid: bool
    age_valid: bool
    fever: bool
    data_quality_issue: bool
    high_risk: bool

    def to_dict(self) -> dict:
        return {
            "patientId": self.patient_id,
            "scores": {"bp": self.bp, "temp": self.temp, "age": self.age, "total": self.total},
            "flags": {
                "bpValid": self.bp_valid,
                "tempValid": self.temp_valid,
                "ageValid": self.age_valid,
                "fever": self.fever,
                "dataQualityIssue": self.data_quality_issue,
                "highRisk": self.high_risk,
            },
        }


@dataclass(frozen=True)
class PatientRiskDetails(PatientRisk):
    bp_input: Any = None
    temp_input: Any = None
    age_input: Any = None

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["inputs"] = {
            "bloodPressure": self.bp_input,
            "temperature": self.temp_input,
            "age": self.age_input,
        }
        return out


def score_bp(value: Any) -> BloodPressureScore:
    bp = parse_bp(value)
    if not bp.valid:
        return BloodPressureScore(0, False)

    s, d = bp.systolic, bp.diastolic
    if s < 120 and d < 80:
        return BloodPressureScore(0, True)  # Normal
    if 120 <= s <= 129 and d < 80:
        return BloodPressureScore(1, True)  # Elevated
    # Stage 2 beats stage 1 when the two readings disagree (150/85)
    if s >= 140 or d >= 90:
        return BloodPressureScore(3, True)  # Stage 2
    if 130 <= s <= 139 or 80 <= d <= 89:
        return BloodPressureScore(2, True)  # Stage 1
    return BloodPressureScore(0, False)


def score_temp(value: Any) -> TemperatureScore:
    parsed = parse_number(value)
    if not parsed.valid:
        return TemperatureScore(0, False, False, None)

    t = parsed.value
    fever = t >= FEVER_THRESHOLD
    if t <= 99.5:
        return TemperatureScore(0, True, fever, t)
    if 99.6 <= t <= 100.9:
        return TemperatureScore(1, True, fever, t)
    if t >= 101.0:
        return TemperatureScore(2, True, fever, t)
    return TemperatureScore(0, True, fever, t)


def score_age(value: Any) -> AgeScore:
    parsed = parse_number(value)
    if not parsed.valid:
        return AgeScore(0, False, None)

    age = math.trunc(parsed.value)
    # under 40 and 40-65 carry the same weight
    if age > 65:
        return AgeScore(2, True, age)
    return AgeScore(1, True, age)


def _risk_fields(patient_id: str, inputs) -> dict:
    bp = score_bp(inputs.bp)
    temp = score_temp(inputs.temp)
    age = score_age(inputs.age)
    total = bp.score + temp.score + age.score
    return dict(
        patient_id=patient_id,
        bp=bp.score,
        temp=temp.score,
        age=age.score,
        total=total,
        bp_valid=bp.valid,
        temp_valid=temp.valid,
        age_valid=age.valid,
        fever=temp.valid and temp.fever,
        data_quality_issue=not (bp.valid and temp.valid and age.valid),
        high_risk=total >= HIGH_RISK_THRESHOLD,
    )


def compute_patient_risk(record: Any) -> Optional[PatientRisk]:
    """Score one raw record; None when it has no usable patient id."""
    patient_id = get_patient_id(record)
    if patient_id is None:
        return None
    return PatientRisk(**_risk_fields(patient_id, extract_risk_inputs(record)))


def compute_patient_risk_details(record: Any) -> Optional[PatientRiskDetails]:
    patient_id = get_patient_id(record)
    if patient_id is None:
        return None
    inputs = extract_risk_inputs(record)
    return PatientRiskDetails(
        **_risk_fields(patient_id, inputs),
        bp_input=inputs.bp,
        temp_input=inputs.temp,
        age_input=inputs.age,
    )
