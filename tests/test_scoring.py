import json

import pytest

from ksense_assessment.scoring import (
    AgeScore,
    BloodPressureScore,
    TemperatureScore,
    compute_patient_risk,
    compute_patient_risk_details,
    score_age,
    score_bp,
    score_temp,
)


@pytest.mark.parametrize(
    "bp, score",
    [
        ("119/79", 0),
        ("125/79", 1),
        ("131/79", 2),
        ("119/85", 2),
        ("150/85", 3),
        ("135/95", 3),
        ("140/60", 3),
        ("110/90", 3),
        ({"systolic": 129, "diastolic": 79}, 1),
        ([139, 89], 2),
    ],
)
def test_score_bp_bands(bp, score):
    assert score_bp(bp) == BloodPressureScore(score, True)


def test_score_bp_invalid():
    assert score_bp("N/A") == BloodPressureScore(0, False)
    assert score_bp(None) == BloodPressureScore(0, False)


def test_score_temp_bands():
    assert score_temp(99.5) == TemperatureScore(0, True, False, 99.5)
    assert score_temp(99.6) == TemperatureScore(1, True, True, 99.6)
    assert score_temp("99.6F").score == 1
    assert score_temp(100.9) == TemperatureScore(1, True, True, 100.9)
    assert score_temp(101) == TemperatureScore(2, True, True, 101)


def test_score_temp_invalid():
    assert score_temp("TEMP_ERROR") == TemperatureScore(0, False, False, None)
    assert score_temp(None) == TemperatureScore(0, False, False, None)


def test_score_temp_fever_between_bands():
    t = score_temp(100.95)
    assert t.fever is True
    assert t.valid is True


def test_score_age_bands():
    assert score_age(39) == AgeScore(1, True, 39)
    assert score_age(65) == AgeScore(1, True, 65)
    assert score_age(65.9) == AgeScore(1, True, 65)
    assert score_age(66) == AgeScore(2, True, 66)
    assert score_age("72 years") == AgeScore(2, True, 72)


def test_score_age_invalid():
    assert score_age("unknown") == AgeScore(0, False, None)
    assert score_age(None) == AgeScore(0, False, None)


def test_compute_patient_risk_high_risk():
    r = compute_patient_risk({"patient_id": "DEMOX", "age": 70, "temperature": 101, "blood_pressure": "119/79"})
    assert r.total == 0 + 2 + 2
    assert r.high_risk is True
    assert r.fever is True
    assert r.data_quality_issue is False


def test_compute_patient_risk_threshold():
    four = compute_patient_risk({"patient_id": "A", "age": 50, "temperature": 98.6, "blood_pressure": "150/85"})
    three = compute_patient_risk({"patient_id": "B", "age": 50, "temperature": 98.6, "blood_pressure": "135/85"})
    assert four.total == 4 and four.high_risk
    assert three.total == 3 and not three.high_risk


def test_invalid_categories_do_not_inflate_total():
    r = compute_patient_risk({"patient_id": "C", "age": "unknown", "temperature": "TEMP_ERROR", "blood_pressure": "160/100"})
    assert r.total == 3
    assert r.high_risk is False
    assert r.fever is False
    assert r.data_quality_issue is True
    assert (r.bp_valid, r.temp_valid, r.age_valid) == (True, False, False)


def test_missing_fields_are_data_quality_issues():
    r = compute_patient_risk({"patient_id": "D"})
    assert r.total == 0
    assert r.data_quality_issue is True


def test_compute_patient_risk_uses_aliases():
    r = compute_patient_risk({"patientId": " P-9 ", "bp": [142, 80], "temp_f": "99.8", "patient_age": "41"})
    assert r.patient_id == "P-9"
    assert (r.bp, r.temp, r.age) == (3, 1, 1)
    assert r.fever is True


def test_compute_patient_risk_without_id():
    assert compute_patient_risk({"age": 50}) is None
    assert compute_patient_risk({"patient_id": "   ", "age": 50}) is None
    assert compute_patient_risk_details({"age": 50}) is None


def test_details_to_dict_shape():
    d = compute_patient_risk_details({"patient_id": "E", "blood_pressure": "120/80", "temperature": None, "age": 30})
    out = d.to_dict()
    assert out["patientId"] == "E"
    assert out["scores"] == {"bp": 2, "temp": 0, "age": 1, "total": 3}
    assert out["flags"]["tempValid"] is False
    assert out["flags"]["dataQualityIssue"] is True
    assert out["inputs"] == {"bloodPressure": "120/80", "temperature": None, "age": 30}


def test_oversized_numbers_flag_data_quality():
    record = json.loads('{"patient_id": "P1", "temperature": 1' + "0" * 400 + ', "age": 50, "blood_pressure": "' + "1" * 5000 + '/80"}')
    r = compute_patient_risk(record)
    assert (r.bp_valid, r.temp_valid, r.age_valid) == (False, False, True)
    assert r.data_quality_issue is True
    assert score_age(10**400) == AgeScore(0, False, None)
