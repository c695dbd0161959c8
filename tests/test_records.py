from ksense_assessment.records import extract_risk_inputs, get_patient_id, pick_field


def test_get_patient_id_prefers_primary_key():
    assert get_patient_id({"patient_id": "DEMO001", "id": "other"}) == "DEMO001"


def test_get_patient_id_falls_through_aliases():
    assert get_patient_id({"patient_id": "", "patientId": None, "id": "  DEMO002 "}) == "DEMO002"
    assert get_patient_id({"patientID": "DEMO003"}) == "DEMO003"


def test_get_patient_id_unusable():
    assert get_patient_id({"patient_id": 12345}) is None
    assert get_patient_id({"patient_id": "   "}) is None
    assert get_patient_id({}) is None
    assert get_patient_id(None) is None
    assert get_patient_id(["DEMO001"]) is None


def test_pick_field_presence_beats_value():
    assert pick_field({"temperature": None, "temp": 99.1}, ("temperature", "temp")) is None
    assert pick_field({"temp": 99.1}, ("temperature", "temp")) == 99.1
    assert pick_field({}, ("temperature",), default="missing") == "missing"


def test_extract_risk_inputs():
    inputs = extract_risk_inputs({"bloodPressure": "120/80", "tempF": "98.6", "Age": 44})
    assert inputs == ("120/80", "98.6", 44)
    assert extract_risk_inputs({}) == (None, None, None)
