from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .scoring import PatientRisk, compute_patient_risk

logger = logging.getLogger(__name__)

ALERT_KEYS = ("high_risk_patients", "fever_patients", "data_quality_issues")


def _uniq_sorted(ids: Iterable[str]) -> List[str]:
    return sorted(set(ids))


def build_alert_lists(computed: Iterable[PatientRisk]) -> Dict[str, List[str]]:
    high_risk = []
    fever = []
    data_issues = []

    for p in computed:
        if p.high_risk:
            high_risk.append(p.patient_id)
        if p.fever:
            fever.append(p.patient_id)
        if p.data_quality_issue:
            data_issues.append(p.patient_id)

    return dict(zip(ALERT_KEYS, map(_uniq_sorted, (high_risk, fever, data_issues))))


def score_patients(patients: Iterable[dict]) -> List[PatientRisk]:
    computed = []
    dropped = 0
    for p in patients:
        risk = compute_patient_risk(p)
        if risk is None:
            dropped += 1
            continue
        computed.append(risk)
    if dropped:
        logger.warning("Dropped %d records due to missing patient_id", dropped)
    return computed


def analyze(patients: Iterable[dict]) -> Dict[str, List[str]]:
    """Raw patient records straight to the submission payload."""
    return build_alert_lists(score_patients(patients))
