"""
DemoMed patient risk assessment:
- client: authenticated requests with retry/backoff
- pagination: fetch every page, reconcile and dedupe patients
- parsing / scoring: tolerant vitals parsing and the risk point table
- alerts: high-risk, fever and data-quality lists for submission
"""

from .alerts import analyze, build_alert_lists
from .client import DemoMedClient
from .pagination import FetchMeta, FetchOptions, FetchResult, fetch_all_patients
from .scoring import compute_patient_risk, compute_patient_risk_details

__all__ = [
    "DemoMedClient",
    "FetchMeta",
    "FetchOptions",
    "FetchResult",
    "analyze",
    "build_alert_lists",
    "compute_patient_risk",
    "compute_patient_risk_details",
    "fetch_all_patients",
]

__version__ = "0.1.0"
