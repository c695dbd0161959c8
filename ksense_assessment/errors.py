from __future__ import annotations

import json
from typing import Any, Optional


class DemoMedError(Exception):
    pass


def _body_text(body: Any) -> str:
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body)
    except (TypeError, ValueError):
        return repr(body)


class ApiError(DemoMedError):
    """Terminal HTTP failure from the DemoMed API."""

    def __init__(self, status: int, reason: str = "", body: Any = None):
        self.status = status
        self.reason = reason or ""
        self.body = body
        super().__init__(f"HTTP {status} {self.reason}: {_body_text(body)}")


class RateLimitError(ApiError):
    def __init__(self, body: Any = None, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__(429, "Too Many Requests", body)
        if retry_after is not None:
            self.args = (f"HTTP 429 Too Many Requests (suggested wait: {retry_after}s): {_body_text(body)}",)


class IncompleteFetchError(DemoMedError):
    def __init__(self, meta):
        self.meta = meta
        if meta.expected_total is not None:
            msg = (
                f"Fetch incomplete: collected {meta.unique_patient_ids}/{meta.expected_total} "
                "unique patient_ids. Re-run to fetch all data."
            )
        else:
            msg = "Fetch incomplete: cannot confirm completeness from API metadata. Re-run to fetch all data."
        super().__init__(msg)
