"""
HTTP client for the DemoMed assessment API.

The API rate-limits aggressively (429) and fails on purpose (500/503), so
every call goes through ``DemoMedClient.request`` which retries those with
jittered exponential backoff.
"""

from __future__ import annotations

import json
import logging
import math
import random
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import requests

from .errors import ApiError, RateLimitError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://assessment.ksensetech.com/api"

RETRY_STATUSES = (500, 503)
RETRY_AFTER_BODY_KEYS = ("retry_after", "retryAfter", "retryAfterSeconds")

_INT_PREFIX_RE = re.compile(r"^\s*([-+]?\d+)")


@dataclass
class ApiResponse:
    status: int
    headers: Mapping[str, str]
    body: Any


def jitter(seconds: float, rand: Callable[[float, float], float] = random.uniform) -> float:
    return seconds * rand(0.85, 1.15)


def parse_int_prefix(value: Any) -> Optional[int]:
    """Leading integer of a header/body value ("30", " 2s", 5.9), else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _INT_PREFIX_RE.match(str(value))
    if not match:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        return None


def read_body(resp: requests.Response) -> Any:
    text = resp.text
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def retry_after_hint(resp: requests.Response, body: Any) -> Optional[int]:
    hint = parse_int_prefix(resp.headers.get("retry-after"))
    if hint is None and isinstance(body, dict):
        for key in RETRY_AFTER_BODY_KEYS:
            if body.get(key) is not None:
                hint = parse_int_prefix(body[key])
                break
    return hint


class DemoMedClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str = "",
        timeout: float = 15.0,
        max_retries: int = 12,
        min_delay: float = 0.2,
        max_delay: float = 8.0,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        rand: Callable[[float, float], float] = random.uniform,
    ):
        self.base_url = str(base_url or "").rstrip("/")
        self.api_key = str(api_key or "")
        self.timeout = timeout
        self.max_retries = max_retries
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.session = session or requests.Session()
        self.sleep = sleep
        self.rand = rand

    def _wait(self, seconds: float) -> None:
        self.sleep(jitter(seconds, self.rand))

    def request(
        self,
        path: str,
        method: str = "GET",
        params: Optional[dict] = None,
        json_body: Any = None,
    ) -> ApiResponse:
        url = f"{self.base_url}{path}"
        headers = {"x-api-key": self.api_key, "accept": "application/json"}
        if json_body is not None:
            headers["content-type"] = "application/json"

        attempt = 0
        backoff = self.min_delay

        while True:
            attempt += 1
            logger.debug("%s %s params=%s attempt=%d", method, url, params, attempt)
            try:
                resp = self.session.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    data=json.dumps(json_body) if json_body is not None else None,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                if attempt > self.max_retries:
                    raise
                logger.warning(
                    "%s %s failed (%s), retry %d/%d in %.2fs", method, path, e, attempt, self.max_retries, backoff
                )
                self._wait(backoff)
                backoff = min(backoff * 2, self.max_delay)
                continue

            body = read_body(resp)

            if resp.ok:
                return ApiResponse(resp.status_code, resp.headers, body)

            if resp.status_code == 429:
                hint = retry_after_hint(resp, body)
                if attempt > self.max_retries:
                    raise RateLimitError(body, retry_after=hint)
                wait = max(max(hint, 0), backoff) if hint is not None else backoff
                logger.warning(
                    "%s %s rate limited (retry-after=%s), retry %d/%d in %.2fs",
                    method, path, hint, attempt, self.max_retries, wait,
                )
                self._wait(wait)
                backoff = min(backoff * 2, self.max_delay)
                continue

            if resp.status_code in RETRY_STATUSES and attempt <= self.max_retries:
                logger.warning(
                    "%s %s returned %d, retry %d/%d in %.2fs",
                    method, path, resp.status_code, attempt, self.max_retries, backoff,
                )
                self._wait(backoff)
                backoff = min(backoff * 2, self.max_delay)
                continue

            raise ApiError(resp.status_code, resp.reason, body)

    def get_patients_page(self, page: int, limit: int) -> dict:
        body = self.request("/patients", params={"page": page, "limit": limit}).body
        if isinstance(body, dict):
            return body
        if isinstance(body, list):
            return {"data": body}
        return {"data": []}

    def submit_assessment(self, payload: dict) -> Any:
        return self.request("/submit-assessment", method="POST", json_body=payload).body
