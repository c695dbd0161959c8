import json
from collections import deque

import pytest
from requests.structures import CaseInsensitiveDict


class FakeResponse:
    def __init__(self, status_code=200, body=None, headers=None, reason=""):
        self.status_code = status_code
        self.reason = reason
        self.headers = CaseInsensitiveDict(headers or {})
        if body is None:
            self.text = ""
        elif isinstance(body, str):
            self.text = body
        else:
            self.text = json.dumps(body)

    @property
    def ok(self):
        return self.status_code < 400


class FakeSession:
    """Serves scripted responses; an item may be a FakeResponse, an exception, or a callable(call)."""

    def __init__(self, responses=None, handler=None):
        self.responses = deque(responses or [])
        self.handler = handler
        self.calls = []

    def request(self, method, url, **kwargs):
        call = {"method": method, "url": url, **kwargs}
        self.calls.append(call)
        item = self.handler(call) if self.handler else self.responses.popleft()
        if isinstance(item, Exception):
            raise item
        return item


def page_handler(pages, default=None):
    """Handler answering GET /patients by page number from a dict of page -> body (or list of bodies)."""
    served = {}

    def handler(call):
        page = call["params"]["page"]
        body = pages.get(page, default if default is not None else {"data": []})
        if isinstance(body, list) and body and isinstance(body[0], FakeResponse):
            i = served.get(page, 0)
            served[page] = i + 1
            return body[min(i, len(body) - 1)]
        if isinstance(body, FakeResponse):
            return body
        return FakeResponse(200, body)

    return handler


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_client(sleeps):
    from ksense_assessment.client import DemoMedClient

    def _make(session, **kwargs):
        kwargs.setdefault("max_retries", 3)
        kwargs.setdefault("min_delay", 0.01)
        return DemoMedClient(
            base_url="https://example.test/api/",
            api_key="ak_test",
            session=session,
            sleep=sleeps.append,
            rand=lambda lo, hi: 1.0,
            **kwargs,
        )

    return _make
