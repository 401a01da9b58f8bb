"""
Shared fixtures for Case Status service tests.
"""

import json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import httpx
import pytest

from service_case_status.app.config import CaseStatusConfig

TOKEN_URL = "https://uscis.test/oauth/accesstoken"
CASE_STATUS_URL = "https://uscis.test/case-status"


class FakeUscis:
    """In-process stand-in for the USCIS token and case status endpoints."""

    def __init__(self):
        self.token_calls: List[Dict[str, Any]] = []
        self.case_calls: List[httpx.Request] = []

        self.token_status = 200
        self.token_body: Dict[str, Any] = {"token_type": "BearerToken", "expires_in": 1800}
        self.token_error: Optional[Exception] = None

        self.cases: Dict[str, Tuple[int, Any]] = {}
        self.case_error: Optional[Exception] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path == "/oauth/accesstoken":
            return self._token(request)
        if request.method == "GET" and request.url.path.startswith("/case-status/"):
            return self._case(request)
        return httpx.Response(405)

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        self.token_calls.append({"form": form, "headers": dict(request.headers)})
        if self.token_error is not None:
            raise self.token_error

        body = dict(self.token_body)
        if self.token_status == 200 and "access_token" not in body:
            body["access_token"] = f"token-{len(self.token_calls)}"
        return httpx.Response(self.token_status, json=body)

    def _case(self, request: httpx.Request) -> httpx.Response:
        self.case_calls.append(request)
        if self.case_error is not None:
            raise self.case_error

        receipt_number = request.url.path.rsplit("/", 1)[-1]
        status, body = self.cases.get(receipt_number, (404, {"error": "Case not found"}))
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, content=json.dumps(body), headers={"Content-Type": "application/json"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_uscis():
    return FakeUscis()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    """Configuration that ignores the environment and .env files."""
    return CaseStatusConfig(
        _env_file=None,
        env="test",
        log_level="warning",
        uscis_client_id="test-client",
        uscis_client_secret="test-secret",
        uscis_token_url=TOKEN_URL,
        uscis_case_status_url=CASE_STATUS_URL,
    )


@pytest.fixture
def raw_case():
    """Upstream body in the camelCase shape."""
    return {
        "receiptNumber": "EAC9999103403",
        "formType": "I-130",
        "receivedDate": "2024-01-02",
        "lastUpdatedDate": "2024-02-03",
        "status": "Case Was Received",
        "statusDescription": "We received your Form I-130.",
        "caseHistory": [
            {"date": "2024-01-02", "description": "Case Was Received"}
        ]
    }
