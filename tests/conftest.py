"""
Pytest configuration and shared fixtures.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pytest
import requests
from unittest.mock import MagicMock, patch

from sap_sl.core.session import ServiceLayerConfig, ServiceLayerSession
from sap_sl.odata.service import ServiceLayer


BASE = "https://b1.test:50001/b1s/v2/"
LOGIN_URL = BASE + "Login"


class FakeClock:
    """Controllable time source."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


def make_response(
    status: int = 200,
    body: Any = None,
    url: str = BASE,
    headers: Optional[Dict[str, str]] = None,
) -> requests.Response:
    """Build a real requests.Response carrying ``body``."""
    r = requests.Response()
    r.status_code = status
    r.url = url
    r.encoding = "utf-8"
    if body is None:
        r._content = b""
    elif isinstance(body, (dict, list)):
        r._content = json.dumps(body).encode("utf-8")
        r.headers["Content-Type"] = "application/json;odata.metadata=minimal;charset=utf-8"
    else:
        r._content = str(body).encode("utf-8")
        r.headers["Content-Type"] = "text/plain"
    if headers:
        r.headers.update(headers)
    return r


def login_response(session_id: str = "sess-1", timeout: int = 30) -> requests.Response:
    return make_response(200, {
        "odata.metadata": BASE + "$metadata#B1Sessions/@Element",
        "SessionId": session_id,
        "Version": "1000190",
        "SessionTimeout": timeout,
    })


def sl_error_body(code: int = -2028, value: str = "No matching records found (ODBC -2028)") -> Dict[str, Any]:
    return {"error": {"code": code, "message": {"lang": "en-us", "value": value}}}


def request_calls(http: MagicMock, method: Optional[str] = None):
    """(method, url, json) for every request sent through the mocked transport."""
    out = []
    for c in http.request.call_args_list:
        m = c.kwargs["method"]
        if method is None or m == method:
            out.append((m, c.kwargs["url"], c.kwargs.get("json")))
    return out


def login_count(http: MagicMock) -> int:
    return len([c for c in request_calls(http, "POST") if c[1].endswith("/Login")])


@pytest.fixture
def sl_config():
    """Configuration pointing at a test Service Layer."""
    return ServiceLayerConfig(
        host="https://b1.test",
        company="SBODEMOUS",
        username="manager",
        password="secret",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def http():
    """Mocked requests.Session shared by every login."""
    with patch("sap_sl.core.session.requests.Session") as session_class:
        mock_http = MagicMock()
        mock_http.headers = {}
        session_class.return_value = mock_http
        yield mock_http


@pytest.fixture
def sl_session(sl_config, clock, http):
    return ServiceLayerSession(sl_config, clock=clock)


@pytest.fixture
def sl(sl_session):
    """ServiceLayer client on a mocked transport (not logged in yet)."""
    return ServiceLayer(session=sl_session)


@pytest.fixture
def orders_pages():
    """Three pages of orders: 2, 2 and 1 items."""
    return [
        {
            "value": [{"DocEntry": 1}, {"DocEntry": 2}],
            "@odata.nextLink": "Orders?$select=DocEntry&$skip=2",
        },
        {
            "value": [{"DocEntry": 3}, {"DocEntry": 4}],
            "@odata.nextLink": "Orders?$select=DocEntry&$skip=4",
        },
        {
            "value": [{"DocEntry": 5}],
        },
    ]
