from __future__ import annotations

from datetime import datetime

import pytest
import requests
from requests.auth import HTTPDigestAuth

from attendance_engine.core.exceptions import UpstreamIOError
from attendance_engine.punches.isapi_source import IsapiPunchSource

URL = "http://10.0.0.5/ISAPI/AccessControl/AcsEvent"


class FakeResponse:
    def __init__(self, payload=None, *, status=200, invalid_json=False):
        self._payload = payload
        self._status = status
        self._invalid_json = invalid_json

    def raise_for_status(self):
        if self._status >= 400:
            raise requests.HTTPError(f"{self._status} error")

    def json(self):
        if self._invalid_json:
            raise ValueError("no JSON object could be decoded")
        return self._payload


class FakeSession:
    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.requests = []

    def post(self, url, json=None, auth=None, timeout=None):
        self.requests.append({"url": url, "json": json, "auth": auth, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)


def page(status, *items):
    return FakeResponse({"AcsEvent": {"responseStatusStrg": status, "InfoList": list(items)}})


def item(employee, stamp):
    return {"employeeNoString": employee, "time": stamp, "major": 5, "minor": 75}


START = datetime(2025, 10, 6, 0, 0)
END = datetime(2025, 10, 7, 0, 0)


def test_fetch_pages_until_device_stops_saying_more():
    session = FakeSession(
        page("MORE", item("101", "2025-10-06T19:05:00+05:00"), item("101", "2025-10-06T10:15:00+05:00")),
        page("OK", item("102", "2025-10-06T09:58:12+05:00"), item("101", "2025-10-06T10:15:00+05:00")),
    )
    source = IsapiPunchSource(URL, username="admin", password="secret", session=session)

    events = source.fetch(START, END)

    assert [(e.employee_id, e.timestamp.strftime("%H:%M")) for e in events] == [
        ("102", "09:58"),
        ("101", "10:15"),
        ("101", "19:05"),
    ]
    assert [r["json"]["AcsEventCond"]["searchResultPosition"] for r in session.requests] == [0, 2]


def test_request_body_and_digest_auth():
    session = FakeSession(page("OK"))
    source = IsapiPunchSource(URL, username="admin", password="secret", max_results=50, timeout=5, session=session)

    source.fetch(START, END)

    [request] = session.requests
    cond = request["json"]["AcsEventCond"]
    assert request["url"] == URL + "?format=json"
    assert isinstance(request["auth"], HTTPDigestAuth)
    assert request["timeout"] == 5
    assert cond["maxResults"] == 50
    assert cond["startTime"] == "2025-10-06T00:00:00+05:00"
    assert cond["endTime"] == "2025-10-07T00:00:00+05:00"
    assert (cond["major"], cond["minor"]) == (0, 0)


def test_no_credentials_means_no_auth():
    session = FakeSession(page("OK"))

    IsapiPunchSource(URL, session=session).fetch(START, END)

    assert session.requests[0]["auth"] is None


def test_unusable_items_are_skipped():
    session = FakeSession(
        page("OK", item("", "2025-10-06T10:00:00"), item("101", "yesterday"), {"time": "2025-10-06T10:00:00"})
    )

    assert IsapiPunchSource(URL, session=session).fetch(START, END) == []


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.ConnectionError("connection refused")),
        FakeSession(FakeResponse(status=401)),
        FakeSession(FakeResponse(invalid_json=True)),
    ],
)
def test_transport_failures_become_upstream_errors(session):
    with pytest.raises(UpstreamIOError):
        IsapiPunchSource(URL, session=session).fetch(START, END)


def test_from_config_reads_biometric_settings():
    source = IsapiPunchSource.from_config(
        {"base_url": URL, "username": "u", "password": "p", "timeout": "12", "timezone_offset": "+00:00"}
    )

    assert source._timeout == 12
    assert source._format(START) == "2025-10-06T00:00:00+00:00"
