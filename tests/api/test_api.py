from __future__ import annotations

import pytest

from attendance_engine.main import create_app

from conftest import punch


@pytest.fixture
def client(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container)
    return app.test_client()


def post_manual(client, **overrides):
    body = {"user_id": 1, "date": "2025-10-06", "check_in": "10:20", "check_out": "19:00"}
    body.update(overrides)
    return client.post("/api/attendance/manual", json=body)


def test_manual_entry_returns_created_record(client):
    resp = post_manual(client)

    assert resp.status_code == 201
    [record] = resp.get_json()["records"]
    assert record["work_date"] == "2025-10-06"
    assert record["check_in"] == "10:20"
    assert record["flags"]["is_buffer_used"] is True
    assert record["approval_status"] == "Pending"
    assert record["settings_snapshot"]["settings_version"] == 1


def test_duplicate_entry_is_conflict(client):
    post_manual(client)

    resp = post_manual(client, check_in="10:00")

    assert resp.status_code == 409
    assert "already recorded" in resp.get_json()["error"]


def test_missing_field_and_bad_time_are_bad_requests(client):
    assert client.post("/api/attendance/manual", json={"user_id": 1}).status_code == 400
    assert post_manual(client, check_in="ten").status_code == 400


def test_unknown_user_and_record_are_not_found(client):
    assert post_manual(client, user_id=99).status_code == 404
    assert client.get("/api/attendance/999").status_code == 404


def test_status_change_and_month_listing(client):
    record_id = post_manual(client).get_json()["records"][0]["outcome_id"]

    resp = client.patch(f"/api/attendance/{record_id}/status", json={"status": "Rejected"})
    assert resp.status_code == 200
    assert resp.get_json()["approval_status"] == "Rejected"

    listing = client.get("/api/attendance/month?month=10&year=2025&user_id=1").get_json()
    assert [r["outcome_id"] for r in listing["records"]] == [record_id]

    counter = client.get("/api/buffer/1?date=2025-10-06").get_json()
    assert counter["usage_count"] == 1


def test_delete_entry(client):
    record_id = post_manual(client).get_json()["records"][0]["outcome_id"]

    assert client.delete(f"/api/attendance/{record_id}").get_json() == {"deleted": record_id}
    assert client.get(f"/api/attendance/{record_id}").status_code == 404


def test_settings_versions(client):
    resp = client.put("/api/settings", json={"buffer_minutes": 20})
    assert resp.status_code == 200
    assert resp.get_json()["version"] == 2

    assert client.put("/api/settings", json={"buffer_minutes": 90}).status_code == 400

    history = client.get("/api/settings/history").get_json()["versions"]
    assert [v["version"] for v in history] == [2, 1]
    assert client.get("/api/settings").get_json()["buffer_minutes"] == 20


def test_holiday_lifecycle(client):
    resp = client.post("/api/holidays", json={"date": "2025-10-07", "name": "Bank Holiday"})
    assert resp.status_code == 201
    assert resp.get_json()["holiday"]["day"] == "2025-10-07"

    assert client.post("/api/holidays", json={"date": "2025-10-07", "name": "Again"}).status_code == 409
    assert [h["name"] for h in client.get("/api/holidays").get_json()["holidays"]] == ["Bank Holiday"]
    assert client.delete("/api/holidays/2025-10-07").status_code == 200
    assert client.delete("/api/holidays/2025-10-07").status_code == 404


def test_automation_run_and_status(client, punch_source):
    punch_source.events = [punch("101", "2025-10-06T10:05:00"), punch("101", "2025-10-06T19:10:00")]

    resp = client.post("/api/automation/run", json={"start": "2025-10-06T00:00:00", "end": "2025-10-07T00:00:00"})

    assert resp.status_code == 200
    assert resp.get_json()["saved"] == 1
    status = client.get("/api/automation/status").get_json()
    assert status["last_fetch_time"] == "2025-10-07T00:00:00"
    assert status["stats"]["total_processed"] == 2


def test_automation_upstream_failure_is_bad_gateway(client, punch_source):
    punch_source.error = "device offline"

    resp = client.post("/api/automation/run", json={"start": "2025-10-06T00:00:00", "end": "2025-10-07T00:00:00"})

    assert resp.status_code == 502
    assert resp.get_json() == {"error": "device offline"}
