"""资源估算、通知分发与态势查询接口测试。"""

from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from sentinel_compass.api.main import create_app
from sentinel_compass.config import AppConfig


def _config(**overrides) -> AppConfig:
    values = dict(
        log_json=False,
        log_level="WARNING",
        directory_path=None,
        history_limit=5,
        send_timeout_seconds=1.0,
        channel_gateway_url=None,
        channel_gateway_api_key=None,
        channel_gateway_timeout=1.0,
        simulated_send_latency=0.0,
    )
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture
def client(small_directory, recording_sender) -> Iterator[TestClient]:
    app = create_app(_config(), sender=recording_sender, directory=small_directory)
    with TestClient(app) as test_client:
        yield test_client


SCENARIO = {
    "disasterType": "earthquake",
    "severity": "high",
    "populationAffected": 5000,
    "areaSizeKm2": 200,
    "magnitude": 6.4,
}


def test_estimate_and_latest_plan(client: TestClient) -> None:
    assert client.get("/resources/latest").status_code == 404

    response = client.post("/resources/estimate", json=SCENARIO)
    assert response.status_code == 200
    body = response.json()
    assert body["rescuers"] == 300
    assert body["capacity"] == 320
    assert body["shelters"] == 68
    assert body["magnitudeBand"] == "severe"
    assert body["rescueTeams"][0] == "Urban Search and Rescue"

    latest = client.get("/resources/latest")
    assert latest.status_code == 200
    assert latest.json() == body


@pytest.mark.parametrize(
    "override",
    [
        {"populationAffected": 0},
        {"areaSizeKm2": 250_000},
        {"disasterType": "volcano"},
        {"severity": "catastrophic"},
        {"magnitude": 11},
        {"disasterType": "flood", "magnitude": -3},
    ],
)
def test_estimate_rejects_invalid_scenarios(client: TestClient, override: dict) -> None:
    response = client.post("/resources/estimate", json={**SCENARIO, **override})
    assert response.status_code == 422
    assert client.get("/resources/latest").status_code == 404


def test_magnitude_band_endpoint(client: TestClient) -> None:
    assert client.get("/resources/magnitude-band", params={"magnitude": 5.5}).json() == {
        "magnitude": 5.5,
        "band": "moderate",
    }
    assert client.get("/resources/magnitude-band", params={"magnitude": 0.2}).status_code == 422


def test_alert_dispatch_waits_for_outcome(client: TestClient, recording_sender) -> None:
    response = client.post(
        "/notifications/alert",
        json={"region": "Zone A", "alertMessage": "Gas leak near the depot"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["record"]["status"] == "success"
    assert body["record"]["actionLabel"] == "Alert"
    assert body["sent"] == 9
    assert body["failed"] == 0
    assert len(recording_sender.calls) == 9

    listing = client.get("/notifications").json()
    assert listing["total"] == 1
    assert listing["limit"] == 5
    record_id = listing["items"][0]["id"]
    assert client.get(f"/notifications/{record_id}").json()["status"] == "success"


def test_background_dispatch_returns_pending(client: TestClient, recording_sender) -> None:
    response = client.post("/notifications/all_clear", params={"wait": "false"}, json={"region": "Zone B"})
    assert response.status_code == 202
    record = response.json()
    assert record["status"] == "pending"
    assert record["completedAt"] is None

    # TestClient 在返回前已执行完后台任务
    stored = client.get(f"/notifications/{record['id']}").json()
    assert stored["status"] == "success"
    assert len(recording_sender.calls) == 9


def test_failed_send_marks_record_error(small_directory, sender_factory) -> None:
    sender = sender_factory(fail_targets={"evac-lead@example.org"})
    app = create_app(_config(), sender=sender, directory=small_directory)
    with TestClient(app) as client:
        body = client.post("/notifications/evacuation", json={"region": "Zone C"}).json()

    assert body["record"]["status"] == "error"
    assert body["record"]["error"] == "Failed to notify one or more recipients"
    assert body["failed"] == 1
    assert body["sent"] == 5


def test_resource_request_uses_latest_plan(client: TestClient, recording_sender) -> None:
    missing = client.post("/notifications/resource_request", json={"region": "Zone D"})
    assert missing.status_code == 422

    client.post("/resources/estimate", json=SCENARIO)
    response = client.post("/notifications/resource_request", json={"region": "Zone D"})
    assert response.status_code == 200
    message = recording_sender.calls[0][3]
    assert message.startswith("RESOURCE REQUEST: The following resources are needed in Zone D: ")
    assert "300 rescue personnel" in message


def test_unknown_action_and_record(client: TestClient) -> None:
    assert client.post("/notifications/stand_down", json={"region": "Zone A"}).status_code == 422
    assert client.post("/notifications/alert", json={"region": ""}).status_code == 422
    assert client.get("/notifications/does-not-exist").status_code == 404


def test_alert_feed_read_flow(client: TestClient) -> None:
    alerts = client.get("/alerts").json()
    assert len(alerts["items"]) == 4
    assert alerts["unread"] == 2

    marked = client.post("/alerts/1/read").json()
    assert marked["read"] is True
    assert client.get("/alerts").json()["unread"] == 1
    assert client.post("/alerts/99/read").status_code == 404

    assert client.post("/alerts/read-all").json() == {"marked": 1, "unread": 0}


def test_incidents_directory_and_health(client: TestClient) -> None:
    incidents = client.get("/incidents").json()["items"]
    assert [item["markerRadius"] for item in incidents] == [35, 45, 35, 25]

    summary = client.get("/directory").json()
    assert summary["teams"]["evacuation"]["members"] == 2
    assert summary["regionDevices"] == {"total": 3, "sms": 2, "push": 1}

    response = client.get("/healthz", headers={"X-Trace-Id": "trace-123"})
    assert response.json() == {"status": "ok", "notifications": 0, "has_plan": False}
    assert response.headers["X-Trace-Id"] == "trace-123"
