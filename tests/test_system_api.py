from __future__ import annotations

from app.main import app


class StaticMonitor:
    def get_status(self):
        return {
            "isConnected": False,
            "isMonitoring": True,
            "retryCount": 2,
            "intervalSeconds": 30,
            "lastError": "connection refused",
        }


def test_status_offline(client):
    response = client.get("/api/system/status")

    assert response.status_code == 200
    body = response.json()
    assert body["mode"] == "OFFLINE"
    assert body["monitor"] is None
    assert body["features"] == {
        "companies": "SAMPLE_DATA",
        "filters": "STATIC_DATA",
        "auth": "STATIC_USERS",
        "crm": "DISABLED",
    }
    assert body["pid"] > 0


def test_status_reports_monitor(client):
    app.state.monitor = StaticMonitor()

    body = client.get("/api/system/status").json()

    assert body["monitor"]["isMonitoring"] is True
    assert body["monitor"]["retryCount"] == 2


def test_status_online(client, online_engine):
    body = client.get("/api/system/status").json()

    assert body["mode"] == "RAILWAY"
    assert body["features"]["companies"] == "REAL_DATA"
    assert body["features"]["crm"] == "ENABLED"


def test_health_offline_is_degraded(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "degraded"
    assert body["mode"] == "OFFLINE"
    assert body["database"] == "offline"
    assert body["cache"] == "disabled"
    assert body["version"] == "1.0.0"


def test_health_online(client, online_engine):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["mode"] == "RAILWAY"
    assert body["database"] == "ok"
    assert body["status"] in {"ok", "degraded"}


def test_metrics_counts_requests(client):
    client.get("/api/health")

    response = client.get("/api/metrics")

    assert response.status_code == 200
    body = response.json()
    assert body["requests_total"] >= 1
    assert "offline_responses_total" in body
    assert "uptime_seconds" in body


def test_request_id_is_echoed(client):
    response = client.get("/api/health", headers={"X-Request-ID": "abc-123"})

    assert response.headers["X-Request-ID"] == "abc-123"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/does-not-exist", headers={"X-Request-ID": "req-404"})

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "message": "Not Found",
        "error": "NOT_FOUND",
        "request_id": "req-404",
    }
