"""
Tests for the liveness, readiness and metrics routes.
"""

from unittest.mock import patch

from landslide_alerts.config import settings
from landslide_alerts.metrics import http_requests_total


class TestHealth:
    def test_root_liveness_text(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.text == "Sensor Web Server is running. POST sensor data to /sensors"

    def test_live(self, client):
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_without_twilio(self, client, monkeypatch):
        monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", "")

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["reason"] == "Twilio credentials not configured"

    def test_not_ready_when_db_down(self, client):
        with patch("landslide_alerts.main.check_db_health", return_value=False):
            response = client.get("/health/ready")

        assert response.status_code == 503


class TestMetrics:
    def test_metrics_exposed(self, client):
        client.post("/sensors", json={"soil_moisture_1": 10})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "sensor_readings_total" in response.text
        assert "http_requests_total" in response.text

    def test_path_label_uses_route_template(self, client):
        for device_id in ("DEV_0", "DEV_1", "DEV_2"):
            client.get(f"/sensors/{device_id}/readings")
        client.get("/no/such/path")

        paths = {
            sample.labels["path"]
            for metric in http_requests_total.collect()
            for sample in metric.samples
        }

        assert "/sensors/{device_id}/readings" in paths
        assert "unmatched" in paths
        assert not any("DEV_" in path for path in paths)
