from fastapi.testclient import TestClient

from forge_relay.utils.config import API_KEY_ENV


def test_health_reports_configured_key(api_key, app):
    r = TestClient(app).get("/api/health")

    assert r.status_code == 200
    assert r.json() == {"status": "ok", "api_key_configured": True, "model": "gemini-2.5-flash"}


def test_health_reports_missing_key(monkeypatch, app):
    monkeypatch.delenv(API_KEY_ENV, raising=False)

    assert TestClient(app).get("/api/health").json()["api_key_configured"] is False


def test_api_key_status_is_masked(api_key, app):
    r = TestClient(app).get("/api/config/apikey")

    assert r.json() == {"is_set": True, "masked": "...1234"}


def test_config_exposes_relay_settings(app):
    data = TestClient(app).get("/api/config").json()

    assert data["relay"]["idle_timeout_sec"] == 60.0
    assert data["gemini"]["model"] == "gemini-2.5-flash"
