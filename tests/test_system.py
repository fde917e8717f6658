"""Tests for the system endpoints."""


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_config_lists_configured_providers(client):
    body = client.get("/config").json()

    assert "google" in body["providers"]
    assert body["default_locale"] == "en"
    assert "es" in body["locales"]
