"""Health endpoint tests."""


def test_health_returns_ok(client):
    """GET /health reports status and that the scanner is off under test."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "scanner": "stopped"}
