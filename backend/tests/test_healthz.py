"""
Test health and root endpoints for the palette service.
"""


def test_health_check(test_client):
    """Test health check reports service identity."""
    response = test_client.get("/healthz")

    assert response.status_code == 200
    data = response.json()

    # Check required fields
    assert data["ok"] is True
    assert data["version"] == "1.0.0"
    assert data["service"] == "color-palette-api"


def test_root(test_client):
    """Test root endpoint points at the docs."""
    response = test_client.get("/")

    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"
