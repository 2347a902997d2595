"""
Tests for the main application endpoints.
"""


def test_root_endpoint(client):
    """
    Test the root endpoint returns a welcome message.
    """
    response = client.get("/")
    assert response.status_code == 200
    assert "message" in response.json()


def test_health_check(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_request_id_is_generated(client):
    response = client.get("/api/health")
    assert response.headers["X-Request-ID"]
    assert "X-Process-Time" in response.headers


def test_request_id_is_propagated(client):
    response = client.get("/api/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


def test_malformed_request_id_is_replaced(client):
    for supplied in ("forged id; level=ERROR", "x" * 65):
        response = client.get("/api/health", headers={"X-Request-ID": supplied})
        assert response.headers["X-Request-ID"] != supplied
        assert len(response.headers["X-Request-ID"]) == 36


def test_unknown_route_is_not_found(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
