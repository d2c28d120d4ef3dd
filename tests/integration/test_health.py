"""
Health, status and middleware behaviour.
"""


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers
    assert response.headers["X-Request-ID"]


def test_request_id_is_propagated(client):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_status_reports_components(client):
    response = client.get("/status")
    assert response.status_code == 200
    body = response.json()
    assert body["components"]["database"]["status"] == "healthy"
    assert body["components"]["cache"]["status"] == "disabled"
    assert body["cache"]["enabled"] is False


def test_root_lists_endpoints(client):
    body = client.get("/").json()
    assert body["endpoints"]["api"] == "/api"
    assert "/api/matchmakers" in body["areas"]
    assert "/api/billing" in body["areas"]


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_status_breaks_latency_down_by_area(client):
    client.get("/api/products")
    body = client.get("/status").json()
    assert "products" in body["performance"]["by_area"]
