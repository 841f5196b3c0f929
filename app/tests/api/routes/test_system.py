import pytest

pytestmark = pytest.mark.unit


def test_get_version(client):
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": "abc123"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_correlation_id_echoed(client):
    response = client.get("/health", headers={"X-Correlation-ID": "req-42"})
    assert response.headers["X-Correlation-ID"] == "req-42"


def test_correlation_id_generated(client):
    response = client.get("/health")
    assert response.headers["X-Correlation-ID"]
