from third_party_audit.platform.config import settings


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200

    payload = response.json()
    assert payload["status_code"] == 200
    assert payload["status"] == "success"
    assert payload["message"] == "Service is healthy"
    assert payload["data"]["status"] == "ok"
    assert payload["data"]["service"] == settings.APP_NAME
    assert payload["data"]["catalog"]["services"] > 0


def test_root_info(client):
    response = client.get("/")
    assert response.status_code == 200
    payload = response.json()
    assert payload["app_name"] == settings.APP_NAME
    assert payload["version"] == "2.0.0"
    assert payload["docs_url"] == "/docs"
    assert payload["api_base"] == "/api/v1"


def test_unknown_route_uses_envelope(client):
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    payload = response.json()
    assert payload["status"] == "error"
    assert payload["status_code"] == 404
