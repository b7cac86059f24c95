def test_health(test_client):
    r = test_client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert "version" in data

def test_version(test_client):
    r = test_client.get("/version")
    assert r.status_code == 200
    data = r.json()
    assert "name" in data and "version" in data and "env" in data
    assert data["env"] == "test"
    assert data["rank_policy"] == "2024.1"

def test_root_redirects_to_docs(test_client):
    r = test_client.get("/", follow_redirects=False)
    assert r.status_code in (301, 302, 307, 308)
    assert "/docs" in r.headers.get("location", "")

def test_cors_allows_configured_origin(test_client):
    r = test_client.get("/health", headers={"Origin": "http://localhost"})
    assert r.headers.get("access-control-allow-origin") == "http://localhost"
