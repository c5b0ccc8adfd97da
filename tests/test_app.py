import pytest
from fastapi.testclient import TestClient

from url_shortener.app import app
from url_shortener.errors import StoreFailure


def create(client, **body):
    return client.post("/shorturls", json=body)


def test_end_to_end_create_visit_expire(client, clock):
    response = create(client, url="https://example.com/page", validity=1)
    assert response.status_code == 201
    data = response.json()
    code = data["shortLink"].rsplit("/", 1)[1]
    assert data["shortLink"] == f"http://sho.rt/{code}"
    assert len(code) == 6 and code.isalnum()
    assert data["expiry"] == "2026-01-01T12:01:00.000Z"

    visit = client.get(f"/{code}", follow_redirects=False)
    assert visit.status_code == 302
    assert visit.headers["location"] == "https://example.com/page"
    assert client.get(f"/shorturls/{code}").json()["totalClicks"] == 1

    clock.advance(seconds=61)
    gone = client.get(f"/{code}", follow_redirects=False)
    assert gone.status_code == 410
    assert gone.json() == {"error": "Short URL has expired"}
    stats = client.get(f"/shorturls/{code}").json()
    assert stats["totalClicks"] == 1
    assert stats["isExpired"] is True


def test_custom_shortcode_conflict(client):
    assert create(client, url="https://example.com", shortcode="mycode123").status_code == 201
    dup = create(client, url="https://example.org", shortcode="mycode123")
    assert dup.status_code == 409
    assert dup.json() == {"error": "Shortcode already exists"}


def test_validation_errors(client):
    assert create(client).json() == {"error": "URL is required"}
    assert create(client, url="").json() == {"error": "URL is required"}
    assert create(client, url="not-a-url").json() == {"error": "Invalid URL format"}
    assert create(client, url="not-a-url").status_code == 400
    assert create(client, url="https://example.com", validity=0).status_code == 400
    assert create(client, url="https://example.com", shortcode="x" * 21).status_code == 400


def test_stats_payload(client):
    create(client, url="https://example.com/page", shortcode="stats1")
    client.get(
        "/stats1",
        headers={"Referer": "https://blog.example/post", "User-Agent": "pytest", "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        follow_redirects=False,
    )
    client.get("/stats1", follow_redirects=False)
    stats = client.get("/shorturls/stats1").json()
    assert stats["shortcode"] == "stats1"
    assert stats["originalUrl"] == "https://example.com/page"
    assert stats["createdAt"] == "2026-01-01T12:00:00.000Z"
    assert stats["expiresAt"] == "2026-01-01T12:30:00.000Z"
    assert stats["shortLink"] == "http://sho.rt/stats1"
    assert stats["isExpired"] is False
    assert stats["totalClicks"] == 2
    assert stats["clicks"][0] == {
        "timestamp": "2026-01-01T12:00:00.000Z",
        "referrer": "https://blog.example/post",
        "location": {"country": "US", "region": "CA", "city": "San Francisco"},
    }
    assert stats["clicks"][1]["referrer"] == "direct"
    assert stats["clicks"][1]["location"] == {"country": "Unknown", "region": "Unknown", "city": "Unknown"}


def test_unknown_codes(client):
    assert client.get("/ghost", follow_redirects=False).status_code == 404
    assert client.get("/shorturls/ghost").json() == {"error": "Short URL not found"}
    assert client.delete("/shorturls/ghost").status_code == 404


def test_list_newest_first(client, clock):
    create(client, url="https://one.example", shortcode="one")
    clock.advance(seconds=1)
    create(client, url="https://two.example", shortcode="two")
    listing = client.get("/shorturls").json()
    assert [item["shortcode"] for item in listing] == ["two", "one"]


def test_delete_only_when_expired(client, clock):
    create(client, url="https://example.com", shortcode="tmp", validity=1)
    clock.advance(minutes=1)
    refused = client.delete("/shorturls/tmp")
    assert refused.status_code == 400
    assert refused.json() == {"error": "Cannot delete an active short URL"}
    assert client.get("/shorturls/tmp").status_code == 200

    clock.advance(milliseconds=1)
    deleted = client.delete("/shorturls/tmp")
    assert deleted.json() == {"success": True, "message": "Short URL deleted"}
    assert client.get("/shorturls/tmp").status_code == 404


def test_click_store_failure_is_a_server_error(client, store, monkeypatch):
    create(client, url="https://example.com", shortcode="boom")

    def fail(shortcode, event):
        raise StoreFailure()

    monkeypatch.setattr(store, "append_click", fail)
    response = client.get("/boom", follow_redirects=False)
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_health(client):
    assert client.get("/health").json() == {"status": "OK", "timestamp": "2026-01-01T12:00:00.000Z"}


def test_unknown_route_uses_error_body(client):
    response = client.post("/nowhere")
    assert response.status_code in (404, 405)
    assert "error" in response.json()


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"
    assert client.get("/health").headers["X-Request-ID"]


@pytest.mark.parametrize("body, error", [
    ({"url": "https://example.com", "validity": "5"}, "Validity must be a positive integer representing minutes"),
    ({"url": "https://example.com", "validity": 1.5}, "Validity must be a positive integer representing minutes"),
    ({"url": "https://example.com", "validity": 2.0}, "Validity must be a positive integer representing minutes"),
    ({"url": "https://example.com", "validity": True}, "Validity must be a positive integer representing minutes"),
    ({"url": "https://example.com", "shortcode": 123}, "Shortcode must be alphanumeric and max 20 characters"),
    ({"url": 42}, "Invalid URL format"),
])
def test_malformed_create_fields(client, body, error):
    response = client.post("/shorturls", json=body)
    assert response.status_code == 400
    assert response.json() == {"error": error}
    assert client.get("/shorturls").json() == []


def test_non_object_body(client):
    response = client.post("/shorturls", json=["https://example.com"])
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_unexpected_error_keeps_json_body(client, store, monkeypatch):
    def explode(shortcode):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(store, "find_by_code", explode)
    response = TestClient(app, raise_server_exceptions=False).get("/shorturls/anything")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
