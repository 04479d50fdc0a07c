"""
Tests for the HTTP surface.

Verifies:
- /health, /version and / respond
- /search maps input and configuration errors to 400 / 500 with {error}
- /search returns one entry per enabled provider with status 200
"""
import logging

from fastapi.testclient import TestClient

from conftest import amazon_product_payload, amazon_search_payload
from pricescan.core.config import settings
from pricescan.main import app

client = TestClient(app)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_version():
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": settings.APP_VERSION, "build": settings.BUILD_ID}


def test_root_lists_endpoints():
    data = client.get("/").json()
    assert data["status"] == "ok"
    assert data["search"] == "/search?q="


def test_search_missing_query_is_400(fake_serpapi):
    fake = fake_serpapi({})

    response = client.get("/search")

    assert response.status_code == 400
    assert "error" in response.json()
    assert fake.calls == []


def test_search_blank_query_is_400(fake_serpapi):
    fake = fake_serpapi({})

    response = client.get("/search", params={"q": "   "})

    assert response.status_code == 400
    assert fake.calls == []


def test_search_without_credential_is_500(fake_serpapi, monkeypatch):
    monkeypatch.setattr(settings, "SERPAPI_API_KEY", "")
    fake = fake_serpapi({})

    response = client.get("/search", params={"q": "mouse"})

    assert response.status_code == 500
    assert response.json() == {"error": "SERPAPI_API_KEY is not set"}
    assert fake.calls == []


def test_search_success(fake_serpapi):
    fake_serpapi({
        "amazon": lambda url: amazon_search_payload(),
        "amazon_product": lambda url: amazon_product_payload(),
    })

    response = client.get("/search", params={"q": "wireless mouse"})

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "wireless mouse"
    assert len(data["results"]) == 1
    product = data["results"][0]
    assert product["platform"] == "amazon"
    assert product["id"] == "B000X"
    assert product["upc"] == "097855066107"
    assert "error" not in product
    assert product["reviews"][1]["user_name"] == "Anonymous"


def test_provider_failure_is_still_200(fake_serpapi, monkeypatch):
    monkeypatch.setattr(settings, "ENABLED_PROVIDERS", ["amazon", "walmart"])
    fake_serpapi({
        "amazon": lambda url: amazon_search_payload(asin=None),
        "walmart": lambda url: RuntimeError("connection reset"),
    })

    response = client.get("/v1/search", params={"q": "mouse"})

    assert response.status_code == 200
    amazon, walmart = response.json()["results"]
    assert amazon["platform"] == "amazon"
    assert amazon["id"] is None
    assert walmart["platform"] == "walmart"
    assert "connection reset" in walmart["error"]
    assert walmart["raw_search"] is None


def test_request_id_is_echoed():
    response = client.get("/health", headers={"X-Request-ID": "req-abc"})
    assert response.headers["X-Request-ID"] == "req-abc"

    generated = client.get("/health").headers["X-Request-ID"]
    assert generated.startswith("req-")


def test_unhandled_error_is_500(monkeypatch):
    async def broken(q):
        raise RuntimeError("boom")

    monkeypatch.setattr("pricescan.api.routes_search.run_search", broken)

    response = TestClient(app, raise_server_exceptions=False).get("/search", params={"q": "mouse"})

    assert response.status_code == 500
    assert response.json() == {"error": "boom"}


def test_startup_logs_provider_configuration(caplog):
    with caplog.at_level(logging.INFO, logger="pricescan.main"):
        with TestClient(app) as started:
            assert started.get("/health").status_code == 200

    assert "providers=amazon" in caplog.text
    assert "serpapi key configured" in caplog.text
