"""Tests for the HTTP API (/scrape, /harvest).

Network fetches and the Playwright browser are replaced with mocks so the
tests run without internet access.
"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient
from playwright.async_api import Error as PlaywrightError

from harvester.main import app
from harvester.routers import harvest as harvest_router
from harvester.services.fetcher import ContentTooLargeError

client = TestClient(app)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Clear the slowapi in-memory counters before every test."""
    app.state.limiter._storage.reset()
    harvest_router.limiter._storage.reset()
    yield


# ---------------------------------------------------------------------------
# Shared HTML fixtures
# ---------------------------------------------------------------------------

_STATIC_HTML = (
    "<!DOCTYPE html><html><head><title>Static Site Page</title>"
    '<meta name="description" content="A plain static page."></head>'
    "<body><main><h1>Hello World</h1>"
    "<p>" + "Lorem ipsum dolor sit amet. " * 250 + "</p>"
    "</main></body></html>"
)

_NEXT_HTML = (
    "<html><head><title>Shop</title></head><body>"
    '<script id="__NEXT_DATA__" type="application/json">'
    + json.dumps(
        {
            "buildId": "b1",
            "props": {
                "pageProps": {
                    "catalogData": {
                        "homeProducts": {"items": [{"name": "Kettle", "sku": "K1", "url_key": "kettle"}]}
                    }
                }
            },
        }
    )
    + "</script></body></html>"
)


def _status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://example.com/")
    return httpx.HTTPStatusError("error", request=request, response=httpx.Response(code, request=request))


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Hello from Site Harvester"}


# ---------------------------------------------------------------------------
# /scrape
# ---------------------------------------------------------------------------

class TestScrape:
    def test_static_page(self):
        with patch(
            "harvester.services.strategy.fetch_url", new=AsyncMock(return_value=_STATIC_HTML)
        ) as mock_fetch:
            response = client.post("/scrape", json={"url": "https://example.com/"})

        assert response.status_code == 200
        data = response.json()
        assert data["url"] == "https://example.com/"
        assert data["detection"]["strategy"] == "static"
        assert data["detection"]["confidence"] == "medium"
        assert data["page"]["title"] == "Hello World"
        assert data["page"]["slug"] == "home"
        assert data["page"]["meta_description"] == "A plain static page."
        assert data["page"]["structured_data"] is None
        mock_fetch.assert_awaited_once_with("https://example.com/")

    def test_nextjs_page_includes_structured_data(self):
        with patch("harvester.services.strategy.fetch_url", new=AsyncMock(return_value=_NEXT_HTML)):
            response = client.post("/scrape", json={"url": "https://shop.example.com/"})

        assert response.status_code == 200
        data = response.json()
        assert data["detection"]["strategy"] == "nextjs"
        assert data["detection"]["has_products"] is True
        assert data["page"]["structured_data"]["products"][0]["name"] == "Kettle"

    def test_browser_mode_passes_fetch_options(self):
        with patch(
            "harvester.services.strategy.fetch_with_options", new=AsyncMock(return_value=_STATIC_HTML)
        ) as mock_browser, patch("harvester.services.strategy.fetch_url", new=AsyncMock()) as mock_http:
            response = client.post(
                "/scrape",
                json={
                    "url": "https://example.com/",
                    "render_mode": "browser",
                    "fetch": {"wait_for_selector": "#app", "wait_ms": 0, "scroll_to_bottom": False},
                },
            )

        assert response.status_code == 200
        mock_http.assert_not_awaited()
        url, fetch_options = mock_browser.await_args.args
        assert url == "https://example.com/"
        assert fetch_options.wait_for_selector == "#app"
        assert fetch_options.scroll_to_bottom is False

    def test_body_text_limit(self):
        with patch("harvester.services.strategy.fetch_url", new=AsyncMock(return_value=_STATIC_HTML)):
            response = client.post("/scrape", json={"url": "https://example.com/", "body_text_limit": 60})

        assert response.status_code == 200
        assert len(response.json()["page"]["body_text"]) == 60

    def test_invalid_request(self):
        assert client.post("/scrape", json={"url": "not-a-url"}).status_code == 422
        assert client.post("/scrape", json={"url": "https://a.com", "render_mode": "spa"}).status_code == 422
        assert client.post("/scrape", json={"url": "https://a.com", "body_text_limit": 5}).status_code == 422


class TestScrapeErrors:
    @pytest.mark.parametrize(
        "error, status",
        [
            (ValueError("Resolves to a private address"), 400),
            (httpx.TimeoutException("timed out"), 504),
            (_status_error(503), 502),
            (httpx.ConnectError("refused"), 502),
            (RuntimeError("Browser crashed"), 502),
            (PlaywrightError("net::ERR_NAME_NOT_RESOLVED"), 502),
            (ContentTooLargeError("Page body exceeds 10 MB."), 413),
        ],
    )
    def test_fetch_errors_mapped(self, error, status):
        with patch("harvester.services.strategy.fetch_url", new=AsyncMock(side_effect=error)):
            response = client.post("/scrape", json={"url": "https://example.com/"})
        assert response.status_code == status

    def test_browser_failure_is_bad_gateway(self):
        with patch(
            "harvester.services.strategy.fetch_with_options",
            new=AsyncMock(side_effect=PlaywrightError("Target page, context or browser has been closed")),
        ):
            response = client.post("/scrape", json={"url": "https://example.com/", "render_mode": "browser"})
        assert response.status_code == 502
        assert "closed" in response.json()["detail"]

    def test_upstream_status_in_detail(self):
        with patch("harvester.services.strategy.fetch_url", new=AsyncMock(side_effect=_status_error(404))):
            response = client.post("/scrape", json={"url": "https://example.com/"})
        assert response.json()["detail"] == "Target URL returned HTTP 404."


# ---------------------------------------------------------------------------
# /harvest
# ---------------------------------------------------------------------------

class TestHarvestEndpoint:
    def test_html_file_rejected(self):
        body = {"name": "x", "urls": [{"url": "https://example.com/", "html_file": "/etc/passwd"}]}
        response = client.post("/harvest", json=body)
        assert response.status_code == 400

    def test_harvest_writes_manifest(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HARVEST_OUTPUT_DIR", str(tmp_path))
        body = {
            "name": "Example",
            "urls": [
                {"url": "https://example.com/", "type": "homepage"},
                {"url": "https://example.com/broken"},
            ],
        }

        async def fake_fetch(url):
            if url.endswith("broken"):
                raise httpx.ConnectError("refused")
            return _STATIC_HTML

        with patch("harvester.services.strategy.fetch_url", new=AsyncMock(side_effect=fake_fetch)):
            response = client.post("/harvest", json=body)

        assert response.status_code == 200
        data = response.json()
        assert [page["slug"] for page in data["pages"]] == ["home"]
        assert data["branding"] is not None
        assert (tmp_path / "harvest" / "manifest.json").is_file()
