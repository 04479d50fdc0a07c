import asyncio
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from pricescan.core.config import settings


def amazon_search_payload(asin: Optional[str] = "B000X") -> Dict[str, Any]:
    results = []
    if asin:
        results = [
            {
                "position": 1,
                "asin": asin,
                "title": "Logitech M185 Wireless Mouse",
                "link_clean": f"https://www.amazon.com/dp/{asin}",
                "thumbnail": "https://m.media-amazon.com/images/I/search.jpg",
                "reviews": 1234,
            },
            {
                "position": 2,
                "asin": "B000Y",
                "title": "Some other mouse",
            },
        ]
    return {"search_metadata": {"status": "Success"}, "organic_results": results}


def amazon_product_payload(asin: str = "B000X") -> Dict[str, Any]:
    return {
        "search_metadata": {"status": "Success"},
        "product_results": {
            "asin": asin,
            "title": "Logitech M185 Wireless Mouse, 2.4GHz with USB Mini Receiver",
            "link": f"https://www.amazon.com/dp/{asin}?th=1",
            "thumbnails": ["https://m.media-amazon.com/images/I/detail.jpg"],
            "product_details": {"UPC": "097855066107", "Brand": "Logitech"},
        },
        "offers": [
            {
                "seller_name": "Amazon.com",
                "condition": "New",
                "link": f"https://www.amazon.com/dp/{asin}",
                "price": "$14.99",
                "extracted_price": 14.99,
            },
        ],
        "reviews_information": {
            "authors_reviews": [
                {
                    "author": "Jane",
                    "rating": 5,
                    "text": "Works great",
                    "date": "Reviewed in the United States on January 15, 2024",
                },
                {"rating": 3, "text": "OK"},
            ]
        },
    }


@pytest.fixture(autouse=True)
def serpapi_settings(monkeypatch):
    monkeypatch.setattr(settings, "SERPAPI_API_KEY", "test-key")
    monkeypatch.setattr(settings, "ENABLED_PROVIDERS", ["amazon"])
    monkeypatch.setattr(settings, "REQUEST_TIMEOUT_SECONDS", 12.0)
    monkeypatch.delenv("SERPAPI_API_KEY", raising=False)


class FakeSerpApi:
    """
    Stands in for fetch_json. Routes by the `engine` query parameter and
    records every URL requested.
    """

    def __init__(self, routes: Dict[str, Callable[[httpx.URL], Any]]):
        self.routes = routes
        self.calls: List[httpx.URL] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def engines(self) -> List[str]:
        return [u.params["engine"] for u in self.calls]

    async def __call__(self, url: str, timeout: Optional[float] = None):
        parsed = httpx.URL(url)
        self.calls.append(parsed)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # let sibling calls start before this one settles
            await asyncio.sleep(0)
            handler = self.routes[parsed.params["engine"]]
            result = handler(parsed)
            if asyncio.iscoroutine(result):
                result = await result
            if isinstance(result, BaseException):
                raise result
            return result
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_serpapi(monkeypatch):
    def install(routes: Dict[str, Callable[[httpx.URL], Any]]) -> FakeSerpApi:
        fake = FakeSerpApi(routes)
        monkeypatch.setattr("pricescan.core.pipeline.fetch_json", fake)
        return fake

    return install
