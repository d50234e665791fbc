"""Shared fixtures for smartcart tests."""

import pytest
import respx

from smartcart.api import KrogerAPI, WalmartAPI
from smartcart.config import KROGER_TOKEN_URL
from smartcart.models import RawCandidate


@pytest.fixture
def mock_httpx():
    """Activate respx mock for HTTP requests."""
    with respx.mock(assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def kroger_api():
    """Create a Kroger client with test credentials."""
    api = KrogerAPI(client_id="test-client", client_secret="test-secret")
    yield api
    api.close()


@pytest.fixture
def walmart_api():
    """Create a Walmart client with a test SerpAPI key."""
    api = WalmartAPI(api_key="test-serpapi-key")
    yield api
    api.close()


@pytest.fixture
def mock_token(mock_httpx):
    """Successful Kroger OAuth token endpoint."""
    return mock_httpx.post(KROGER_TOKEN_URL).respond(
        json={"access_token": "test-kroger-token", "expires_in": 1800}
    )


@pytest.fixture
def kroger_product():
    """Single product as returned by the Kroger products API."""
    return {
        "productId": "0001111041700",
        "description": "Kroger® Grade A Large White Eggs 12 Count",
        "brand": "Kroger",
        "categories": ["Dairy"],
        "images": [
            {
                "perspective": "back",
                "sizes": [{"size": "medium", "url": "https://example.com/eggs-back.jpg"}],
            },
            {
                "perspective": "front",
                "featured": True,
                "sizes": [
                    {"size": "large", "url": "https://example.com/eggs-large.jpg"},
                    {"size": "medium", "url": "https://example.com/eggs-medium.jpg"},
                ],
            },
        ],
        "items": [
            {
                "itemId": "0001111041700",
                "size": "12 ct",
                "price": {"regular": 3.49, "promo": 0},
                "fulfillment": {"inStore": True, "delivery": True},
            }
        ],
    }


@pytest.fixture
def walmart_result():
    """Single organic result from SerpAPI's Walmart engine."""
    return {
        "us_item_id": "10450115",
        "product_id": "3JIVQ2Y3NBSB",
        "title": "Great Value Large White Eggs, 12 Count",
        "thumbnail": "https://example.com/gv-eggs.jpg",
        "rating": 4.6,
        "primary_offer": {"offer_price": 2.99},
    }


@pytest.fixture
def make_candidate():
    """Factory for RawCandidate records with sensible defaults."""

    def _make(
        name: str,
        price: float | None = None,
        product_id: str | None = None,
        available: bool | None = True,
        category: tuple[str, ...] = (),
    ) -> RawCandidate:
        return RawCandidate(
            product_id=product_id or name.lower().replace(" ", "-"),
            name=name,
            price=price,
            available=available,
            category=category,
        )

    return _make
