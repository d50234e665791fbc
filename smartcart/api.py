"""Product-search clients for Kroger and for Walmart via SerpAPI."""

import logging
import re
from typing import Any

import httpx

from .config import (
    KROGER_API_BASE_URL,
    KROGER_SCOPE,
    KROGER_TOKEN_URL,
    REQUEST_TIMEOUT,
    SERPAPI_URL,
    TOKEN_TTL_SECONDS,
    get_kroger_credentials,
    get_serpapi_key,
)
from .errors import AuthenticationError, ProductAPIError
from .models import RawCandidate, StoreLocation
from .token_cache import TokenCache

logger = logging.getLogger(__name__)

__all__ = ["AuthenticationError", "KrogerAPI", "ProductAPIError", "WalmartAPI"]

_ZIP_RE = re.compile(r"^\d{5}$")


def _parse_price(value: Any) -> float | None:
    """Parse a price that may be a number or a string like "$3.47"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        cleaned = value.replace("$", "").replace(",", "").strip()
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _dicts(value: Any) -> list[dict[str, Any]]:
    """Dict entries of a JSON list; anything else in the payload is skipped."""
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


class KrogerAPI:
    """Client for the Kroger product and location APIs."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_cache: TokenCache | None = None,
    ):
        if client_id is None or client_secret is None:
            env_id, env_secret = get_kroger_credentials()
            client_id = client_id or env_id
            client_secret = client_secret or env_secret

        self._client_id = client_id
        self._client_secret = client_secret
        self.client = httpx.Client(
            headers={"Accept": "application/json"},
            timeout=REQUEST_TIMEOUT,
        )
        self.token_cache = token_cache or TokenCache(self._fetch_token, TOKEN_TTL_SECONDS)

    def _fetch_token(self) -> str:
        """Get an OAuth2 client-credentials token."""
        if not self._client_id or not self._client_secret:
            raise AuthenticationError("Kroger credentials not configured")

        try:
            response = self.client.post(
                KROGER_TOKEN_URL,
                auth=(self._client_id, self._client_secret),
                data={"grant_type": "client_credentials", "scope": KROGER_SCOPE},
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Kroger auth failed: {e}") from e

        if response.status_code != 200:
            raise AuthenticationError(f"Kroger auth failed: {response.status_code}")

        try:
            token = response.json().get("access_token")
        except ValueError as e:
            raise AuthenticationError("Kroger auth failed: malformed token response") from e
        if not token:
            raise AuthenticationError("Kroger auth failed: no access token returned")
        return token

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        token = self.token_cache.get()
        url = f"{KROGER_API_BASE_URL}/{path}"

        try:
            response = self.client.get(
                url, params=params, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as e:
            raise ProductAPIError(f"Kroger request failed: {e}") from e

        if response.status_code == 401:
            # Token revoked early; the next call fetches a fresh one
            self.token_cache.invalidate()
        if response.is_error:
            raise ProductAPIError(f"Kroger request failed: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProductAPIError("Kroger returned a malformed response") from e
        if not isinstance(data, dict):
            raise ProductAPIError("Kroger returned a malformed response")
        return data

    def search_products(
        self, query: str, location_id: str | None = None, limit: int = 10
    ) -> list[RawCandidate]:
        """
        Search Kroger products.

        Args:
            query: Search term
            location_id: Store to price against; prices are missing without one
            limit: Maximum number of results

        Returns:
            List of raw candidates in provider order

        Raises:
            ProductAPIError: On transport errors or non-success responses
            AuthenticationError: If a token cannot be obtained
        """
        params: dict[str, Any] = {"filter.term": query, "filter.limit": limit}
        if location_id:
            params["filter.locationId"] = location_id

        data = self._get("products", params)
        items = _dicts(data.get("data"))
        logger.debug("Kroger returned %d products for '%s'", len(items), query)
        return [self._parse_product(p) for p in items]

    @staticmethod
    def _parse_product(product: dict[str, Any]) -> RawCandidate:
        """Parse a Kroger product payload into a RawCandidate."""
        items = _dicts(product.get("items"))
        item = items[0] if items else {}
        price_info = _as_dict(item.get("price"))

        # Kroger reports promo=0 when there is no promotion
        promo = _parse_price(price_info.get("promo"))
        regular = _parse_price(price_info.get("regular"))
        price = promo if promo else regular

        fulfillment = _as_dict(item.get("fulfillment"))
        inventory = _as_dict(item.get("inventory"))
        if inventory.get("stockLevel") == "TEMPORARILY_OUT_OF_STOCK":
            available: bool | None = False
        elif "inStore" in fulfillment:
            available = bool(fulfillment["inStore"])
        elif price is not None:
            available = True
        else:
            available = None

        categories = product.get("categories")
        if not isinstance(categories, list):
            categories = []

        return RawCandidate(
            product_id=str(product.get("productId", "")),
            name=_text(product.get("description")),
            brand=_text(product.get("brand")),
            size=_text(item.get("size")),
            price=price,
            available=available,
            category=tuple(c for c in categories if isinstance(c, str)),
            image=KrogerAPI._pick_image(_dicts(product.get("images"))),
        )

    @staticmethod
    def _pick_image(images: list[dict[str, Any]]) -> str | None:
        """Choose the featured front image in a medium size when present."""
        if not images:
            return None

        featured = [img for img in images if img.get("featured")]
        front = [img for img in images if img.get("perspective") == "front"]
        image = (featured or front or images)[0]

        sizes = _dicts(image.get("sizes"))
        for wanted in ("medium", "large", "small"):
            for size in sizes:
                if size.get("size") == wanted and _text(size.get("url")):
                    return size["url"]
        for size in sizes:
            if _text(size.get("url")):
                return size["url"]
        return None

    def find_locations(
        self, zip_code: str, limit: int = 5, radius_miles: int = 10
    ) -> list[StoreLocation]:
        """
        Find Kroger-family stores near a ZIP code.

        Raises:
            ValueError: If zip_code is not a 5-digit ZIP
            ProductAPIError: On request failure
        """
        if not _ZIP_RE.match(zip_code or ""):
            raise ValueError("Valid 5-digit ZIP required")

        data = self._get(
            "locations",
            {
                "filter.zipCode.near": zip_code,
                "filter.limit": limit,
                "filter.radiusInMiles": radius_miles,
            },
        )

        locations = []
        for loc in _dicts(data.get("data")):
            address = _as_dict(loc.get("address"))
            if address:
                address_text = (
                    f"{address.get('addressLine1', '')}, {address.get('city', '')}, "
                    f"{address.get('state', '')} {address.get('zipCode', '')}"
                )
            else:
                address_text = ""
            locations.append(
                StoreLocation(
                    location_id=str(loc.get("locationId", "")),
                    name=_text(loc.get("name")) or _text(loc.get("chain")),
                    address=address_text,
                    chain=_text(loc.get("chain")),
                )
            )
        return locations

    def close(self) -> None:
        self.client.close()


class WalmartAPI:
    """Client for Walmart product search through the SerpAPI aggregator."""

    def __init__(self, api_key: str | None = None):
        self._api_key = api_key or get_serpapi_key()
        self.client = httpx.Client(
            headers={"Accept": "application/json"},
            timeout=REQUEST_TIMEOUT,
        )

    def search_products(self, query: str) -> list[RawCandidate]:
        """
        Search Walmart products.

        Args:
            query: Search term

        Returns:
            List of raw candidates in provider order

        Raises:
            AuthenticationError: If no SerpAPI key is configured or it is rejected
            ProductAPIError: On transport errors or non-success responses
        """
        if not self._api_key:
            raise AuthenticationError("SERPAPI_API_KEY not configured")

        params = {"engine": "walmart", "query": query, "api_key": self._api_key}
        try:
            response = self.client.get(SERPAPI_URL, params=params)
        except httpx.HTTPError as e:
            raise ProductAPIError(f"SerpAPI request failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(f"SerpAPI rejected the API key: {response.status_code}")
        if response.is_error:
            raise ProductAPIError(f"SerpAPI request failed: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProductAPIError("SerpAPI returned a malformed response") from e
        if not isinstance(data, dict):
            raise ProductAPIError("SerpAPI returned a malformed response")

        results = _dicts(data.get("organic_results"))
        logger.debug("Walmart returned %d products for '%s'", len(results), query)
        return [self._parse_product(item) for item in results]

    @staticmethod
    def _parse_product(item: dict[str, Any]) -> RawCandidate:
        """Parse a SerpAPI Walmart organic result into a RawCandidate."""
        offer = _as_dict(item.get("primary_offer"))
        price = _parse_price(offer.get("offer_price"))
        if price is None:
            price = _parse_price(item.get("price"))

        title = _text(item.get("title"))
        product_id = (
            item.get("us_item_id")
            or item.get("product_id")
            or item.get("product_page_url")
            or title
        )

        if "out_of_stock" in item:
            available = not item["out_of_stock"]
        else:
            available = True

        return RawCandidate(
            product_id=str(product_id),
            name=title,
            brand=_text(item.get("brand")),
            size="",
            price=price,
            available=available,
            category=(),
            image=_text(item.get("thumbnail")) or None,
        )

    def close(self) -> None:
        self.client.close()
