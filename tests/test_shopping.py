"""Tests for concurrent shopping-list lookups."""

from unittest.mock import MagicMock

import pytest

from smartcart.config import KROGER_API_BASE_URL
from smartcart.errors import AuthenticationError, ProductAPIError
from smartcart.matcher import KROGER_POLICY, WALMART_POLICY
from smartcart.models import PickStatus, RawCandidate
from smartcart.shopping import PriceLookup, ProductSource, kroger_source, walmart_source


def product(name: str, price: float | None, source: str) -> RawCandidate:
    return RawCandidate(
        product_id=f"{source}-{name.lower().replace(' ', '-')}",
        name=name,
        price=price,
        available=True,
    )


CATALOG = {
    "kroger": {
        "eggs": [product("Large Eggs", 3.49, "kroger")],
        "milk": [product("Whole Milk", 2.79, "kroger")],
    },
    "walmart": {
        "eggs": [product("Great Value Large Eggs", 2.99, "walmart")],
        "milk": [product("Great Value Whole Milk", 3.12, "walmart")],
        "paneer": [product("Nanak Paneer", None, "walmart")],
    },
}


class RecordingSearch:
    def __init__(self, store: str, error: Exception | None = None, on_search=None):
        self.store = store
        self.error = error
        self.on_search = on_search
        self.queries: list[str] = []

    def __call__(self, query: str) -> list[RawCandidate]:
        self.queries.append(query)
        if self.on_search:
            self.on_search(query)
        if self.error is not None:
            raise self.error
        return CATALOG[self.store].get(query, [])


@pytest.fixture
def kroger_search():
    return RecordingSearch("kroger")


@pytest.fixture
def walmart_search():
    return RecordingSearch("walmart")


def make_sources(kroger_search, walmart_search):
    return [
        ProductSource("kroger", kroger_search, KROGER_POLICY, serialize=True),
        ProductSource("walmart", walmart_search, WALMART_POLICY),
    ]


class TestSourceFactories:
    """Tests for kroger_source and walmart_source."""

    def test_kroger_source_binds_location(self):
        api = MagicMock()
        source = kroger_source(api, "01400943")

        source.search("milk")

        api.search_products.assert_called_once_with("milk", location_id="01400943")
        assert source.policy is KROGER_POLICY
        assert source.serialize

    def test_walmart_source(self):
        api = MagicMock()
        source = walmart_source(api)

        assert source.name == "walmart"
        assert source.policy is WALMART_POLICY
        assert not source.serialize


class TestPriceLookup:
    """Tests for PriceLookup.run."""

    def test_looks_up_every_pair(self, kroger_search, walmart_search):
        lookup = PriceLookup(make_sources(kroger_search, walmart_search), max_workers=4)

        comparison = lookup.run(["eggs", "milk", "paneer"])

        assert comparison.ingredients == ["eggs", "milk", "paneer"]
        assert comparison.sources == ["kroger", "walmart"]
        for ingredient in comparison.ingredients:
            assert comparison.is_loaded(ingredient, "kroger")
            assert comparison.is_loaded(ingredient, "walmart")
        assert kroger_search.queries == ["eggs", "milk", "paneer"]
        assert sorted(walmart_search.queries) == ["eggs", "milk", "paneer"]

    def test_best_picks_and_totals(self, kroger_search, walmart_search):
        lookup = PriceLookup(make_sources(kroger_search, walmart_search), max_workers=4)

        comparison = lookup.run(["eggs", "milk", "paneer"])
        picks = comparison.best_picks()

        assert picks["eggs"].source == "walmart"
        assert picks["milk"].source == "kroger"
        assert picks["paneer"].status is PickStatus.UNPRICED
        assert comparison.totals() == {"kroger": 6.28, "walmart": 6.11}
        assert comparison.found_count("kroger") == 2
        assert comparison.found_count("walmart") == 3

        result = comparison.comparison()
        assert result.cheapest == "walmart"
        assert result.savings == 0.17

    def test_duplicates_looked_up_once(self, kroger_search, walmart_search):
        lookup = PriceLookup(make_sources(kroger_search, walmart_search), max_workers=2)

        comparison = lookup.run(["eggs", "eggs", "milk"])

        assert comparison.ingredients == ["eggs", "milk"]
        assert kroger_search.queries.count("eggs") == 1
        assert walmart_search.queries.count("eggs") == 1

    def test_auth_failure_recorded_once(self, kroger_search):
        """A rejected store is reported once and the other store carries on."""
        walmart_search = RecordingSearch("walmart", error=AuthenticationError("bad key"))
        lookup = PriceLookup(make_sources(kroger_search, walmart_search), max_workers=1)

        comparison = lookup.run(["eggs", "milk", "paneer"])

        assert comparison.failures == {"walmart": "bad key"}
        assert walmart_search.queries == ["eggs"]
        assert not comparison.is_loaded("eggs", "walmart")
        assert comparison.results_for("kroger")["eggs"][0].name == "Large Eggs"
        assert comparison.totals()["walmart"] == 0.0
        assert comparison.comparison().cheapest == "kroger"

    def test_transport_error_is_empty_result(self, kroger_search):
        """A flaky store counts as no match, not as a failed store."""
        walmart_search = RecordingSearch("walmart", error=ProductAPIError("timeout"))
        lookup = PriceLookup(make_sources(kroger_search, walmart_search), max_workers=2)

        comparison = lookup.run(["eggs"])

        assert comparison.failures == {}
        assert comparison.is_loaded("eggs", "walmart")
        assert comparison.results["eggs"]["walmart"] == []
        assert comparison.best_picks()["eggs"].source == "kroger"

    def test_cancel_before_run(self, kroger_search, walmart_search):
        lookup = PriceLookup(make_sources(kroger_search, walmart_search), max_workers=2)
        lookup.cancel("milk")

        comparison = lookup.run(["eggs", "milk"])

        assert comparison.ingredients == ["eggs"]
        assert "milk" not in kroger_search.queries
        assert "milk" not in walmart_search.queries

    def test_cancel_during_run(self, walmart_search):
        """Removing an ingredient mid-run skips its pending lookups."""
        lookup = PriceLookup([], max_workers=1)

        def cancel_milk(query):
            if query == "eggs":
                lookup.cancel("milk")

        kroger_search = RecordingSearch("kroger", on_search=cancel_milk)
        lookup.sources = make_sources(kroger_search, walmart_search)

        comparison = lookup.run(["eggs", "milk"])

        assert comparison.ingredients == ["eggs"]
        assert "milk" not in comparison.results
        assert kroger_search.queries == ["eggs"]
        assert "milk" not in walmart_search.queries
        assert not lookup.is_cancelled("milk")

    def test_instance_can_be_reused_after_cancel(self, kroger_search, walmart_search):
        """An ingredient cancelled in one run is looked up again in the next."""
        lookup = PriceLookup(make_sources(kroger_search, walmart_search), max_workers=2)
        lookup.cancel("milk")
        assert lookup.run(["eggs", "milk"]).ingredients == ["eggs"]

        comparison = lookup.run(["eggs", "milk"])

        assert comparison.ingredients == ["eggs", "milk"]
        assert comparison.is_loaded("milk", "kroger")
        assert not lookup.is_cancelled("milk")

    def test_failures_cleared_between_runs(self, kroger_search):
        walmart_search = RecordingSearch("walmart", error=AuthenticationError("bad key"))
        lookup = PriceLookup(make_sources(kroger_search, walmart_search), max_workers=1)
        assert lookup.run(["eggs"]).failures == {"walmart": "bad key"}

        walmart_search.error = None
        comparison = lookup.run(["eggs"])

        assert comparison.failures == {}
        assert comparison.best_picks()["eggs"].source == "walmart"

    def test_malformed_store_payload_does_not_abort_list(self, mock_httpx, kroger_api, mock_token):
        """A wrongly shaped product record never loses the rest of the list."""
        mock_httpx.get(f"{KROGER_API_BASE_URL}/products").respond(
            json={"data": [{"productId": "1", "description": "Eggs", "items": [{"price": "3.00"}]}]}
        )
        lookup = PriceLookup([kroger_source(kroger_api)], max_workers=2)

        comparison = lookup.run(["eggs", "milk"])

        assert comparison.ingredients == ["eggs", "milk"]
        assert [p.name for p in comparison.results["eggs"]["kroger"]] == ["Eggs"]
        assert comparison.results["milk"]["kroger"] == []
        assert comparison.best_picks()["eggs"].status is PickStatus.UNPRICED

    def test_default_workers_from_config(self, monkeypatch):
        monkeypatch.setenv("SMARTCART_MAX_WORKERS", "6")
        assert PriceLookup([]).max_workers == 6
