"""Look up a shopping list at several stores concurrently and compare them."""

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from functools import partial

from .api import KrogerAPI, WalmartAPI
from .best_pick import StoreComparison, compare_stores, found_count, pick_best, store_total
from .config import get_max_workers
from .errors import AuthenticationError
from .matcher import KROGER_POLICY, WALMART_POLICY, RankingPolicy, SearchFunc, find_best_matches
from .models import BestPick, RankedResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSource:
    """A store to search, with the ranking rules that suit its data."""

    name: str
    search: SearchFunc
    policy: RankingPolicy
    # Look up one ingredient at a time; Kroger throttles bursts per store
    serialize: bool = False


def kroger_source(api: KrogerAPI, location_id: str | None = None) -> ProductSource:
    """Kroger products priced at one store location."""
    return ProductSource(
        name="kroger",
        search=partial(api.search_products, location_id=location_id),
        policy=KROGER_POLICY,
        serialize=True,
    )


def walmart_source(api: WalmartAPI) -> ProductSource:
    return ProductSource(name="walmart", search=api.search_products, policy=WALMART_POLICY)


@dataclass
class ShoppingComparison:
    """Ranked results for every (ingredient, store) pair of a shopping list."""

    ingredients: list[str]
    sources: list[str]
    results: dict[str, dict[str, RankedResult]]
    failures: dict[str, str] = field(default_factory=dict)

    def is_loaded(self, ingredient: str, source: str) -> bool:
        return source in self.results.get(ingredient, {})

    def results_for(self, source: str) -> dict[str, RankedResult]:
        """results_by_ingredient for one store, skipping lookups that never ran."""
        return {
            ingredient: self.results[ingredient][source]
            for ingredient in self.ingredients
            if self.is_loaded(ingredient, source)
        }

    def best_picks(self) -> dict[str, BestPick]:
        return {
            ingredient: pick_best(
                self.results.get(ingredient, {}), ingredient=ingredient, priority=self.sources
            )
            for ingredient in self.ingredients
        }

    def totals(self) -> dict[str, float]:
        return {source: store_total(self.results_for(source)) for source in self.sources}

    def found_count(self, source: str) -> int:
        return found_count(self.results_for(source))

    def comparison(self) -> StoreComparison:
        per_store = {source: self.results_for(source) for source in self.sources}
        return compare_stores(per_store, priority=self.sources)


class PriceLookup:
    """Runs product lookups for a shopping list across several stores.

    Lookups for different stores run in parallel on a thread pool. A store
    marked ``serialize`` handles its ingredients one after another in a single
    task; other stores get one task per ingredient. cancel() may be called
    from another thread while run() is in progress: pending lookups for the
    cancelled ingredient are skipped and it is left out of the result.
    Cancellations and store failures are cleared when run() returns, so the
    same instance can look up the list again.
    """

    def __init__(self, sources: Iterable[ProductSource], max_workers: int | None = None):
        self.sources = list(sources)
        self.max_workers = max_workers or get_max_workers()
        self._lock = threading.Lock()
        self._cancelled: set[str] = set()
        self._failures: dict[str, str] = {}

    def cancel(self, ingredient: str) -> None:
        """Abandon lookups for an ingredient removed from the list."""
        with self._lock:
            self._cancelled.add(ingredient)

    def is_cancelled(self, ingredient: str) -> bool:
        with self._lock:
            return ingredient in self._cancelled

    def _source_failed(self, source: ProductSource) -> bool:
        with self._lock:
            return source.name in self._failures

    def _lookup(
        self,
        source: ProductSource,
        ingredients: list[str],
        results: dict[str, dict[str, RankedResult]],
    ) -> None:
        for ingredient in ingredients:
            if self.is_cancelled(ingredient) or self._source_failed(source):
                continue

            try:
                matches = find_best_matches(ingredient, source.search, policy=source.policy)
            except AuthenticationError as e:
                with self._lock:
                    # Report an auth outage once per store, not once per ingredient
                    if source.name not in self._failures:
                        logger.error("%s lookups stopped: %s", source.name, e)
                        self._failures[source.name] = str(e)
                return

            with self._lock:
                results[ingredient][source.name] = matches

    def run(self, ingredients: Iterable[str]) -> ShoppingComparison:
        """
        Look up every ingredient at every store.

        Args:
            ingredients: Ingredient lines; duplicates are looked up once

        Returns:
            ShoppingComparison for the ingredients that were not cancelled
        """
        ingredient_list = list(dict.fromkeys(ingredients))
        results: dict[str, dict[str, RankedResult]] = {i: {} for i in ingredient_list}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = []
            for source in self.sources:
                if source.serialize:
                    futures.append(executor.submit(self._lookup, source, ingredient_list, results))
                else:
                    futures.extend(
                        executor.submit(self._lookup, source, [ingredient], results)
                        for ingredient in ingredient_list
                    )
            for future in as_completed(futures):
                future.result()

        with self._lock:
            kept = [i for i in ingredient_list if i not in self._cancelled]
            failures = dict(self._failures)
            # Cancellations and failures belong to this run only
            self._cancelled.clear()
            self._failures.clear()
        return ShoppingComparison(
            ingredients=kept,
            sources=[s.name for s in self.sources],
            results={i: results[i] for i in kept},
            failures=failures,
        )
