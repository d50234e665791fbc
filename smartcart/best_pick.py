"""Choose one product per ingredient across stores and compare store totals."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .models import BestPick, PickStatus, RankedResult, RawCandidate


def best_in_source(results: RankedResult) -> RawCandidate | None:
    """
    Representative product for one store's ranked results.

    Prefers, in order: available and priced, available, priced, anything.

    Args:
        results: Ranked products from one source

    Returns:
        The chosen product, or None when the list is empty
    """
    for product in results:
        if product.available is True and product.has_price:
            return product
    for product in results:
        if product.available is True:
            return product
    for product in results:
        if product.has_price:
            return product
    return results[0] if results else None


def _ordered_sources(
    sources: Sequence[str], priority: Sequence[str] | None
) -> list[str]:
    if not priority:
        return list(sources)
    ordered = [s for s in priority if s in sources]
    ordered.extend(s for s in sources if s not in ordered)
    return ordered


def pick_best(
    per_source: Mapping[str, RankedResult],
    *,
    ingredient: str = "",
    priority: Sequence[str] | None = None,
) -> BestPick:
    """
    Pick the single best product for an ingredient across sources.

    The cheapest priced product wins. On an exact price tie the source listed
    first in ``priority`` (or first in ``per_source``) wins. Without any
    priced product, the first source with any product wins. With no products
    at all the result has status NOT_FOUND and no product.

    Args:
        per_source: Ranked results keyed by source name
        ingredient: Ingredient line, carried into the result
        priority: Source order for tie-breaks

    Returns:
        BestPick for the ingredient
    """
    best_source: str | None = None
    best_product: RawCandidate | None = None
    first_unpriced: tuple[str, RawCandidate] | None = None

    for source in _ordered_sources(list(per_source), priority):
        product = best_in_source(per_source[source])
        if product is None:
            continue
        if product.has_price:
            # Strictly lower only, so ties stay with the earlier source
            if best_product is None or product.price < best_product.price:
                best_source, best_product = source, product
        elif first_unpriced is None:
            first_unpriced = (source, product)

    if best_product is not None:
        return BestPick(ingredient, best_source, best_product, PickStatus.PRICED)
    if first_unpriced is not None:
        source, product = first_unpriced
        return BestPick(ingredient, source, product, PickStatus.UNPRICED)
    return BestPick.not_found(ingredient)


def store_total(results_by_ingredient: Mapping[str, RankedResult]) -> float:
    """Sum of the representative prices in one store; unpriced items count as nothing."""
    total = 0.0
    for results in results_by_ingredient.values():
        product = best_in_source(results)
        if product is not None and product.has_price:
            total += product.price or 0.0
    return round(total, 2)


def has_prices(results_by_ingredient: Mapping[str, RankedResult]) -> bool:
    """Whether any ingredient in a store has a priced representative."""
    for results in results_by_ingredient.values():
        product = best_in_source(results)
        if product is not None and product.has_price:
            return True
    return False


def found_count(results_by_ingredient: Mapping[str, RankedResult]) -> int:
    """Number of ingredients with at least one product in a store."""
    return sum(1 for results in results_by_ingredient.values() if results)


@dataclass(frozen=True)
class StoreComparison:
    """Which store is cheapest for a whole list, and by how much."""

    cheapest: str | None
    totals: dict[str, float]
    savings: float

    @property
    def has_winner(self) -> bool:
        return self.cheapest is not None


def compare_stores(
    per_store: Mapping[str, Mapping[str, RankedResult]],
    *,
    priority: Sequence[str] | None = None,
) -> StoreComparison:
    """
    Compare list totals across stores.

    Only stores with at least one priced item take part. Ties go to the
    store listed first. Savings is the gap between the cheapest and the most
    expensive participating store, or 0 when it is under a cent.

    Args:
        per_store: results_by_ingredient keyed by store name
        priority: Store order for tie-breaks

    Returns:
        StoreComparison
    """
    totals = {store: store_total(results) for store, results in per_store.items()}
    priced = [
        store
        for store in _ordered_sources(list(per_store), priority)
        if has_prices(per_store[store])
    ]
    if not priced:
        return StoreComparison(cheapest=None, totals=totals, savings=0.0)

    cheapest = priced[0]
    for store in priced[1:]:
        if totals[store] < totals[cheapest]:
            cheapest = store

    most_expensive = max(totals[store] for store in priced)
    savings = round(most_expensive - totals[cheapest], 2)
    if savings <= 0.01:
        savings = 0.0
    return StoreComparison(cheapest=cheapest, totals=totals, savings=savings)
