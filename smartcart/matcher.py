"""Ingredient to product matching logic."""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .errors import AuthenticationError, ProductAPIError
from .models import RankedResult, RawCandidate, ScoredCandidate
from .normalizer import fallback_queries, search_term

logger = logging.getLogger(__name__)

# A product-search collaborator: query in, raw candidates out
SearchFunc = Callable[[str], list[RawCandidate]]

# Terms that mark products outside the grocery aisle
OFF_DOMAIN_TERMS: tuple[str, ...] = (
    "baby food",
    "baby puree",
    "teether",
    "formula",
    "cleaning",
    "detergent",
    "shampoo",
    "soap",
    "lotion",
    "diaper",
    "pet food",
    "dog food",
    "cat food",
    "supplement",
    "vitamin",
)

# Processed or specialty forms that should not stand in for a fresh ingredient
SPECIALTY_TERMS: tuple[str, ...] = (
    "powder",
    "dehydrated",
    "freeze-dried",
    "freeze dried",
    "supplement",
    "extract",
    "capsule",
)

FRESHNESS_TERMS: tuple[str, ...] = ("fresh", "produce", "each", "bunch", "bulb")

_FRESHNESS_RE = re.compile(r"\b(?:" + "|".join(FRESHNESS_TERMS) + r")\b")


@dataclass(frozen=True)
class RankingPolicy:
    """Per-source scoring weights and ranking rules.

    The default weights were tuned by hand against live Kroger and Walmart
    results, not fitted to a labeled corpus.
    """

    name: str
    exact_match_bonus: int = 15
    name_keyword_bonus: int = 3
    category_keyword_bonus: int = 1
    full_coverage_bonus: int = 5
    min_keyword_length: int = 2
    off_domain_penalty: int = 10
    off_domain_disqualifies: bool = True
    baby_penalty: int = 5
    priced_bonus: int = 0
    unavailable_penalty: int = 3
    max_plausible_price: float | None = 60.0
    implausible_price_penalty: int = 5
    specialty_guard: bool = True
    specialty_penalty: int = 6
    freshness_bonus: int = 2
    price_first: bool = True
    min_score: int = 5
    fallback_min_score: int = 3
    use_fallbacks: bool = True
    max_results: int = 3


KROGER_POLICY = RankingPolicy(name="kroger")

# Walmart results carry no categories and unreliable prices, so rank on relevance
WALMART_POLICY = RankingPolicy(
    name="walmart",
    exact_match_bonus=10,
    min_keyword_length=3,
    priced_bonus=8,
    price_first=False,
    min_score=11,
    fallback_min_score=9,
)


def _requests_processed_form(query: str) -> bool:
    return any(term in query for term in SPECIALTY_TERMS)


def score_candidate(
    candidate: RawCandidate,
    query: str,
    policy: RankingPolicy = KROGER_POLICY,
) -> ScoredCandidate:
    """
    Score a product's relevance to a normalized query.

    Pure function of its inputs. Scores are only meaningful relative to other
    candidates scored against the same query.

    Args:
        candidate: Product record from a search provider
        query: Normalized search query
        policy: Weights to apply

    Returns:
        ScoredCandidate with an integer score (higher is better)
    """
    query_lower = query.lower().strip()
    name = candidate.name.lower()
    categories = " ".join(candidate.category).lower()
    keywords = [w for w in query_lower.split() if len(w) >= policy.min_keyword_length]

    score = 0

    if query_lower and query_lower in name:
        score += policy.exact_match_bonus

    matched = 0
    for keyword in keywords:
        if keyword in name:
            score += policy.name_keyword_bonus
            matched += 1
        elif keyword in categories:
            score += policy.category_keyword_bonus
            matched += 1
    if keywords and matched == len(keywords):
        score += policy.full_coverage_bonus

    # Search APIs return baby food, pet food and cleaning products for generic terms
    off_domain_hits = 0
    for term in OFF_DOMAIN_TERMS:
        if term in query_lower:
            continue
        if term in name or term in categories:
            score -= policy.off_domain_penalty
            off_domain_hits += 1

    if "baby" in name and "baby" not in query_lower:
        score -= policy.baby_penalty

    if candidate.has_price:
        score += policy.priced_bonus
        if (
            policy.max_plausible_price is not None
            and candidate.price is not None
            and candidate.price > policy.max_plausible_price
        ):
            score -= policy.implausible_price_penalty
    if candidate.available is False:
        score -= policy.unavailable_penalty

    if policy.specialty_guard and not _requests_processed_form(query_lower):
        for term in SPECIALTY_TERMS:
            if term in name:
                score -= policy.specialty_penalty
        if _FRESHNESS_RE.search(name):
            score += policy.freshness_bonus

    if off_domain_hits and policy.off_domain_disqualifies:
        # Name bonuses never outweigh a deny-list hit
        score = min(score, -policy.off_domain_penalty * off_domain_hits)

    return ScoredCandidate(candidate=candidate, score=score)


def _score_round(
    candidates: Iterable[RawCandidate],
    query: str,
    policy: RankingPolicy,
    threshold: int,
) -> list[ScoredCandidate]:
    scored = (score_candidate(c, query, policy) for c in candidates)
    return [s for s in scored if s.score >= threshold]


def _price_first_key(scored: ScoredCandidate) -> tuple[int, float, int]:
    # Priced items first by cheapest, then unpriced by relevance
    if scored.price is not None:
        return (0, scored.price, -scored.score)
    return (1, 0.0, -scored.score)


def rank_candidates(scored: list[ScoredCandidate], policy: RankingPolicy) -> RankedResult:
    """Order scored candidates by the policy, drop duplicates and strip scores."""
    if policy.price_first:
        ordered = sorted(scored, key=_price_first_key)
    else:
        ordered = sorted(scored, key=lambda s: -s.score)

    results: RankedResult = []
    seen_ids: set[str] = set()
    for item in ordered:
        if item.product_id in seen_ids:
            continue
        seen_ids.add(item.product_id)
        results.append(item.candidate)
        if len(results) >= policy.max_results:
            break
    return results


def _safe_search(search: SearchFunc, query: str, source: str) -> list[RawCandidate]:
    """Run one search round; transport failures count as an empty round."""
    try:
        return search(query)
    except AuthenticationError:
        raise
    except ProductAPIError as e:
        logger.warning("%s search for '%s' failed: %s", source or "Product", query, e)
        return []


def select_candidates(
    raw_candidates: list[RawCandidate],
    ingredient_text: str,
    *,
    policy: RankingPolicy = KROGER_POLICY,
    search: SearchFunc | None = None,
    min_score: int | None = None,
) -> RankedResult:
    """
    Pick the best few products for an ingredient from raw search results.

    When nothing in raw_candidates clears the threshold and a search function
    is given, broader fallback queries are searched in order with the relaxed
    fallback threshold, stopping at the first round that yields a match.

    Args:
        raw_candidates: Results of searching the normalized ingredient
        ingredient_text: Ingredient line as written in the recipe
        policy: Source-specific weights and ordering
        search: Collaborator used to re-search fallback queries
        min_score: Override for policy.min_score

    Returns:
        At most policy.max_results products, best first

    Raises:
        AuthenticationError: If the search provider rejects our credentials
    """
    query = search_term(ingredient_text)
    threshold = policy.min_score if min_score is None else min_score

    kept = _score_round(raw_candidates, query, policy, threshold)

    if not kept and search is not None and policy.use_fallbacks:
        fallback_threshold = min(policy.fallback_min_score, threshold)
        for term in fallback_queries(query):
            logger.info("%s fallback search: '%s'", policy.name, term)
            round_candidates = _safe_search(search, term, policy.name)
            kept = _score_round(round_candidates, term, policy, fallback_threshold)
            if kept:
                break

    return rank_candidates(kept, policy)


def find_best_matches(
    ingredient_text: str,
    search: SearchFunc,
    *,
    policy: RankingPolicy = KROGER_POLICY,
) -> RankedResult:
    """
    Search a provider for an ingredient and return its best matches.

    A failed search counts as "no results" and moves on to fallback queries,
    so one bad ingredient never aborts a shopping list.

    Args:
        ingredient_text: Ingredient line as written in the recipe
        search: Product-search collaborator for one source
        policy: Source-specific weights and ordering

    Returns:
        At most policy.max_results products; empty when nothing matched

    Raises:
        AuthenticationError: If the search provider rejects our credentials
    """
    query = search_term(ingredient_text)
    logger.info("%s search: '%s' -> '%s'", policy.name, ingredient_text, query)

    raw_candidates = _safe_search(search, query, policy.name)
    return select_candidates(raw_candidates, ingredient_text, policy=policy, search=search)
