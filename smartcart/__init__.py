"""SmartCart - match recipe ingredients to grocery products and compare stores."""

__version__ = "1.0.0"

from .api import KrogerAPI, WalmartAPI
from .best_pick import best_in_source, compare_stores, pick_best
from .errors import AuthenticationError, ProductAPIError
from .matcher import (
    KROGER_POLICY,
    WALMART_POLICY,
    RankingPolicy,
    find_best_matches,
    score_candidate,
    select_candidates,
)
from .models import BestPick, PickStatus, RawCandidate, ScoredCandidate
from .normalizer import fallback_queries, normalize_ingredient
from .shopping import PriceLookup, ProductSource
from .token_cache import TokenCache

__all__ = [
    "KrogerAPI",
    "WalmartAPI",
    "ProductAPIError",
    "AuthenticationError",
    "RawCandidate",
    "ScoredCandidate",
    "BestPick",
    "PickStatus",
    "normalize_ingredient",
    "fallback_queries",
    "RankingPolicy",
    "KROGER_POLICY",
    "WALMART_POLICY",
    "score_candidate",
    "select_candidates",
    "find_best_matches",
    "pick_best",
    "best_in_source",
    "compare_stores",
    "PriceLookup",
    "ProductSource",
    "TokenCache",
]
