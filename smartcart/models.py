"""Product records passed between the search clients and the matching engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class RawCandidate:
    """A product record as returned by a product-search provider."""

    product_id: str
    name: str
    brand: str = ""
    size: str = ""
    price: float | None = None
    available: bool | None = None
    category: tuple[str, ...] = field(default_factory=tuple)
    image: str | None = None

    @property
    def has_price(self) -> bool:
        return self.price is not None and self.price > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "productId": self.product_id,
            "name": self.name,
            "brand": self.brand,
            "size": self.size,
            "price": self.price,
            "available": self.available,
            "category": list(self.category),
            "image": self.image,
        }


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate with its relevance score for one query round.

    Scores are only comparable with other candidates scored against the
    same query.
    """

    candidate: RawCandidate
    score: int

    @property
    def product_id(self) -> str:
        return self.candidate.product_id

    @property
    def price(self) -> float | None:
        """Positive price, or None when the price is unknown."""
        return self.candidate.price if self.candidate.has_price else None

    @property
    def available(self) -> bool:
        # Unknown availability is treated as available
        return self.candidate.available is not False


# Final top-N list for one (ingredient, source) pair, scores stripped
RankedResult = list[RawCandidate]


class PickStatus(Enum):
    """Outcome of choosing one product for an ingredient across sources."""

    PRICED = "priced"
    UNPRICED = "unpriced"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class BestPick:
    """The single chosen product for an ingredient."""

    ingredient: str
    source: str | None
    product: RawCandidate | None
    status: PickStatus

    @classmethod
    def not_found(cls, ingredient: str = "") -> "BestPick":
        return cls(ingredient=ingredient, source=None, product=None, status=PickStatus.NOT_FOUND)

    @property
    def found(self) -> bool:
        return self.status is not PickStatus.NOT_FOUND

    @property
    def price(self) -> float | None:
        if self.product and self.product.has_price:
            return self.product.price
        return None

    @property
    def product_name(self) -> str:
        if self.product:
            return self.product.name
        return "No match found"


@dataclass(frozen=True)
class StoreLocation:
    """A store returned by the store-locator lookup."""

    location_id: str
    name: str
    address: str = ""
    chain: str = ""
