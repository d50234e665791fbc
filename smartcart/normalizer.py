"""Turn recipe ingredient lines into product search queries."""

import re

_FRACTION_CHARS = "½¼¾⅓⅔⅛⅜⅝⅞"

_UNITS = (
    r"cups?|tbsps?|tsps?|tablespoons?|teaspoons?|lbs?|pounds?|ounces?|fl\.?\s*oz|oz"
    r"|quarts?|gallons?|ml|liters?|litres?|inch(?:es)?|cm|pinch(?:es)?|dash(?:es)?"
    r"|cans?|pkgs?|packages?|bags?|bottles?|jars?"
)

_LEADING_QUANTITY_RE = re.compile(rf"^[\d{_FRACTION_CHARS}\s/\-.]+")
_QUANTITY_UNIT_RE = re.compile(
    rf"\b\d+(?:\.\d+|/\d+)?\s*(?:{_UNITS})\b\.?|[{_FRACTION_CHARS}]\s*(?:{_UNITS})\b\.?",
    re.IGNORECASE,
)
_LEADING_UNIT_RE = re.compile(rf"^\s*(?:{_UNITS})\b\.?\s*", re.IGNORECASE)

_COUNT_NOUNS_RE = re.compile(
    r"\b(?:cloves?|heads?|stalks?|bunch(?:es)?|pieces?|sticks?|slices?|fillets?"
    r"|breasts?|thighs?|legs?|sprigs?|sheets?|strips?|cubes?|wedges?|ears?|ribs?)\b",
    re.IGNORECASE,
)

# Multi-word phrases come first so "room temperature" is removed whole
PREPARATION_WORDS: tuple[str, ...] = (
    "to taste",
    "for garnish",
    "as needed",
    "room temperature",
    "fresh",
    "freshly",
    "organic",
    "large",
    "medium",
    "small",
    "jumbo",
    "whole",
    "half",
    "ground",
    "minced",
    "dried",
    "frozen",
    "raw",
    "pure",
    "extra",
    "virgin",
    "boneless",
    "skinless",
    "thin",
    "thinly",
    "thick",
    "fine",
    "finely",
    "coarse",
    "coarsely",
    "chopped",
    "diced",
    "sliced",
    "shredded",
    "grated",
    "crushed",
    "peeled",
    "deveined",
    "trimmed",
    "packed",
    "loosely",
    "firmly",
    "divided",
    "optional",
    "about",
    "approximately",
    "roughly",
    "ripe",
    "uncooked",
    "cooked",
    "softened",
    "melted",
    "cold",
    "warm",
    "hot",
)

_PREPARATION_RE = re.compile(
    r"\b(?:"
    + "|".join(r"\s+".join(re.escape(part) for part in w.split()) for w in PREPARATION_WORDS)
    + r")\b",
    re.IGNORECASE,
)
_PARENTHETICAL_RE = re.compile(r"\([^)]*\)?")
_STANDALONE_NUMBER_RE = re.compile(rf"\b\d+(?:\.\d+|/\d+)?\b|[{_FRACTION_CHARS}]")
_SEPARATORS_RE = re.compile(r"[,;:\-]+")
_LEADING_OF_RE = re.compile(r"^of\s+", re.IGNORECASE)


def normalize_ingredient(text: str) -> str:
    """
    Reduce an ingredient line to its base ingredient.

    "2 cups finely chopped fresh cilantro (stems removed)" becomes "cilantro".
    The result is lowercase and may be empty for symbol-only input; use
    search_term() when a non-empty query is required.

    Args:
        text: Ingredient line as written in the recipe

    Returns:
        Normalized search query
    """
    q = _LEADING_QUANTITY_RE.sub("", text)
    q = _QUANTITY_UNIT_RE.sub("", q)
    q = _LEADING_UNIT_RE.sub("", q)
    q = _COUNT_NOUNS_RE.sub("", q)
    q = _PREPARATION_RE.sub("", q)
    q = _PARENTHETICAL_RE.sub("", q)
    q = q.replace(")", " ").replace("(", " ")
    q = _STANDALONE_NUMBER_RE.sub("", q)
    q = _SEPARATORS_RE.sub(" ", q)

    # Tokens with no letters or digits left are noise ("&", "/", "...")
    words = [w.strip(".*!?") for w in q.split() if re.search(r"\w", w)]
    q = " ".join(w for w in words if w)

    # "1 (14 oz) can tomatoes" and "1 cup of milk" leave a unit or "of" in front
    q = _LEADING_UNIT_RE.sub("", q)
    q = _LEADING_OF_RE.sub("", q)

    return q.strip().lower()


def search_term(text: str) -> str:
    """Normalized query, or the original text when normalization erases everything."""
    return normalize_ingredient(text) or text.strip() or text


def fallback_queries(query: str) -> list[str]:
    """
    Broader queries to try when a query finds no acceptable product.

    Edge-trimmed variants come before single words so that
    "tamarind date chutney" tries "date chutney" and "tamarind date" before
    "tamarind" and "chutney".

    Args:
        query: Normalized search query

    Returns:
        Ordered, de-duplicated queries longer than two characters
    """
    words = query.split()
    proposals: list[str] = []

    if len(words) >= 2:
        proposals.append(" ".join(words[1:]))
        proposals.append(" ".join(words[:-1]))
        if len(words) >= 3:
            proposals.append(words[0])
            proposals.append(words[-1])

    fallbacks: list[str] = []
    for term in proposals:
        if term not in fallbacks and len(term) > 2:
            fallbacks.append(term)
    return fallbacks
