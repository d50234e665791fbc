"""Substitution hints for ingredients no store carries."""

import re

from rapidfuzz import fuzz

# Specialty pantry items and a supermarket stand-in
SUBSTITUTIONS: dict[str, str] = {
    "tamarind": "Tamarind Paste",
    "chutney": "Sweet Chili Sauce",
    "masala": "Garam Masala",
    "pav": "Dinner Rolls",
    "paneer": "Ricotta or Tofu",
    "ghee": "Clarified Butter",
    "jaggery": "Brown Sugar",
    "hing": "Garlic Powder",
    "asafoetida": "Garlic Powder",
    "curry leaves": "Bay Leaves",
    "pomegranate seeds": "Dried Cranberries",
}

MATCH_THRESHOLD = 90


def _phrases(words: list[str], size: int) -> list[str]:
    return [" ".join(words[i : i + size]) for i in range(len(words) - size + 1)]


def suggest_substitute(ingredient: str) -> str:
    """
    Suggest something to search for instead of a not-found ingredient.

    A parenthetical hint in the line wins ("paneer (or firm tofu)"). Otherwise
    known specialty items are looked up with fuzzy matching so plurals and
    small typos still hit. Failing that, the last word of a multi-word line.

    Args:
        ingredient: Ingredient line that had no match

    Returns:
        Suggested search text, or "" when there is nothing useful to offer
    """
    paren = re.search(r"\(([^)]+)\)", ingredient)
    if paren and paren.group(1).strip():
        return paren.group(1).strip()

    words = re.findall(r"[a-z]+", re.sub(r"\(.*?\)", "", ingredient).lower())
    for key, substitute in SUBSTITUTIONS.items():
        size = len(key.split())
        if any(fuzz.ratio(key, phrase) >= MATCH_THRESHOLD for phrase in _phrases(words, size)):
            return substitute

    original_words = re.sub(r"\(.*?\)", "", ingredient).strip().split()
    if len(original_words) >= 2:
        return original_words[-1]
    return ""
