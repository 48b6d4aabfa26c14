"""Text folding, name normalization and string similarity.

Folding approximates a primary-strength collation: case and diacritics are
ignored, base letters are not. Similarity scores only case-fold, so letters
such as "ё" and "е" stay distinct.
"""
import re
import unicodedata
from typing import Any, FrozenSet, Iterable, List

from rapidfuzz.distance import Levenshtein

NULL_SENTINEL = "null"

_WHITESPACE = re.compile(r"\s+")


def is_empty(value: Any) -> bool:
    """Null, missing and the literal "null" string all count as empty."""
    return value is None or value == NULL_SENTINEL


def fold(text: str) -> str:
    """Case-fold and strip combining marks."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return unicodedata.normalize("NFC", stripped).casefold()


def fold_set(words: Iterable[str]) -> FrozenSet[str]:
    return frozenset(fold(w) for w in words if w)


def strip_punctuation(text: str) -> str:
    """Replace every Unicode punctuation character with a space."""
    return "".join(
        " " if unicodedata.category(c).startswith("P") else c for c in text
    )


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def name_tokens(text: str) -> List[str]:
    return collapse_whitespace(strip_punctuation(text)).split(" ") if text else []


def normalize_name(text: str, stop_words: FrozenSet[str]) -> str:
    """
    Normalize an administrative name for comparison.

    Punctuation becomes whitespace, whitespace is collapsed and every token
    whose folded form is in ``stop_words`` is dropped. ``stop_words`` must
    already be folded (see fold_set); remaining tokens keep their case.

    Examples:
        normalize_name("Republic of Karelia (debug)", {"republic", "of"})
            -> "Karelia debug"
    """
    return " ".join(
        token for token in name_tokens(text)
        if token and fold(token) not in stop_words
    )


def address_tokens(text: str) -> List[str]:
    """Commas and periods become spaces; split on collapsed whitespace."""
    cleaned = text.replace(",", " ").replace(".", " ")
    return [t for t in collapse_whitespace(cleaned).split(" ") if t]


def similarity(x: str, y: str) -> float:
    """
    Normalized Levenshtein similarity on case-folded strings.

    (maxLen - editDistance) / maxLen, and 1.0 when both strings are empty.
    Symmetric; sim(a, a) == 1.0.
    """
    a, b = x.casefold(), y.casefold()
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 1.0
    return (max_length - Levenshtein.distance(a, b)) / max_length
