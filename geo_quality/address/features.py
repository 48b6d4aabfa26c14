# ==============================================
# AddressFeatureDetector
# ==============================================
#
# PURPOSE:
#   Tell whether a dataset has address-like text anywhere, without
#   relying on declared roles. Used to decide whether the dataset
#   needs address parsing.
#
# PIPELINE:
# ---------
#   1. For every document, every top-level string value with more
#      than `min_tokens` space-separated tokens makes its key a
#      candidate for that document.
#   2. Keep keys that are candidates in at least N // 2 documents.
#   3. For kept keys, turn commas and periods into spaces, collapse
#      whitespace, split, and intersect with the address lexicon
#      (case- and diacritic-insensitive). A document matches a key
#      when at least `min_hits` distinct lexicon words occur.
#   4. has_address_features iff some kept key matches in at least
#      N // 2 documents.
#
# ==============================================

import logging
from collections import Counter
from typing import Iterable, List

from geo_quality.errors import MetricComputationError
from geo_quality.normalization.text import address_tokens, fold, fold_set
from geo_quality.storage.base import DocumentStore, Population

logger = logging.getLogger(__name__)


class AddressFeatureDetector:
    """Dictionary-driven heuristic for address-like string fields."""

    def __init__(
        self,
        store: DocumentStore,
        lexicon: Iterable[str],
        min_tokens: int = 3,
        min_hits: int = 2,
    ):
        self.store = store
        self.lexicon = fold_set(lexicon)
        self.min_tokens = min_tokens
        self.min_hits = min_hits

    def candidate_keys(self, dataset: str, population: Population) -> List[str]:
        """Keys holding long-enough strings in at least half the documents."""
        candidates: Counter = Counter()
        for document in self.store.iter_documents(dataset, population):
            for key, value in document.items():
                if isinstance(value, str) and len(value.split(" ")) > self.min_tokens:
                    candidates[key] += 1
        threshold = population.size // 2
        return [key for key, count in candidates.most_common() if count >= threshold]

    def matches(self, value: str) -> bool:
        words = {fold(token) for token in address_tokens(value)}
        return len(words & self.lexicon) >= self.min_hits

    def count_matches(self, dataset: str, population: Population, keys: List[str]) -> Counter:
        matched: Counter = Counter()
        for document in self.store.iter_documents(dataset, population):
            for key in keys:
                value = document.get(key)
                if isinstance(value, str) and self.matches(value):
                    matched[key] += 1
        return matched

    def detect(self, dataset: str, population: Population) -> bool:
        """
        Returns:
            True when some field reads like an address in at least half
            of the population.
        """
        if population.size == 0 or not self.lexicon:
            return False

        try:
            keys = self.candidate_keys(dataset, population)
            if not keys:
                return False
            matched = self.count_matches(dataset, population, keys)
        except MetricComputationError as e:
            logger.warning(f"⚠ Address feature scan of '{dataset}' failed: {e}")
            return False

        threshold = population.size // 2
        hits = {key: count for key, count in matched.items() if count >= threshold}
        if hits:
            logger.debug(f"Address-like fields in '{dataset}': {sorted(hits)}")
        return bool(hits)
