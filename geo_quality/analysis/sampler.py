"""Decide, once per run, which documents an analysis looks at."""
import logging

from geo_quality.storage.base import DocumentStore, Population

logger = logging.getLogger(__name__)


class Sampler:
    """
    Bounds the working population to a cap.

    When the dataset has at most ``cap`` documents every document is used and
    counts are exact. Otherwise ``cap`` random ids are drawn once; the
    resulting Population is reused by every metric and detector so their
    ratios share the same denominator.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def draw(self, dataset: str, cap: int = -1) -> Population:
        """
        Args:
            dataset: Collection to analyse
            cap: Maximum documents to analyse; <= 0 means no cap

        Returns:
            The fixed Population for this run
        """
        total = self.store.count(dataset)
        if cap <= 0 or total <= cap:
            return Population(size=total, total=total)

        # $sample may return a document twice
        ids = tuple(dict.fromkeys(self.store.sample_ids(dataset, cap)))
        logger.info(f"Sampled {len(ids)} of {total} documents from '{dataset}'")
        return Population(size=len(ids), total=total, ids=ids)
