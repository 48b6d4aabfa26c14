# ==============================================
# FieldStatisticsComputer
# ==============================================
#
# PURPOSE:
#   Compute the generic quality metrics of one declared field over
#   the run's Population: fullness, type matching, normalized entropy
#   and index presence.
#
# CLASS: FieldStatisticsComputer
# ------------------------------
#   Stateless apart from the store it queries.
#
#   Methods:
#   --------
#   - compute(dataset, population, field, indexes) -> FieldQualityReport
#       fullness     = notEmpty / N
#       typeMatching = matchingDeclaredType / notEmpty
#       entropy      = H / log2(groups), 0 for a single group, clamped to 1
#       indexed      = field appears in an index key or text-index weights
#
#       A MetricComputationError in one metric leaves that metric None
#       and does not stop the others.
#       A failed not-empty count still leaves entropy computable;
#       type matching needs the count and stays None.
#
# FUNCTIONS:
# ----------
# - normalized_entropy(counts) -> float
# - is_indexed(name, indexes) -> bool
#
# ==============================================

import logging
from math import log2
from typing import Any, Callable, Dict, List, Optional, Sequence

from geo_quality.errors import MetricComputationError
from geo_quality.normalization.field_types import FieldDefinition, FieldRole
from geo_quality.storage.base import DocumentStore, Population

from .field_stats import FieldQualityReport, ratio

logger = logging.getLogger(__name__)

HIERARCHY_ROLES = (FieldRole.REGION, FieldRole.MUNICIPALITY)


def normalized_entropy(counts: Sequence[int]) -> float:
    """
    Shannon entropy of a value distribution divided by its maximum.

    Args:
        counts: Occurrences of each distinct value

    Returns:
        0.0 for zero or one distinct value, otherwise a value in [0, 1].
    """
    counts = [c for c in counts if c > 0]
    total = sum(counts)
    if len(counts) <= 1 or total == 0:
        return 0.0
    entropy = 0.0
    for count in counts:
        p = count / total
        entropy -= p * log2(p)
    entropy /= log2(len(counts))
    # Absorb floating error at both ends
    return min(1.0, max(0.0, entropy))


def is_indexed(name: str, indexes: Sequence[Dict[str, Any]]) -> bool:
    """True when an index uses the field as a key or as a text-index weight."""
    for index in indexes:
        if name in (index.get("key") or {}) or name in (index.get("weights") or {}):
            return True
    return False


class FieldStatisticsComputer:
    """Generic per-field metrics over a fixed Population."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def compute(
        self,
        dataset: str,
        population: Population,
        field: FieldDefinition,
        indexes: Sequence[Dict[str, Any]] = (),
    ) -> FieldQualityReport:
        """
        Compute fullness, type matching, entropy and index presence.

        Args:
            dataset: Collection name
            population: The run's fixed Population (N = population.size)
            field: Declared field
            indexes: Index descriptions of the collection

        Returns:
            A FieldQualityReport. For Region and Municipality fields
            value_groups holds the most frequent group for the hierarchy
            resolver; it stays empty for every other field.
        """
        name = field.name
        report = FieldQualityReport(name=name, indexed=is_indexed(name, indexes))

        not_empty = self._metric(
            name, "fullness",
            lambda: self.store.count_not_empty(dataset, population, [name]),
        )
        report.fullness = ratio(not_empty, population.size)
        if not_empty == 0:
            return report

        if not_empty is not None:
            matching = self._metric(
                name, "typeMatching",
                lambda: self.store.count_type_matching(dataset, population, name, field.field_type),
            )
            report.type_matching = ratio(matching, not_empty)

        # Blank names cannot be grouped on
        if field.is_blank:
            return report

        groups = self._metric(
            name, "entropy",
            lambda: self.store.group_counts(dataset, population, name),
        )
        if groups is not None:
            # Exact hierarchy collapse reads only the most frequent group
            if field.role in HIERARCHY_ROLES:
                report.value_groups = list(groups[:1])
            report.entropy = normalized_entropy([g.count for g in groups])
        return report

    def _metric(self, name: str, metric: str, compute: Callable[[], Any]) -> Optional[Any]:
        try:
            return compute()
        except MetricComputationError as e:
            logger.debug(f"⚠ {metric} of '{name}' left undefined: {e}")
            return None


def list_indexes_safely(store: DocumentStore, dataset: str) -> List[Dict[str, Any]]:
    """Index descriptions, or an empty list when they cannot be read."""
    try:
        return store.list_indexes(dataset)
    except MetricComputationError as e:
        logger.warning(f"⚠ Could not list indexes of '{dataset}': {e}")
        return []
