# ==============================================
# HierarchyResolver
# ==============================================
#
# PURPOSE:
#   Decide whether the Region field (and, below it, the Municipality
#   field) of a dataset holds a single administrative unit, and if so
#   which canonical registry entry it is.
#
# PIPELINE (per level):
# ---------------------
#   1. Exact collapse:  entropy < exact threshold (0.05)
#        → single-valued, representative = most frequent raw value
#   2. Fuzzy collapse:  entropy < level threshold (Region 0.5,
#                       Municipality 0.4)
#        → group values under primary-strength collation, normalise
#          names, merge similar pairs (one pass, order-dependent)
#        → single-valued iff exactly one merged entry covers more
#          than 90% of the population
#   3. Canonical match: normalised representative vs normalised
#      registry names; best similarity above 0.9 wins.
#
# Municipality candidates are the children of the resolved Region.
# The Municipality level runs only when the Region is single-valued.
#
# ==============================================

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from geo_quality.address.registry import AdministrativeRegistry, RegistryEntry
from geo_quality.analysis.field_stats import FieldQualityReport
from geo_quality.errors import MetricComputationError
from geo_quality.normalization.field_types import FieldDefinition, FieldRole
from geo_quality.normalization.text import fold_set, normalize_name, similarity
from geo_quality.storage.base import DocumentStore, Population, ValueCount

logger = logging.getLogger(__name__)


@dataclass
class LevelResolution:
    """Outcome for one administrative level."""
    field_name: str
    one_value: bool = False
    representative: Optional[str] = None
    canonical: Optional[RegistryEntry] = None

    @property
    def canonical_id(self) -> Optional[str]:
        return self.canonical.identifier if self.canonical is not None else None


@dataclass
class HierarchyResolution:
    region: Optional[LevelResolution] = None
    municipality: Optional[LevelResolution] = None
    other_fields: List[str] = field(default_factory=list)


def merge_similar(
    groups: Sequence[Tuple[str, str, int]], min_similarity: float
) -> List[Tuple[str, int]]:
    """
    Single pairwise pass over (raw, normalized, count) groups.

    Every pair (i, j) whose normalized names score above ``min_similarity``
    yields (raw_i, count_i + count_j). The last partner matched becomes the
    skip index, so the outer loop does not revisit it. No transitive closure.

    Examples:
        merge_similar([("Rep. Karelia", "Karelia", 7), ("Karelia", "Karelia", 3)], 0.8)
            -> [("Rep. Karelia", 10)]
    """
    merged: List[Tuple[str, int]] = []
    skip = -1
    for i, (raw, normalized, count) in enumerate(groups):
        if i == skip:
            continue
        for j, (_, other_normalized, other_count) in enumerate(groups):
            if i == j:
                continue
            if similarity(normalized, other_normalized) > min_similarity:
                skip = j
                merged.append((raw, count + other_count))
    return merged


def best_match(
    name: str, candidates: Iterable[RegistryEntry], stop_words: FrozenSet[str], min_similarity: float
) -> Optional[RegistryEntry]:
    """Highest-scoring registry entry above ``min_similarity``; the first one wins ties."""
    best: Optional[RegistryEntry] = None
    best_score = 0.0
    for entry in candidates:
        score = similarity(name, normalize_name(entry.name, stop_words))
        if score > best_score and score > min_similarity:
            best, best_score = entry, score
    return best


class HierarchyResolver:
    """Single-valued Region / Municipality detection and canonical resolution."""

    def __init__(
        self,
        store: DocumentStore,
        registry: AdministrativeRegistry,
        region_stop_words: Iterable[str] = (),
        municipality_stop_words: Iterable[str] = (),
        exact_entropy: float = 0.05,
        region_entropy: float = 0.5,
        municipality_entropy: float = 0.4,
        cluster_similarity: float = 0.8,
        single_value_share: float = 0.9,
        registry_similarity: float = 0.9,
    ):
        self.store = store
        self.registry = registry
        self.stop_words: Dict[FieldRole, FrozenSet[str]] = {
            FieldRole.REGION: fold_set(region_stop_words),
            FieldRole.MUNICIPALITY: fold_set(municipality_stop_words),
        }
        self.fuzzy_entropy = {
            FieldRole.REGION: region_entropy,
            FieldRole.MUNICIPALITY: municipality_entropy,
        }
        self.exact_entropy = exact_entropy
        self.cluster_similarity = cluster_similarity
        self.single_value_share = single_value_share
        self.registry_similarity = registry_similarity

    # ======================================
    # Collapse
    # ======================================
    def collapse(
        self,
        dataset: str,
        population: Population,
        role: FieldRole,
        report: FieldQualityReport,
    ) -> Tuple[bool, Optional[str]]:
        """
        Returns:
            (one_value, representative raw value)
        """
        if report.entropy is None or not report.value_groups:
            return False, None

        if report.entropy < self.exact_entropy:
            return True, str(report.value_groups[0].value)

        if report.entropy < self.fuzzy_entropy[role]:
            try:
                groups = self.store.group_counts(dataset, population, report.name, collated=True)
            except MetricComputationError as e:
                logger.warning(f"⚠ Fuzzy grouping of '{report.name}' failed: {e}")
                return False, None
            return self._fuzzy_collapse(groups, role, population.size)

        return False, None

    def _fuzzy_collapse(
        self, groups: Sequence[ValueCount], role: FieldRole, population_size: int
    ) -> Tuple[bool, Optional[str]]:
        stop_words = self.stop_words[role]
        prepared = [
            (g.value, normalize_name(g.value, stop_words), g.count)
            for g in groups
            if isinstance(g.value, str)
        ]
        merged = merge_similar(prepared, self.cluster_similarity)
        if len(merged) == 1 and merged[0][1] > population_size * self.single_value_share:
            return True, merged[0][0]
        return False, None

    # ======================================
    # Resolution
    # ======================================
    def resolve_level(
        self,
        dataset: str,
        population: Population,
        role: FieldRole,
        report: FieldQualityReport,
        candidates: Iterable[RegistryEntry],
    ) -> LevelResolution:
        result = LevelResolution(field_name=report.name)
        result.one_value, result.representative = self.collapse(dataset, population, role, report)
        if result.one_value and result.representative is not None:
            stop_words = self.stop_words[role]
            name = normalize_name(result.representative, stop_words)
            result.canonical = best_match(name, candidates, stop_words, self.registry_similarity)
            if result.canonical is None:
                logger.info(f"No registry entry matches {role.value} '{result.representative}'")
        return result

    def resolve(
        self,
        dataset: str,
        population: Population,
        fields: Sequence[FieldDefinition],
        reports: Dict[str, FieldQualityReport],
    ) -> HierarchyResolution:
        """
        Resolve the first Region field and, when it is single-valued, the
        first Municipality field. Writes one_value / canonical_id onto the
        affected reports; every other Region/Municipality field gets
        one_value False.
        """
        resolution = HierarchyResolution()
        region_field = self._first(fields, FieldRole.REGION)
        municipality_field = self._first(fields, FieldRole.MUNICIPALITY)

        if region_field is not None and region_field.name in reports:
            resolution.region = self.resolve_level(
                dataset, population, FieldRole.REGION,
                reports[region_field.name], self.registry.regions,
            )

        if (
            resolution.region is not None
            and resolution.region.one_value
            and municipality_field is not None
            and municipality_field.name in reports
        ):
            resolution.municipality = self.resolve_level(
                dataset, population, FieldRole.MUNICIPALITY,
                reports[municipality_field.name],
                self.registry.children_of(resolution.region.canonical_id),
            )

        resolved = {}
        for level in (resolution.region, resolution.municipality):
            if level is not None:
                resolved[level.field_name] = level
        for f in fields:
            if f.role not in (FieldRole.REGION, FieldRole.MUNICIPALITY) or f.name not in reports:
                continue
            level = resolved.get(f.name)
            if level is None:
                reports[f.name].one_value = False
                resolution.other_fields.append(f.name)
            else:
                reports[f.name].one_value = level.one_value
                reports[f.name].canonical_id = level.canonical_id
        return resolution

    @staticmethod
    def _first(fields: Sequence[FieldDefinition], role: FieldRole) -> Optional[FieldDefinition]:
        for f in fields:
            if f.role == role:
                return f
        return None
