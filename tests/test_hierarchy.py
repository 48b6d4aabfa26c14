# ==============================================
# Tests for HierarchyResolver
# ==============================================

import pytest

from geo_quality.address.hierarchy import HierarchyResolver, best_match, merge_similar
from geo_quality.address.registry import RegistryEntry
from geo_quality.analysis.field_statistics import FieldStatisticsComputer
from geo_quality.analysis.sampler import Sampler
from geo_quality.normalization.field_types import FieldDefinition, FieldRole, FieldType
from geo_quality.normalization.text import fold_set

REGION = FieldDefinition("region", FieldType.STRING, FieldRole.REGION)
MUNICIPALITY = FieldDefinition("mun", FieldType.STRING, FieldRole.MUNICIPALITY)


@pytest.fixture
def resolve(make_store, dictionaries):
    """Run statistics plus resolution over docs; returns (resolution, reports)."""
    def _resolve(docs, fields=(REGION, MUNICIPALITY)):
        store = make_store({"ds": docs})
        registry = store.load_registry(["(debug)"])
        population = Sampler(store).draw("ds")
        statistics = FieldStatisticsComputer(store)
        reports = {f.name: statistics.compute("ds", population, f) for f in fields}
        resolver = HierarchyResolver(
            store, registry,
            region_stop_words=dictionaries.region_stop_words,
            municipality_stop_words=dictionaries.municipality_stop_words,
        )
        return resolver.resolve("ds", population, list(fields), reports), reports
    return _resolve


class TestMergeSimilar:
    def test_pair_merges_into_outer_value(self):
        groups = [("Rep. Karelia", "Karelia", 7), ("Karelia", "Karelia", 3)]
        assert merge_similar(groups, 0.8) == [("Rep. Karelia", 10)]

    def test_dissimilar_values_do_not_merge(self):
        groups = [("Karelia", "Karelia", 5), ("Murmansk", "Murmansk", 5)]
        assert merge_similar(groups, 0.8) == []

    def test_three_spellings_are_under_merged(self):
        # single pass, no transitive closure
        groups = [
            ("Karelia", "Karelia", 400),
            ("Kareliya", "Kareliya", 300),
            ("Karelja", "Karelja", 300),
        ]
        merged = merge_similar(groups, 0.8)
        assert len(merged) > 1


class TestBestMatch:
    def test_first_best_wins(self):
        entries = [RegistryEntry("Karelia", "a"), RegistryEntry("Karelia", "b")]
        assert best_match("Karelia", entries, frozenset(), 0.9).identifier == "a"

    def test_threshold_is_strict(self):
        entries = [RegistryEntry("Karelia", "a")]
        assert best_match("Kareli", entries, frozenset(), 0.9) is None

    def test_registry_names_are_normalized(self):
        entries = [RegistryEntry("Republic of Karelia", "karelia_db")]
        stop_words = fold_set(["republic", "of"])
        assert best_match("Karelia", entries, stop_words, 0.9).identifier == "karelia_db"


class TestHierarchyResolver:
    def test_fuzzy_collapse_of_region_spellings(self, resolve):
        docs = [{"region": "Republic of Karelia (debug)"}] * 950 + [{"region": "Karelia Republic"}] * 50
        resolution, reports = resolve(docs, fields=(REGION,))
        assert reports["region"].entropy < 0.5
        assert resolution.region.one_value
        assert resolution.region.representative == "Republic of Karelia (debug)"
        assert reports["region"].one_value is True
        assert reports["region"].canonical_id == "karelia_db"

    def test_exact_collapse_resolves_municipality(self, resolve):
        docs = [{"region": "Republic of Karelia", "mun": "Kondopoga district"}] * 20
        resolution, reports = resolve(docs)
        assert resolution.region.canonical_id == "karelia_db"
        assert resolution.municipality.one_value
        assert reports["mun"].canonical_id == "kondopoga"

    def test_municipality_only_among_children(self, resolve):
        docs = [{"region": "Republic of Karelia", "mun": "Kandalaksha District"}] * 20
        resolution, reports = resolve(docs)
        assert resolution.municipality.one_value
        assert resolution.municipality.canonical is None
        assert "canonicalId" not in reports["mun"].to_dict()

    def test_many_regions_skip_municipality(self, resolve):
        docs = [{"region": "Republic of Karelia", "mun": "Kondopoga"}] * 10
        docs += [{"region": "Murmansk Oblast", "mun": "Kandalaksha"}] * 10
        resolution, reports = resolve(docs)
        assert resolution.region.one_value is False
        assert resolution.municipality is None
        assert reports["region"].one_value is False
        assert reports["mun"].one_value is False
        assert reports["mun"].canonical_id is None

    def test_single_value_without_registry_match(self, resolve):
        docs = [{"region": "Atlantis"}] * 5
        resolution, reports = resolve(docs, fields=(REGION,))
        assert reports["region"].one_value is True
        assert reports["region"].canonical_id is None

    def test_debug_registry_entries_are_ignored(self, resolve):
        docs = [{"region": "Republic of Karelia (debug)"}] * 5
        resolution, _ = resolve(docs, fields=(REGION,))
        assert resolution.region.canonical_id == "karelia_db"

    def test_second_region_field_is_not_resolved(self, resolve):
        second = FieldDefinition("region_alt", FieldType.STRING, FieldRole.REGION)
        docs = [{"region": "Republic of Karelia", "region_alt": "Republic of Karelia"}] * 5
        resolution, reports = resolve(docs, fields=(REGION, second))
        assert reports["region"].one_value is True
        assert reports["region_alt"].one_value is False
        assert resolution.other_fields == ["region_alt"]

    def test_deterministic(self, resolve):
        docs = [{"region": "Republic of Karelia (debug)"}] * 95 + [{"region": "Karelia Republic"}] * 5
        first, _ = resolve(docs, fields=(REGION,))
        second, _ = resolve(docs, fields=(REGION,))
        assert first == second

    def test_empty_field_is_not_single_valued(self, resolve):
        docs = [{"other": 1}] * 5
        _, reports = resolve(docs, fields=(REGION,))
        assert reports["region"].one_value is False
