# ==============================================
# Tests for Storage Module
# ==============================================
#
# MemoryStore query semantics, and the query shapes MongoStore sends
# (checked against a mocked pymongo client).
#
# ==============================================

from unittest.mock import MagicMock

import bson
import pytest
from bson import ObjectId
from pymongo.errors import DocumentTooLarge, OperationFailure, ServerSelectionTimeoutError

from geo_quality.config import MongoConfig, StoreLayout
from geo_quality.errors import (
    ConfigurationError,
    MetricComputationError,
    StoreQueryError,
    StoreUnavailable,
    UnsupportedTypePredicate,
)
from geo_quality.normalization.field_types import FieldRole, FieldType
from geo_quality.storage.base import Population, get_path
from geo_quality.storage.memory_store import MemoryStore, project_path
from geo_quality.storage.mongo_client import MAX_SAMPLE_IDS, MongoStore, not_empty_filter, scoped


class TestPaths:
    def test_get_path_is_strict(self):
        assert get_path({"a": {"b": 1}}, "a.b") == 1
        assert get_path({"a": 5}, "a.b") is None
        assert get_path({}, "a") is None

    def test_project_path(self):
        assert project_path({"a": {"b": 1, "c": 2}, "d": 3}, "a.b") == {"a": {"b": 1}}
        assert project_path({"a": "x"}, "a.b") == {}


class TestMemoryStore:
    def test_collated_grouping_folds_case_and_diacritics(self):
        docs = [{"r": "Karelia"}, {"r": "KARELIA"}, {"r": "Karélia"}, {"r": "Murmansk"}]
        store = MemoryStore({"ds": docs})
        population = Population(4, 4)
        assert len(store.group_counts("ds", population, "r")) == 4
        collated = store.group_counts("ds", population, "r", collated=True)
        assert [(g.value, g.count) for g in collated] == [("Karelia", 3), ("Murmansk", 1)]

    def test_population_restricts_queries(self):
        store = MemoryStore({"ds": [{"_id": i, "a": i} for i in range(10)]})
        population = Population(size=3, total=10, ids=(1, 2, 3))
        assert store.count_not_empty("ds", population, ["a"]) == 3
        assert sorted(store.iter_values("ds", population, "a")) == [1, 2, 3]

    def test_unsupported_type_predicate(self):
        store = MemoryStore({"ds": [{"g": {}}]})
        with pytest.raises(UnsupportedTypePredicate):
            store.count_type_matching("ds", Population(1, 1), "g", FieldType.GEOMETRY)

    def test_iter_documents_drops_id(self):
        store = MemoryStore({"ds": [{"a": 1}]})
        assert list(store.iter_documents("ds", Population(1, 1))) == [{"a": 1}]

    def test_schema_and_state(self):
        store = MemoryStore(
            {"ds": []},
            schemas={"ds": [{"name": "r", "type": "string", "feature": "Region"}, {}]},
        )
        fields = store.get_field_definitions("ds")
        assert [(f.name, f.role) for f in fields] == [("r", FieldRole.REGION)]
        assert store.get_field_definitions("other") is None
        store.write_state("ds", {"properties": {}})
        assert store.states["ds"] == {"properties": {}}
        assert store.list_datasets() == ["ds"]

    def test_registry_drops_debug_regions(self, make_store):
        registry = make_store({}).load_registry(["(debug)"])
        assert [r.identifier for r in registry.regions] == ["karelia_db", "murmansk_db"]
        assert [m.identifier for m in registry.children_of("karelia_db")] == ["kondopoga", "petrozavodsk"]
        assert registry.children_of(None) == ()


class TestMongoQueries:
    def test_not_empty_filter(self):
        assert not_empty_filter("a.b") == {"a.b": {"$nin": [None, "null"]}}

    def test_unsampled_scope_has_no_id_filter(self):
        assert scoped(Population(5, 5)) == {}
        assert scoped(Population(5, 5), {"a": 1}) == {"a": 1}

    def test_sampled_scope(self):
        query = scoped(Population(2, 9, ids=("x", "y")), {"a": 1})
        assert query == {"$and": [{"_id": {"$in": ["x", "y"]}}, {"a": 1}]}


@pytest.fixture
def mongo():
    client = MagicMock()
    store = MongoStore(MongoConfig(), StoreLayout(), "ru", client=client)
    collection = client.__getitem__.return_value.__getitem__.return_value
    return store, collection


class TestMongoStore:
    def test_count_not_empty_query(self, mongo):
        store, collection = mongo
        collection.count_documents.return_value = 7
        assert store.count_not_empty("ds", Population(9, 9), ["street", "house"]) == 7
        collection.count_documents.assert_called_once_with({"$and": [
            {"street": {"$nin": [None, "null"]}},
            {"house": {"$nin": [None, "null"]}},
        ]})

    def test_type_matching_query(self, mongo):
        store, collection = mongo
        collection.count_documents.return_value = 3
        store.count_type_matching("ds", Population(9, 9), "n", FieldType.DOUBLE)
        collection.count_documents.assert_called_once_with({"$and": [
            {"n": {"$nin": [None, "null"]}},
            {"n": {"$type": "double"}},
        ]})

    def test_collated_grouping(self, mongo):
        store, collection = mongo
        collection.aggregate.return_value = iter([{"_id": "Karelia", "count": 3}])
        groups = store.group_counts("ds", Population(3, 3), "r", collated=True)
        assert [(g.value, g.count) for g in groups] == [("Karelia", 3)]
        _, kwargs = collection.aggregate.call_args
        assert kwargs["allowDiskUse"] is True
        assert kwargs["collation"].document["strength"] == 1
        assert kwargs["collation"].document["locale"] == "ru"

    def test_operation_failure_is_metric_error(self, mongo):
        store, collection = mongo
        collection.count_documents.side_effect = OperationFailure("bad $type")
        with pytest.raises(MetricComputationError):
            store.count_not_empty("ds", Population(1, 1), ["a"])

    def test_oversized_filter_is_metric_error(self, mongo):
        store, collection = mongo
        collection.count_documents.side_effect = DocumentTooLarge("filter too large")
        with pytest.raises(MetricComputationError):
            store.count_not_empty("ds", Population(1, 1), ["a"])

    def test_rejected_sampling_is_store_query_error(self, mongo):
        store, collection = mongo
        collection.aggregate.side_effect = OperationFailure("$sample exceeded memory limit")
        with pytest.raises(StoreQueryError):
            store.sample_ids("ds", 100)

    def test_rejected_lookup_is_store_query_error(self, mongo):
        store, collection = mongo
        collection.find_one.side_effect = OperationFailure("not authorized")
        with pytest.raises(StoreQueryError):
            store.get_dataset_record("ds")

    def test_sample_above_id_limit_is_rejected(self, mongo):
        store, collection = mongo
        with pytest.raises(ConfigurationError):
            store.sample_ids("ds", MAX_SAMPLE_IDS + 1)
        collection.aggregate.assert_not_called()

    def test_largest_sample_filter_fits_in_one_document(self):
        ids = tuple(ObjectId() for _ in range(MAX_SAMPLE_IDS))
        query = scoped(Population(MAX_SAMPLE_IDS, 5_000_000, ids), not_empty_filter("a"))
        assert len(bson.encode(query)) < 16 * 1024 * 1024

    def test_connection_failure_is_fatal(self, mongo):
        store, collection = mongo
        collection.count_documents.side_effect = ServerSelectionTimeoutError("down")
        with pytest.raises(StoreUnavailable):
            store.count_not_empty("ds", Population(1, 1), ["a"])

    def test_write_state_replaces_whole_state(self, mongo):
        store, collection = mongo
        store.write_state("ds", {"properties": {"connected": True}})
        collection.update_many.assert_called_once_with(
            {"dataset": "ds"}, {"$set": {"state": {"properties": {"connected": True}}}}
        )

    def test_field_definitions(self, mongo):
        store, collection = mongo
        collection.find_one.return_value = {
            "fields": [{"name": "geom", "type": "Geometry"}, {}, {"name": "mun", "type": "String", "feature": "Municipalitet"}]
        }
        fields = store.get_field_definitions("ds")
        assert [(f.name, f.field_type, f.role) for f in fields] == [
            ("geom", FieldType.GEOMETRY, None),
            ("mun", FieldType.STRING, FieldRole.MUNICIPALITY),
        ]
        collection.find_one.assert_called_once_with({"database": "rk_datasets", "dataset": "ds"})

    def test_invalid_task_id(self, mongo):
        store, _ = mongo
        with pytest.raises(ConfigurationError):
            store.get_task("not-an-object-id")

    def test_load_registry(self, mongo):
        store, collection = mongo
        collection.find.side_effect = [
            iter([
                {"region": "Republic of Karelia", "database": "karelia_db"},
                {"region": "Republic of Karelia (debug)", "database": "karelia_debug_db"},
            ]),
            iter([{"region": "Republic of Karelia", "name": "Kondopoga District"}]),
        ]
        registry = store.load_registry(["(debug)"])
        assert [r.identifier for r in registry.regions] == ["karelia_db"]
        assert registry.children_of("karelia_db")[0].name == "Kondopoga District"
