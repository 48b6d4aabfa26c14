# ==============================================
# MongoStore
# ==============================================
#
# PURPOSE:
#   DocumentStore backed by MongoDB. Datasets are collections in the
#   datasets database; schemas, dataset records and the region
#   registry live in the metadata database; municipalities in the
#   common database; analysis tasks in the tasks database.
#
# CLASS: MongoStore
# -----------------
#   Constructor:
#   ------------
#   - __init__(mongo: MongoConfig, layout: StoreLayout, collation_locale: str)
#       Stores params. Connects lazily via connect().
#
#   Query shape:
#   ------------
#   Every dataset query is
#       {"$and": [<population filter>, <not-empty filter>, ...]}
#   where the population filter is {"_id": {"$in": ids}} for sampled
#   runs and {} otherwise. Grouping runs as an aggregation pipeline
#   with allowDiskUse and, when collated, a primary-strength collation.
#
# ERRORS:
# -------
#   ConnectionFailure / ServerSelectionTimeoutError → StoreUnavailable
#   Other PyMongoError during a metric query         → MetricComputationError
#   Other PyMongoError during a lookup or write      → StoreQueryError
#   Sample larger than MAX_SAMPLE_IDS                → ConfigurationError
#     (the $in filter of a sampled run must fit in one BSON document)
#
# ==============================================

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient as PyMongoClient
from pymongo.collation import Collation, CollationStrength
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

from geo_quality.address.registry import AdministrativeRegistry, RegistryEntry
from geo_quality.config import MongoConfig, StoreLayout
from geo_quality.errors import (
    ConfigurationError,
    MetricComputationError,
    StoreQueryError,
    StoreUnavailable,
    UnsupportedTypePredicate,
)
from geo_quality.normalization.field_types import BSON_TYPE_ALIASES, FieldDefinition, FieldType
from geo_quality.normalization.text import NULL_SENTINEL
from geo_quality.storage.base import DocumentStore, Population, ValueCount

logger = logging.getLogger(__name__)

# About 20 bytes per ObjectId in an $in array; keeps filters well under 16 MB
MAX_SAMPLE_IDS = 500_000


def not_empty_filter(field: str) -> Dict[str, Any]:
    return {field: {"$nin": [None, NULL_SENTINEL]}}


def population_filter(population: Population) -> Dict[str, Any]:
    if population.ids is None:
        return {}
    return {"_id": {"$in": list(population.ids)}}


def scoped(population: Population, *clauses: Dict[str, Any]) -> Dict[str, Any]:
    parts = [c for c in (population_filter(population),) + clauses if c]
    if not parts:
        return {}
    if len(parts) == 1:
        return parts[0]
    return {"$and": parts}


class MongoStore(DocumentStore):

    def __init__(
        self,
        mongo: MongoConfig,
        layout: StoreLayout,
        collation_locale: str = "ru",
        client: Optional[PyMongoClient] = None,
    ):
        # Store connection params. Don't connect yet.
        self.mongo = mongo
        self.layout = layout
        self.collation = Collation(
            locale=collation_locale,
            strength=CollationStrength.PRIMARY,
            caseLevel=False,
        )
        self.client = client

    def connect(self) -> None:
        if self.client is not None:
            return
        try:
            self.client = PyMongoClient(
                self.mongo.connection_uri(),
                serverSelectionTimeoutMS=self.mongo.timeout_ms,
            )
            self.client.admin.command("ping")
            logger.info("✓ Connected to MongoDB")
        except ConnectionFailure as e:
            self.client = None
            raise StoreUnavailable(f"could not connect to MongoDB: {e}") from e
        except OperationFailure as e:
            self.client = None
            raise StoreUnavailable(f"MongoDB authentication failed: {e}") from e

    def close(self) -> None:
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")
            self.client = None

    def __enter__(self):
        self.connect()
        return self

    # ======================================
    # Helpers
    # ======================================
    def _db(self, name: str):
        if self.client is None:
            self.connect()
        return self.client[name]

    def _dataset(self, dataset: str):
        return self._db(self.layout.datasets_db)[dataset]

    def _metadata(self, collection: str):
        return self._db(self.layout.metadata_db)[collection]

    @contextmanager
    def _metric_query(self, what: str):
        try:
            yield
        except ConnectionFailure as e:
            raise StoreUnavailable(f"MongoDB unavailable during {what}: {e}") from e
        except PyMongoError as e:
            raise MetricComputationError(f"{what} failed: {e}") from e

    @contextmanager
    def _store_call(self, what: str):
        try:
            yield
        except ConnectionFailure as e:
            raise StoreUnavailable(f"MongoDB unavailable during {what}: {e}") from e
        except PyMongoError as e:
            raise StoreQueryError(f"{what} failed: {e}") from e

    # ======================================
    # Dataset queries
    # ======================================
    def count(self, dataset: str) -> int:
        with self._store_call("count"):
            return self._dataset(dataset).count_documents({})

    def sample_ids(self, dataset: str, size: int) -> List[Any]:
        if size > MAX_SAMPLE_IDS:
            raise ConfigurationError(
                f"sample of {size} documents exceeds the limit of {MAX_SAMPLE_IDS}; lower records_to_process"
            )
        pipeline = [{"$sample": {"size": size}}, {"$project": {"_id": 1}}]
        with self._store_call("sampling"):
            return [doc["_id"] for doc in self._dataset(dataset).aggregate(pipeline, allowDiskUse=True)]

    def count_not_empty(self, dataset: str, population: Population, fields: Sequence[str]) -> int:
        query = scoped(population, *(not_empty_filter(f) for f in fields))
        with self._metric_query(f"not-empty count of {list(fields)}"):
            return self._dataset(dataset).count_documents(query)

    def count_type_matching(
        self, dataset: str, population: Population, field: str, field_type: FieldType
    ) -> int:
        alias = BSON_TYPE_ALIASES[field_type]
        if alias is None:
            raise UnsupportedTypePredicate(f"no $type alias for declared type {field_type.value}")
        query = scoped(population, not_empty_filter(field), {field: {"$type": alias}})
        with self._metric_query(f"type matching of '{field}'"):
            return self._dataset(dataset).count_documents(query)

    def group_counts(
        self, dataset: str, population: Population, field: str, collated: bool = False
    ) -> List[ValueCount]:
        pipeline = [
            {"$match": scoped(population, not_empty_filter(field))},
            {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
            {"$sort": {"count": -1, "_id": 1}},
        ]
        options: Dict[str, Any] = {"allowDiskUse": True}
        if collated:
            options["collation"] = self.collation
        with self._metric_query(f"grouping of '{field}'"):
            return [
                ValueCount(doc["_id"], int(doc["count"]))
                for doc in self._dataset(dataset).aggregate(pipeline, **options)
            ]

    def iter_projected(self, dataset: str, population: Population, field: str) -> Iterator[Dict[str, Any]]:
        query = scoped(population, not_empty_filter(field))
        with self._metric_query(f"projection of '{field}'"):
            yield from self._dataset(dataset).find(query, {"_id": 0, field: 1})

    def iter_documents(self, dataset: str, population: Population) -> Iterator[Dict[str, Any]]:
        with self._metric_query("document scan"):
            yield from self._dataset(dataset).find(scoped(population), {"_id": 0})

    def list_indexes(self, dataset: str) -> List[Dict[str, Any]]:
        with self._metric_query("index listing"):
            return [dict(index) for index in self._dataset(dataset).list_indexes()]

    # ======================================
    # Metadata
    # ======================================
    def get_field_definitions(self, dataset: str) -> Optional[List[FieldDefinition]]:
        with self._store_call("schema lookup"):
            struct = self._metadata(self.layout.structure_collection).find_one(
                {"database": self.layout.datasets_db, "dataset": dataset}
            )
        if struct is None:
            return None
        return [FieldDefinition.from_dict(f) for f in struct.get("fields", []) if f]

    def get_dataset_record(self, dataset: str) -> Optional[Dict[str, Any]]:
        with self._store_call("dataset lookup"):
            return self._metadata(self.layout.datasets_collection).find_one({"dataset": dataset})

    def write_state(self, dataset: str, state: Dict[str, Any]) -> None:
        with self._store_call("state write"):
            self._metadata(self.layout.datasets_collection).update_many(
                {"dataset": dataset},
                {"$set": {"state": state}},
            )

    def list_datasets(self) -> List[str]:
        with self._store_call("dataset listing"):
            docs = self._metadata(self.layout.datasets_collection).find({}, {"dataset": 1})
            return [doc["dataset"] for doc in docs if doc.get("dataset")]

    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        try:
            oid = ObjectId(task_id)
        except (InvalidId, TypeError) as e:
            raise ConfigurationError(f"invalid task id {task_id!r}") from e
        with self._store_call("task lookup"):
            return self._db(self.layout.tasks_db)[self.layout.tasks_collection].find_one({"_id": oid})

    def load_registry(self, excluded_tokens: Iterable[str] = ()) -> AdministrativeRegistry:
        try:
            region_docs = list(
                self._metadata(self.layout.region_collection).find({}, {"region": 1, "database": 1})
            )
            municipality_docs = list(
                self._db(self.layout.common_db)[self.layout.municipality_collection].find(
                    {}, {"region": 1, "name": 1}
                )
            )
        except PyMongoError as e:
            raise StoreUnavailable(f"could not load administrative registry: {e}") from e

        regions = [
            RegistryEntry(name=doc["region"], identifier=doc["database"])
            for doc in region_docs
            if doc.get("region") and doc.get("database")
        ]
        region_ids = {r.name: r.identifier for r in regions}
        municipalities = [
            RegistryEntry(name=doc["name"], identifier=doc["name"], parent=region_ids.get(doc.get("region")))
            for doc in municipality_docs
            if doc.get("name")
        ]
        logger.info(f"✓ Loaded registry: {len(regions)} regions, {len(municipalities)} municipalities")
        return AdministrativeRegistry.build(regions, municipalities, excluded_tokens)
