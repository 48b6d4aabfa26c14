# ==============================================
# MemoryStore
# ==============================================
#
# PURPOSE:
#   DocumentStore over plain Python lists of dicts. Mirrors the
#   MongoStore query semantics (not-empty, dotted paths, projection,
#   grouping, collated grouping) so that datasets exported to JSON can
#   be analysed without a server, and so the analysis can be tested.
#
# CLASS: MemoryStore
# ------------------
#   Constructor:
#   ------------
#   - __init__(datasets, schemas=None, records=None, indexes=None,
#              tasks=None, regions=(), municipalities=(), seed=None)
#       datasets: {dataset: [document, ...]}. Documents without an _id
#                 get their list position as _id.
#       schemas:  {dataset: [FieldDefinition | schema dict, ...]}
#       records:  {dataset: user-datasets record}
#
#   Attributes:
#   -----------
#   - states: dict[str, dict]  → last state written per dataset
#
# ==============================================

import random
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from geo_quality.address.registry import AdministrativeRegistry, RegistryEntry
from geo_quality.errors import UnsupportedTypePredicate
from geo_quality.normalization.field_types import (
    BSON_TYPE_ALIASES,
    FieldDefinition,
    FieldType,
    TypeDetector,
)
from geo_quality.normalization.text import fold, is_empty
from geo_quality.storage.base import DocumentStore, Population, ValueCount, get_path


def freeze(value: Any) -> Any:
    """Hashable stand-in for a value, so dicts and lists can be grouped."""
    if isinstance(value, dict):
        return ("__dict__", tuple(sorted((k, freeze(v)) for k, v in value.items())))
    if isinstance(value, (list, tuple)):
        return ("__list__", tuple(freeze(v) for v in value))
    try:
        hash(value)
    except TypeError:
        return ("__repr__", repr(value))
    return value


def project_path(doc: Dict[str, Any], path: str) -> Dict[str, Any]:
    """
    Inclusion projection of one dotted path, shaped like a MongoDB result.

    Examples:
        project_path({"a": {"b": 1, "c": 2}, "d": 3}, "a.b") -> {"a": {"b": 1}}
    """
    parts = path.split(".")
    head = parts[0]
    if head not in doc:
        return {}
    if len(parts) == 1:
        return {head: doc[head]}
    child = doc[head]
    if not isinstance(child, dict):
        return {}
    nested = project_path(child, ".".join(parts[1:]))
    return {head: nested}


class MemoryStore(DocumentStore):

    def __init__(
        self,
        datasets: Dict[str, List[Dict[str, Any]]],
        schemas: Optional[Dict[str, List[Any]]] = None,
        records: Optional[Dict[str, Dict[str, Any]]] = None,
        indexes: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        tasks: Optional[Dict[str, Dict[str, Any]]] = None,
        regions: Iterable[RegistryEntry] = (),
        municipalities: Iterable[RegistryEntry] = (),
        seed: Optional[int] = None,
    ):
        self._datasets: Dict[str, List[Dict[str, Any]]] = {}
        for name, docs in datasets.items():
            self._datasets[name] = [
                doc if "_id" in doc else {"_id": i, **doc} for i, doc in enumerate(docs)
            ]
        self._schemas = schemas or {}
        self._records = records if records is not None else {name: {"dataset": name} for name in datasets}
        self._indexes = indexes or {}
        self._tasks = tasks or {}
        self._regions = tuple(regions)
        self._municipalities = tuple(municipalities)
        self._random = random.Random(seed)
        self.states: Dict[str, Dict[str, Any]] = {}

    # ======================================
    # Helpers
    # ======================================
    def _docs(self, dataset: str) -> List[Dict[str, Any]]:
        return self._datasets.get(dataset, [])

    def _scoped(self, dataset: str, population: Population) -> Iterator[Dict[str, Any]]:
        docs = self._docs(dataset)
        if population.ids is None:
            yield from docs
            return
        wanted = set(population.ids)
        for doc in docs:
            if doc["_id"] in wanted:
                yield doc

    def _not_empty(self, dataset: str, population: Population, field: str) -> Iterator[Dict[str, Any]]:
        for doc in self._scoped(dataset, population):
            if not is_empty(get_path(doc, field)):
                yield doc

    # ======================================
    # Dataset queries
    # ======================================
    def count(self, dataset: str) -> int:
        return len(self._docs(dataset))

    def sample_ids(self, dataset: str, size: int) -> List[Any]:
        ids = [doc["_id"] for doc in self._docs(dataset)]
        return self._random.sample(ids, min(size, len(ids)))

    def count_not_empty(self, dataset: str, population: Population, fields: Sequence[str]) -> int:
        return sum(
            1 for doc in self._scoped(dataset, population)
            if all(not is_empty(get_path(doc, f)) for f in fields)
        )

    def count_type_matching(
        self, dataset: str, population: Population, field: str, field_type: FieldType
    ) -> int:
        if BSON_TYPE_ALIASES[field_type] is None:
            raise UnsupportedTypePredicate(f"no type predicate for declared type {field_type.value}")
        return sum(
            1 for doc in self._not_empty(dataset, population, field)
            if TypeDetector.matches(get_path(doc, field), field_type)
        )

    def group_counts(
        self, dataset: str, population: Population, field: str, collated: bool = False
    ) -> List[ValueCount]:
        counts: Dict[Any, int] = {}
        representatives: Dict[Any, Any] = {}
        for doc in self._not_empty(dataset, population, field):
            value = get_path(doc, field)
            key = ("__folded__", fold(value)) if collated and isinstance(value, str) else freeze(value)
            if key not in counts:
                counts[key] = 0
                representatives[key] = value
            counts[key] += 1
        ordered = sorted(counts, key=lambda k: counts[k], reverse=True)
        return [ValueCount(representatives[k], counts[k]) for k in ordered]

    def iter_projected(self, dataset: str, population: Population, field: str) -> Iterator[Dict[str, Any]]:
        for doc in self._not_empty(dataset, population, field):
            yield project_path(doc, field)

    def iter_documents(self, dataset: str, population: Population) -> Iterator[Dict[str, Any]]:
        for doc in self._scoped(dataset, population):
            yield {k: v for k, v in doc.items() if k != "_id"}

    def list_indexes(self, dataset: str) -> List[Dict[str, Any]]:
        return [{"name": "_id_", "key": {"_id": 1}}] + list(self._indexes.get(dataset, []))

    # ======================================
    # Metadata
    # ======================================
    def get_field_definitions(self, dataset: str) -> Optional[List[FieldDefinition]]:
        fields = self._schemas.get(dataset)
        if fields is None:
            return None
        return [f if isinstance(f, FieldDefinition) else FieldDefinition.from_dict(f) for f in fields if f]

    def get_dataset_record(self, dataset: str) -> Optional[Dict[str, Any]]:
        return self._records.get(dataset)

    def write_state(self, dataset: str, state: Dict[str, Any]) -> None:
        self.states[dataset] = state

    def list_datasets(self) -> List[str]:
        return [name for name, record in self._records.items() if record.get("dataset")]

    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        return self._tasks.get(task_id)

    def load_registry(self, excluded_tokens: Iterable[str] = ()) -> AdministrativeRegistry:
        return AdministrativeRegistry.build(self._regions, self._municipalities, excluded_tokens)
