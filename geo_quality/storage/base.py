# ==============================================
# DocumentStore (interface)
# ==============================================
#
# PURPOSE:
#   Everything the analysis needs from the backing store, expressed
#   as a handful of query primitives. The analysis never builds
#   queries itself; it asks the store for counts, groups and values
#   scoped to a Population.
#
# CLASSES:
# --------
# - Population (dataclass)
#     The fixed set of documents one analysis run looks at.
#     size: int        → N, the denominator of every ratio
#     total: int       → true collection size
#     ids: tuple|None  → sampled _ids, None when no sampling happened
#
# - ValueCount (NamedTuple)
#     value, count     → one group of a group-by
#
# - DocumentStore (ABC)
#     Dataset queries (all restricted to a Population):
#       count, sample_ids, count_not_empty, count_type_matching,
#       group_counts, iter_projected, iter_values, iter_documents,
#       list_indexes
#     Metadata:
#       get_field_definitions, get_dataset_record, write_state,
#       list_datasets, get_task, load_registry
#
# CONVENTIONS:
# ------------
#   "Not empty" always means: present, not null, not the string "null".
#   Per-metric query failures are raised as MetricComputationError,
#   connectivity failures as StoreUnavailable.
#
# ==============================================

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from geo_quality.address.registry import AdministrativeRegistry
from geo_quality.normalization.field_types import FieldDefinition, FieldType


@dataclass(frozen=True)
class Population:
    """Documents in scope for one analysis run."""
    size: int
    total: int
    ids: Optional[Tuple[Any, ...]] = None

    @property
    def is_sampled(self) -> bool:
        return self.ids is not None


class ValueCount(NamedTuple):
    value: Any
    count: int


class DocumentStore(ABC):
    """Query and metadata capability consumed by the analysis."""

    # ======================================
    # Dataset queries
    # ======================================
    @abstractmethod
    def count(self, dataset: str) -> int:
        """Total number of documents in the dataset."""

    @abstractmethod
    def sample_ids(self, dataset: str, size: int) -> List[Any]:
        """Draw ``size`` random document ids."""

    @abstractmethod
    def count_not_empty(self, dataset: str, population: Population, fields: Sequence[str]) -> int:
        """Documents where every one of ``fields`` is not empty."""

    @abstractmethod
    def count_type_matching(
        self, dataset: str, population: Population, field: str, field_type: FieldType
    ) -> int:
        """
        Non-empty values of ``field`` whose stored type is ``field_type``.

        Raises:
            UnsupportedTypePredicate: when the type cannot be evaluated
        """

    @abstractmethod
    def group_counts(
        self, dataset: str, population: Population, field: str, collated: bool = False
    ) -> List[ValueCount]:
        """
        Group non-empty values of ``field``, most frequent first.

        With ``collated`` string values are grouped case- and
        diacritic-insensitively.
        """

    @abstractmethod
    def iter_projected(self, dataset: str, population: Population, field: str) -> Iterator[Dict[str, Any]]:
        """Documents where ``field`` is not empty, projected to that (dotted) path."""

    @abstractmethod
    def iter_documents(self, dataset: str, population: Population) -> Iterator[Dict[str, Any]]:
        """Whole documents without their _id."""

    @abstractmethod
    def list_indexes(self, dataset: str) -> List[Dict[str, Any]]:
        """Index descriptions, each with a "key" and optionally "weights"."""

    def iter_values(self, dataset: str, population: Population, field: str) -> Iterator[Any]:
        """Non-empty values found at the (dotted) path of ``field``."""
        for doc in self.iter_projected(dataset, population, field):
            value = get_path(doc, field)
            if value is not None:
                yield value

    # ======================================
    # Metadata
    # ======================================
    @abstractmethod
    def get_field_definitions(self, dataset: str) -> Optional[List[FieldDefinition]]:
        """Declared fields of the dataset, or None when no schema is registered."""

    @abstractmethod
    def get_dataset_record(self, dataset: str) -> Optional[Dict[str, Any]]:
        """The dataset's entry in the user-datasets registry."""

    @abstractmethod
    def write_state(self, dataset: str, state: Dict[str, Any]) -> None:
        """Replace the stored quality state of the dataset."""

    @abstractmethod
    def list_datasets(self) -> List[str]:
        """Every dataset registered for analysis."""

    @abstractmethod
    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Analysis task document, or None."""

    @abstractmethod
    def load_registry(self, excluded_tokens: Iterable[str] = ()) -> AdministrativeRegistry:
        """Region and municipality registries."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def get_path(doc: Any, path: str) -> Any:
    """
    Strict dotted-path lookup: None unless every intermediate is a dict.

    Examples:
        get_path({"a": {"b": 1}}, "a.b") -> 1
        get_path({"a": 5}, "a.b") -> None
    """
    current = doc
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current
