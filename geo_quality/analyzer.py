# ==============================================
# DatasetAnalyzer — Orchestrator
# ==============================================
#
# PURPOSE:
#   Runs one dataset end to end and writes its quality state back
#   to the store. Users interact with this class only.
#
# HOW ONE RUN FLOWS:
#
#   schema lookup ──► Sampler ──► Population (fixed N)
#                                     │
#           ┌─────────────────────────┼──────────────────────────┐
#           ▼                         ▼                          ▼
#   FieldStatisticsComputer   GeometryQualityValidator   FreeTextGeometryDetector
#   (every field)             (geometry fields)          (string fields)
#           │                         │                          │
#           └─────────────┬───────────┴──────────────────────────┘
#                         ▼
#   HierarchyResolver, AddressCompletenessChecker, AddressFeatureDetector
#                         ▼
#                 PropertyClassifier
#                         ▼
#          DatasetQualityState ──► store.write_state (full replace)
#
# CLASS: DatasetAnalyzer
# ----------------------
#   Constructor:
#   ------------
#   - __init__(store, context, reporter=None)
#
#   Public Methods:
#   ---------------
#   - analyze_dataset(dataset, records_to_process=None) -> DatasetQualityState
#       Raises ConfigurationError when no schema is registered.
#
#   - analyze_task(task_id) -> DatasetQualityState | None
#       Reads {dataset, recordsToProcess} from the tasks collection.
#       Errors go to the progress reporter.
#
#   - analyze_all(records_to_process=None) -> dict[str, DatasetQualityState]
#       Every registered dataset in turn. A ConfigurationError,
#       MetricComputationError or StoreQueryError skips the dataset;
#       StoreUnavailable stops the batch.
#
#   Per-field work runs on a ThreadPoolExecutor when
#   config.analysis.max_workers > 1. Every task shares the Population.
#
# ==============================================

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from geo_quality.address.completeness import AddressCompletenessChecker
from geo_quality.address.features import AddressFeatureDetector
from geo_quality.address.hierarchy import HierarchyResolver
from geo_quality.analysis.classifier import PropertyClassifier
from geo_quality.analysis.decision import DatasetQualityState
from geo_quality.analysis.field_statistics import FieldStatisticsComputer, list_indexes_safely
from geo_quality.analysis.field_stats import FieldQualityReport
from geo_quality.analysis.sampler import Sampler
from geo_quality.context import AnalysisContext
from geo_quality.errors import ConfigurationError, MetricComputationError, StoreQueryError
from geo_quality.normalization.field_types import FieldDefinition, FieldType
from geo_quality.persistence.progress import ProgressReporter
from geo_quality.storage.base import DocumentStore, Population
from geo_quality.validation.geometry import GeometryQualityValidator
from geo_quality.validation.wkt import FreeTextGeometryDetector

logger = logging.getLogger(__name__)


@dataclass
class FieldOutcome:
    """Everything the per-field stage learned about one field."""
    report: FieldQualityReport
    wkt_count: int = 0


class DatasetAnalyzer:
    """Main entry point: quality analysis of registered datasets."""

    def __init__(
        self,
        store: DocumentStore,
        context: AnalysisContext,
        reporter: Optional[ProgressReporter] = None,
    ):
        """
        Args:
            store: Backing document store
            context: Immutable per-process inputs (see build_context)
            reporter: Progress sink; in-memory only when None
        """
        self.store = store
        self.context = context
        self.reporter = reporter or ProgressReporter(path=None)

        thresholds = context.thresholds
        dictionaries = context.dictionaries
        analysis = context.config.analysis

        self._sampler = Sampler(store)
        self._statistics = FieldStatisticsComputer(store)
        self._geometry = GeometryQualityValidator(
            store, context.geojson_validator, thresholds.min_geometry_validness
        )
        self._free_text = FreeTextGeometryDetector(
            store, thresholds.min_double_entropy, thresholds.min_high_entropy_doubles
        )
        self._address_features = AddressFeatureDetector(
            store, dictionaries.address_lexicon,
            thresholds.min_address_tokens, thresholds.min_lexicon_hits,
        )
        self._completeness = AddressCompletenessChecker(store, thresholds.min_address_fullness)
        self._hierarchy = HierarchyResolver(
            store,
            context.registry,
            region_stop_words=dictionaries.region_stop_words,
            municipality_stop_words=dictionaries.municipality_stop_words,
            exact_entropy=thresholds.exact_collapse_entropy,
            region_entropy=thresholds.region_fuzzy_entropy,
            municipality_entropy=thresholds.municipality_fuzzy_entropy,
            cluster_similarity=thresholds.cluster_similarity,
            single_value_share=thresholds.single_value_share,
            registry_similarity=thresholds.registry_similarity,
        )
        self._classifier = PropertyClassifier(
            join_key_field=analysis.join_key_field,
            publication_key=analysis.publication_key,
            min_connected_fullness=thresholds.min_connected_fullness,
            min_enriched_fullness=thresholds.min_enriched_fullness,
        )

    # ======================================
    # Public API
    # ======================================
    def analyze_dataset(
        self, dataset: str, records_to_process: Optional[int] = None
    ) -> DatasetQualityState:
        """
        Analyse one dataset and replace its stored state.

        Args:
            dataset: Dataset (collection) name
            records_to_process: Sampling cap; falls back to the configured one

        Returns:
            The state that was written

        Raises:
            ConfigurationError: no schema is registered for the dataset
            StoreQueryError: the store rejected a query outside the metrics
            StoreUnavailable: the store cannot be reached
        """
        logger.info(f"Analyzing dataset '{dataset}'")
        started = time.perf_counter()

        fields = self.store.get_field_definitions(dataset)
        if fields is None:
            raise ConfigurationError(f"no field schema registered for dataset '{dataset}'")

        cap = records_to_process if records_to_process is not None else self.context.config.analysis.records_to_process
        population = self._sampler.draw(dataset, cap)
        indexes = list_indexes_safely(self.store, dataset)

        outcomes = self._analyze_fields(dataset, population, fields, indexes)
        reports = {name: outcome.report for name, outcome in outcomes.items()}
        wkt_counts = {name: outcome.wkt_count for name, outcome in outcomes.items()}

        self._hierarchy.resolve(dataset, population, fields, reports)

        geometry_reports = [
            reports[f.name] for f in fields
            if f.field_type == FieldType.GEOMETRY and f.name in reports
        ]
        has_geometry = self._geometry.has_geometry(geometry_reports)
        has_geometry_features = self._free_text.has_geometry_features(fields, reports, wkt_counts)
        has_address = self._completeness.check(dataset, population, fields).has_address
        has_address_features = self._address_features.detect(dataset, population)

        properties = self._classifier.classify(
            fields,
            reports,
            self.store.get_dataset_record(dataset),
            has_geometry=has_geometry,
            has_geometry_features=has_geometry_features,
            has_address=has_address,
            has_address_features=has_address_features,
        )
        state = DatasetQualityState(
            fields=reports,
            properties=properties,
            sample_size=population.size,
            total=population.total,
        )
        self.store.write_state(dataset, state.to_dict())

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"✓ '{dataset}' analyzed in {elapsed_ms:.1f} ms ({population.size} of {population.total} documents)")
        return state

    def analyze_task(self, task_id: str) -> Optional[DatasetQualityState]:
        """
        Analyse the dataset named by a task document.

        Returns:
            The written state, or None when the task could not be run.
            Failures are recorded in the progress reporter.
        """
        try:
            task = self.store.get_task(task_id)
            if task is None:
                raise ConfigurationError(f"task {task_id} not found")
            dataset = task.get("dataset")
            if not dataset:
                raise ConfigurationError(f"task {task_id} names no dataset")
            records = task.get("recordsToProcess")
            logger.info(f"Analyzing task {task_id}")
            state = self.analyze_dataset(dataset, int(records) if records is not None else None)
        except (ConfigurationError, MetricComputationError, StoreQueryError) as e:
            self.reporter.write_error(str(e))
            return None

        self.reporter.write_complete(1)
        return state

    def analyze_all(self, records_to_process: Optional[int] = None) -> Dict[str, DatasetQualityState]:
        """
        Analyse every registered dataset, one after another.

        Returns:
            States of the datasets that were analysed, by name
        """
        datasets = self.store.list_datasets()
        total = len(datasets)
        results: Dict[str, DatasetQualityState] = {}
        for k, dataset in enumerate(datasets, start=1):
            try:
                results[dataset] = self.analyze_dataset(dataset, records_to_process)
            except (ConfigurationError, MetricComputationError, StoreQueryError) as e:
                self.reporter.write_error(f"{dataset}: {e}")
            self.reporter.write_progress(k / total, len(results))
            logger.info(f"{k} / {total}")
        self.reporter.write_complete(len(results))
        return results

    # ======================================
    # Per-field stage
    # ======================================
    def _analyze_field(
        self,
        dataset: str,
        population: Population,
        field: FieldDefinition,
        indexes: List[Dict[str, Any]],
    ) -> FieldOutcome:
        report = self._statistics.compute(dataset, population, field, indexes)
        outcome = FieldOutcome(report=report)
        try:
            if field.field_type == FieldType.GEOMETRY:
                report.validness = self._geometry.validness(dataset, population, field.name)
            elif field.field_type == FieldType.STRING:
                outcome.wkt_count = self._free_text.count_wkt(dataset, population, field.name)
        except MetricComputationError as e:
            logger.warning(f"⚠ Geometry check of '{field.name}' left undefined: {e}")
        return outcome

    def _analyze_fields(
        self,
        dataset: str,
        population: Population,
        fields: List[FieldDefinition],
        indexes: List[Dict[str, Any]],
    ) -> Dict[str, FieldOutcome]:
        max_workers = self.context.config.analysis.max_workers
        if max_workers <= 1 or len(fields) <= 1:
            return {
                f.name: self._analyze_field(dataset, population, f, indexes)
                for f in fields
            }

        with ThreadPoolExecutor(max_workers=min(max_workers, len(fields))) as ex:
            futures = [
                (f.name, ex.submit(self._analyze_field, dataset, population, f, indexes))
                for f in fields
            ]
            # Declared order, not completion order
            return {name: future.result() for name, future in futures}
