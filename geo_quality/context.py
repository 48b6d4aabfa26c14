"""Process-wide, read-only inputs of every analysis run."""
import logging
from dataclasses import dataclass
from typing import Optional

from jsonschema import Draft4Validator

from geo_quality.address.registry import AdministrativeRegistry
from geo_quality.config import AppConfig, Dictionaries, QualityThresholds, load_dictionaries
from geo_quality.storage.base import DocumentStore
from geo_quality.validation.geometry import load_geojson_validator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisContext:
    """
    Built once at start-up and passed explicitly to the analyzer.

    Nothing in here changes during a run, so the same context can serve
    several datasets and several worker threads.
    """
    config: AppConfig
    thresholds: QualityThresholds
    dictionaries: Dictionaries
    registry: AdministrativeRegistry
    geojson_validator: Draft4Validator


def build_context(
    config: AppConfig,
    store: DocumentStore,
    dictionaries: Optional[Dictionaries] = None,
) -> AnalysisContext:
    """
    Load the dictionaries, the administrative registry and the GeoJSON
    validator.

    Args:
        config: Application configuration
        store: Store the registry is read from
        dictionaries: Preloaded dictionaries; read from
            config.analysis.dictionaries_path when None

    Raises:
        ConfigurationError: if the dictionary file cannot be read
    """
    if dictionaries is None:
        dictionaries = load_dictionaries(config.analysis.dictionaries_path)
    registry = store.load_registry(config.analysis.registry_excluded_tokens)
    logger.info(
        f"✓ Context ready: {len(dictionaries.address_lexicon)} lexicon words, "
        f"{len(registry.regions)} regions, {len(registry.municipalities)} municipalities"
    )
    return AnalysisContext(
        config=config,
        thresholds=config.thresholds,
        dictionaries=dictionaries,
        registry=registry,
        geojson_validator=load_geojson_validator(),
    )
