# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests. Every test runs against MemoryStore;
# nothing here needs a MongoDB server.
#
# FIXTURES:
# ---------
# - dictionaries       → small lexicon and stop-word lists
# - regions / municipalities → registry entries (with a debug copy)
# - make_store(...)    → MemoryStore factory with the registry loaded
# - make_context(...)  → AnalysisContext factory
# - make_analyzer(...) → DatasetAnalyzer factory
#
# ==============================================

import pytest

from geo_quality.address.registry import RegistryEntry
from geo_quality.analyzer import DatasetAnalyzer
from geo_quality.config import AnalysisConfig, AppConfig, Dictionaries
from geo_quality.context import build_context
from geo_quality.persistence.progress import ProgressReporter
from geo_quality.storage.memory_store import MemoryStore


@pytest.fixture
def dictionaries() -> Dictionaries:
    return Dictionaries(
        address_lexicon=("street", "avenue", "house", "building", "apt", "ulitsa"),
        region_stop_words=("republic", "of", "debug", "oblast"),
        municipality_stop_words=("district", "city", "municipal"),
    )


@pytest.fixture
def regions():
    return [
        RegistryEntry("Republic of Karelia", "karelia_db"),
        RegistryEntry("Republic of Karelia (debug)", "karelia_debug_db"),
        RegistryEntry("Murmansk Oblast", "murmansk_db"),
    ]


@pytest.fixture
def municipalities():
    return [
        RegistryEntry("Kondopoga District", "kondopoga", parent="karelia_db"),
        RegistryEntry("Petrozavodsk City", "petrozavodsk", parent="karelia_db"),
        RegistryEntry("Kandalaksha District", "kandalaksha", parent="murmansk_db"),
    ]


@pytest.fixture
def make_store(regions, municipalities):
    def _make(datasets, schemas=None, **kwargs):
        kwargs.setdefault("regions", regions)
        kwargs.setdefault("municipalities", municipalities)
        kwargs.setdefault("seed", 7)
        return MemoryStore(datasets, schemas=schemas, **kwargs)
    return _make


@pytest.fixture
def make_context(dictionaries):
    def _make(store, config=None):
        return build_context(config or AppConfig(), store, dictionaries)
    return _make


@pytest.fixture
def make_analyzer(make_context):
    def _make(store, config=None, reporter=None):
        context = make_context(store, config)
        return DatasetAnalyzer(store, context, reporter or ProgressReporter(path=None))
    return _make


@pytest.fixture
def threaded_config() -> AppConfig:
    return AppConfig(analysis=AnalysisConfig(max_workers=4))
