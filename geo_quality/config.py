# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load configuration from environment variables / .env file
#   and the static dictionary file. Provides typed, frozen config
#   objects that are built once and handed to the AnalysisContext.
#
# CLASSES:
# --------
# - MongoConfig (dataclass)
#     uri: str | None     (MONGO_URI, wins over host/port when set)
#     host: str           (default "localhost")
#     port: int           (default 27017)
#     user / password     (default None)
#     timeout_ms: int     (default 5000)
#
# - StoreLayout (dataclass)
#     Database and collection names used by MongoStore.
#
# - AnalysisConfig (dataclass)
#     records_to_process: int   (-1 = no cap)
#     collation_locale: str     ("ru")
#     join_key_field: str       ("oarObject")
#     publication_key: str      ("geoportalLayerId")
#     dictionaries_path, progress_path, max_workers,
#     registry_excluded_tokens
#
# - QualityThresholds (dataclass)
#     Every fixed threshold used by the detectors and the classifier.
#
# - Dictionaries (dataclass)
#     address_lexicon, region_stop_words, municipality_stop_words
#
# - AppConfig (dataclass)
#     mongo, layout, analysis, thresholds
#
# FUNCTIONS:
# ----------
# - load_config() -> AppConfig
# - load_dictionaries(path) -> Dictionaries
#
# ==============================================

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from geo_quality.errors import ConfigurationError


@dataclass(frozen=True)
class MongoConfig:
    """MongoDB connection configuration."""
    uri: Optional[str] = None
    host: str = "localhost"
    port: int = 27017
    user: Optional[str] = None
    password: Optional[str] = None
    timeout_ms: int = 5000

    def connection_uri(self) -> str:
        if self.uri:
            return self.uri
        if self.user and self.password:
            return f"mongodb://{self.user}:{self.password}@{self.host}:{self.port}/"
        return f"mongodb://{self.host}:{self.port}/"


@dataclass(frozen=True)
class StoreLayout:
    """Where datasets, their schemas, registries and tasks live."""
    metadata_db: str = "rk_metadata"
    datasets_db: str = "rk_datasets"
    structure_collection: str = "datasetsStructure"
    datasets_collection: str = "userDatasets"
    region_collection: str = "regionState"
    common_db: str = "rk_common"
    municipality_collection: str = "municipalitets"
    tasks_db: str = "rk_tasks"
    tasks_collection: str = "tasks"


@dataclass(frozen=True)
class AnalysisConfig:
    """Knobs of a single analysis run."""
    records_to_process: int = -1
    collation_locale: str = "ru"
    join_key_field: str = "oarObject"
    publication_key: str = "geoportalLayerId"
    dictionaries_path: str = "dic.json"
    progress_path: str = "info.json"
    max_workers: int = 1
    registry_excluded_tokens: Tuple[str, ...] = ("(debug)",)


@dataclass(frozen=True)
class QualityThresholds:
    """
    Fixed thresholds that turn metrics into readiness flags.

    Comparisons are strict (>) unless the attribute name says otherwise.
    """

    # --- Geometry ---
    min_geometry_validness: float = 0.5
    min_double_entropy: float = 0.8
    min_high_entropy_doubles: int = 2  # inclusive

    # --- Address ---
    min_address_fullness: float = 0.6
    min_address_tokens: int = 3
    min_lexicon_hits: int = 2  # inclusive

    # --- Hierarchy ---
    exact_collapse_entropy: float = 0.05
    region_fuzzy_entropy: float = 0.5
    municipality_fuzzy_entropy: float = 0.4
    cluster_similarity: float = 0.8
    single_value_share: float = 0.9
    registry_similarity: float = 0.9

    # --- Linking ---
    min_connected_fullness: float = 0.6  # inclusive
    min_enriched_fullness: float = 0.7


@dataclass(frozen=True)
class Dictionaries:
    """Static word lists used by the address detectors."""
    address_lexicon: Tuple[str, ...] = ()
    region_stop_words: Tuple[str, ...] = ()
    municipality_stop_words: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    mongo: MongoConfig = field(default_factory=MongoConfig)
    layout: StoreLayout = field(default_factory=StoreLayout)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    thresholds: QualityThresholds = field(default_factory=QualityThresholds)


def load_config(env_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from environment variables / .env file.

    Args:
        env_path: Optional explicit .env location. Defaults to ./.env

    Returns:
        AppConfig: Application configuration
    """
    load_dotenv(dotenv_path=env_path or Path.cwd() / ".env")

    mongo_config = MongoConfig(
        uri=os.getenv("MONGO_URI") or None,
        host=os.getenv("MONGO_HOST", "localhost"),
        port=int(os.getenv("MONGO_PORT", "27017")),
        user=os.getenv("MONGO_USER") or None,
        password=os.getenv("MONGO_PASSWORD") or None,
        timeout_ms=int(os.getenv("MONGO_TIMEOUT_MS", "5000")),
    )

    defaults = StoreLayout()
    layout = StoreLayout(
        metadata_db=os.getenv("METADATA_DB", defaults.metadata_db),
        datasets_db=os.getenv("DATASETS_DB", defaults.datasets_db),
        structure_collection=os.getenv("STRUCTURE_COLLECTION", defaults.structure_collection),
        datasets_collection=os.getenv("DATASETS_COLLECTION", defaults.datasets_collection),
        region_collection=os.getenv("REGION_COLLECTION", defaults.region_collection),
        common_db=os.getenv("COMMON_DB", defaults.common_db),
        municipality_collection=os.getenv("MUNICIPALITY_COLLECTION", defaults.municipality_collection),
        tasks_db=os.getenv("TASKS_DB", defaults.tasks_db),
        tasks_collection=os.getenv("TASKS_COLLECTION", defaults.tasks_collection),
    )

    excluded = os.getenv("REGISTRY_EXCLUDED_TOKENS")
    analysis = AnalysisConfig(
        records_to_process=int(os.getenv("RECORDS_TO_PROCESS", "-1")),
        collation_locale=os.getenv("COLLATION_LOCALE", "ru"),
        join_key_field=os.getenv("JOIN_KEY_FIELD", "oarObject"),
        publication_key=os.getenv("PUBLICATION_KEY", "geoportalLayerId"),
        dictionaries_path=os.getenv("DICTIONARIES_PATH", "dic.json"),
        progress_path=os.getenv("PROGRESS_PATH", "info.json"),
        max_workers=max(1, int(os.getenv("MAX_WORKERS", "1"))),
        registry_excluded_tokens=(
            tuple(t.strip() for t in excluded.split(",") if t.strip())
            if excluded is not None
            else AnalysisConfig.registry_excluded_tokens
        ),
    )

    return AppConfig(
        mongo=mongo_config,
        layout=layout,
        analysis=analysis,
        thresholds=QualityThresholds(),
    )


def load_dictionaries(path: str) -> Dictionaries:
    """
    Read the dictionary file.

    Expected keys: "dic" (address lexicon), "regionTypes" and
    "municipalitetTypes" (stop-words stripped from administrative names).

    Raises:
        ConfigurationError: if the file is missing or malformed
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"dictionary file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"dictionary file is not valid JSON: {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"dictionary file must hold an object: {path}")

    return Dictionaries(
        address_lexicon=tuple(raw.get("dic", [])),
        region_stop_words=tuple(raw.get("regionTypes", [])),
        municipality_stop_words=tuple(
            raw.get("municipalitetTypes", raw.get("municipalityTypes", []))
        ),
    )
