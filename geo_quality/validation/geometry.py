# ==============================================
# GeometryQualityValidator
# ==============================================
#
# PURPOSE:
#   Structural GeoJSON conformance of geometry-typed fields. No
#   geometric correctness checks (self-intersection, CRS, topology).
#
# FUNCTIONS:
# ----------
# - load_geojson_validator() -> Draft4Validator
#     Builds the validator from the schema documents shipped in
#     schemas/geojson (geojson, geometry, crs, bbox). Built once per
#     process; read-only afterwards and safe to share across threads.
#
# - navigate(document, field_name) -> Any
#     Follows the dotted field name into nested documents. A segment
#     that is missing or not a document is skipped and the deepest
#     value reached so far is kept.
#
# CLASS: GeometryQualityValidator
# -------------------------------
#   - validness(dataset, population, field_name) -> float
#       valid / processed over not-empty values, 0.0 when none.
#   - has_geometry(reports) -> bool
#       Some geometry field has validness strictly above the threshold.
#
# ==============================================

import json
import logging
import time
from importlib import resources
from typing import Any, Dict, Iterable

from jsonschema import Draft4Validator
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT4

from geo_quality.analysis.field_stats import FieldQualityReport
from geo_quality.storage.base import DocumentStore, Population

logger = logging.getLogger(__name__)

SCHEMA_PACKAGE = "geo_quality.validation"
SCHEMA_FILES = ("geojson.json", "geometry.json", "crs.json", "bbox.json")
ROOT_SCHEMA = "geojson.json"


def _read_schema(name: str) -> Dict[str, Any]:
    path = resources.files(SCHEMA_PACKAGE).joinpath("schemas").joinpath("geojson").joinpath(name)
    return json.loads(path.read_text(encoding="utf-8"))


def load_geojson_validator() -> Draft4Validator:
    """Preload every GeoJSON schema document and return the root validator."""
    registry = Registry()
    root = None
    for name in SCHEMA_FILES:
        contents = _read_schema(name)
        uri = contents["id"].split("#")[0]
        registry = registry.with_resource(
            uri=uri,
            resource=Resource.from_contents(contents, default_specification=DRAFT4),
        )
        if name == ROOT_SCHEMA:
            root = contents
    return Draft4Validator(root, registry=registry.crawl())


def navigate(document: Any, field_name: str) -> Any:
    """
    Walk a dotted field name through nested documents, leniently.

    Examples:
        navigate({"a": {"b": {"type": "Point"}}}, "a.b") -> {"type": "Point"}
        navigate({"a": {"b": "POINT (1 2)"}}, "a.b")    -> {"b": "POINT (1 2)"}
    """
    current = document
    for part in field_name.split("."):
        if isinstance(current, dict) and isinstance(current.get(part), dict):
            current = current[part]
    return current


class GeometryQualityValidator:
    """Share of a geometry field's values that are structurally valid GeoJSON."""

    def __init__(self, store: DocumentStore, validator: Draft4Validator, min_validness: float = 0.5):
        self.store = store
        self.validator = validator
        self.min_validness = min_validness

    def is_valid(self, value: Any) -> bool:
        return self.validator.is_valid(value)

    def validness(self, dataset: str, population: Population, field_name: str) -> float:
        """
        Validate every not-empty value of the field.

        Returns:
            valid / processed, or 0.0 when nothing was processed
        """
        processed = 0
        valid = 0
        started = time.perf_counter()
        for document in self.store.iter_projected(dataset, population, field_name):
            if self.is_valid(navigate(document, field_name)):
                valid += 1
            processed += 1
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(f"Geometry validation of '{field_name}': {processed} values in {elapsed_ms:.1f} ms")
        return valid / processed if processed > 0 else 0.0

    def has_geometry(self, reports: Iterable[FieldQualityReport]) -> bool:
        return any(
            r.validness is not None and r.validness > self.min_validness
            for r in reports
        )
