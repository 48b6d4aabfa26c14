"""Detection of Well-Known-Text geometry hidden in string fields."""
import logging
from typing import Any, Iterable, Mapping

from shapely import wkt
from shapely.errors import ShapelyError

from geo_quality.analysis.field_stats import FieldQualityReport
from geo_quality.errors import GeometryParseError
from geo_quality.normalization.field_types import FieldDefinition, FieldType
from geo_quality.storage.base import DocumentStore, Population

logger = logging.getLogger(__name__)


def parse_wkt(value: Any):
    """
    Parse a WKT string.

    Raises:
        GeometryParseError: for non-strings, unparseable text and empty results
    """
    if not isinstance(value, str):
        raise GeometryParseError(f"not a string: {type(value).__name__}")
    try:
        geometry = wkt.loads(value)
    except (ShapelyError, ValueError) as e:
        raise GeometryParseError(str(e)) from e
    if geometry is None:
        raise GeometryParseError("no geometry")
    return geometry


def is_wkt(value: Any) -> bool:
    try:
        parse_wkt(value)
    except GeometryParseError:
        return False
    return True


class FreeTextGeometryDetector:
    """
    Finds geometry that was stored as text instead of GeoJSON.

    A dataset has geometry features when at least ``min_high_entropy_doubles``
    double fields look like coordinates (entropy above ``min_double_entropy``)
    or when any string field holds at least one parseable WKT value.
    """

    def __init__(
        self,
        store: DocumentStore,
        min_double_entropy: float = 0.8,
        min_high_entropy_doubles: int = 2,
    ):
        self.store = store
        self.min_double_entropy = min_double_entropy
        self.min_high_entropy_doubles = min_high_entropy_doubles

    def count_wkt(self, dataset: str, population: Population, field_name: str) -> int:
        """Number of not-empty values of the field that parse as WKT."""
        if not field_name.strip():
            return 0
        return sum(1 for value in self.store.iter_values(dataset, population, field_name) if is_wkt(value))

    def has_geometry_features(
        self,
        fields: Iterable[FieldDefinition],
        reports: Mapping[str, FieldQualityReport],
        wkt_counts: Mapping[str, int],
    ) -> bool:
        high_entropy_doubles = 0
        for field in fields:
            if field.field_type != FieldType.DOUBLE:
                continue
            report = reports.get(field.name)
            if report is not None and report.entropy is not None and report.entropy > self.min_double_entropy:
                high_entropy_doubles += 1

        wkt_fields = [name for name, count in wkt_counts.items() if count > 0]
        if wkt_fields:
            logger.debug(f"WKT found in {wkt_fields}")
        return high_entropy_doubles >= self.min_high_entropy_doubles or bool(wkt_fields)
