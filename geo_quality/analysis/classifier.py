# ==============================================
# PropertyClassifier
# ==============================================
#
# PURPOSE:
#   Turns the per-field reports and the detector outcomes into the
#   seven readiness flags of a dataset.
#
# CLASS: PropertyClassifier
# -------------------------
#   Stateless, takes results in and produces DatasetProperties out.
#
#   Methods:
#   --------
#   - classify(fields, reports, record, has_geometry, has_geometry_features,
#              has_address, has_address_features) -> DatasetProperties
#
#       RULE 1: CONNECTED
#         Join-key fullness missing or below 0.6 → False.
#         Otherwise has_address or has_geometry.
#
#       RULE 2: ENRICHED
#         Join-key field declared AND its fullness above 0.7.
#
#       RULE 3: PUBLISHED
#         The dataset's registry record carries the publication key.
#
# ==============================================

from typing import Any, Dict, Iterable, Mapping, Optional

from geo_quality.normalization.field_types import FieldDefinition

from .decision import DatasetProperties
from .field_stats import FieldQualityReport


class PropertyClassifier:
    """Applies the linking and publication rules on top of detector results."""

    def __init__(
        self,
        join_key_field: str = "oarObject",
        publication_key: str = "geoportalLayerId",
        min_connected_fullness: float = 0.6,
        min_enriched_fullness: float = 0.7,
    ):
        self.join_key_field = join_key_field
        self.publication_key = publication_key
        self.min_connected_fullness = min_connected_fullness
        self.min_enriched_fullness = min_enriched_fullness

    def join_key_fullness(self, reports: Mapping[str, FieldQualityReport]) -> Optional[float]:
        report = reports.get(self.join_key_field)
        return report.fullness if report is not None else None

    def is_connected(
        self, reports: Mapping[str, FieldQualityReport], has_address: bool, has_geometry: bool
    ) -> bool:
        fullness = self.join_key_fullness(reports)
        if fullness is None or fullness < self.min_connected_fullness:
            return False
        return has_address or has_geometry

    def is_enriched(
        self, fields: Iterable[FieldDefinition], reports: Mapping[str, FieldQualityReport]
    ) -> bool:
        if not any(f.name == self.join_key_field for f in fields):
            return False
        fullness = self.join_key_fullness(reports)
        return fullness is not None and fullness > self.min_enriched_fullness

    def is_published(self, record: Optional[Dict[str, Any]]) -> bool:
        return record is not None and self.publication_key in record

    def classify(
        self,
        fields: Iterable[FieldDefinition],
        reports: Mapping[str, FieldQualityReport],
        record: Optional[Dict[str, Any]],
        has_geometry: bool,
        has_geometry_features: bool,
        has_address: bool,
        has_address_features: bool,
    ) -> DatasetProperties:
        """
        Args:
            fields: Declared fields of the dataset
            reports: Per-field reports keyed by field name
            record: The dataset's user-datasets record, if any
            has_geometry / has_geometry_features / has_address /
            has_address_features: detector outcomes

        Returns:
            DatasetProperties with all seven flags set
        """
        fields = list(fields)
        return DatasetProperties(
            has_geometry=has_geometry,
            has_address=has_address,
            has_address_features=has_address_features,
            has_geometry_features=has_geometry_features,
            connected=self.is_connected(reports, has_address, has_geometry),
            enriched=self.is_enriched(fields, reports),
            published=self.is_published(record),
        )
