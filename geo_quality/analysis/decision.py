# ==============================================
# Decision (Data Classes)
# ==============================================
#
# PURPOSE:
#   Data classes that represent the OUTPUT of one analysis run:
#   the readiness flags and the full state document.
#
# CLASSES:
# --------
# - DatasetProperties (dataclass)
#     has_geometry, has_address, has_address_features,
#     has_geometry_features, connected, enriched, published
#
# - DatasetQualityState (dataclass)
#     fields: dict[str, FieldQualityReport]
#     properties: DatasetProperties
#     sample_size, total
#
#     to_dict() -> {"fieldsQuality": {...}, "properties": {...}, ...}
#     The stored state is always replaced as a whole, never merged.
#
# ==============================================

from dataclasses import asdict, dataclass, field
from typing import Any, Dict

from .field_stats import FieldQualityReport


@dataclass
class DatasetProperties:
    """
    Readiness flags consumed by the downstream workflow.

    - address parsing needed:     not has_address and has_address_features
    - geometry transform needed:  not has_geometry and has_geometry_features
    - linking needed:             not connected and (has_geometry or has_address)
    """
    has_geometry: bool = False
    has_address: bool = False
    has_address_features: bool = False
    has_geometry_features: bool = False
    connected: bool = False
    enriched: bool = False
    published: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


@dataclass
class DatasetQualityState:
    """Everything one analysis run learned about a dataset."""
    fields: Dict[str, FieldQualityReport] = field(default_factory=dict)
    properties: DatasetProperties = field(default_factory=DatasetProperties)
    sample_size: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fieldsQuality": {name: report.to_dict() for name, report in self.fields.items()},
            "properties": self.properties.to_dict(),
            "sampleSize": self.sample_size,
            "total": self.total,
        }
