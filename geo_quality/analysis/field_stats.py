# ==============================================
# FieldQualityReport
# ==============================================
#
# PURPOSE:
#   Data class that holds every quality metric computed for one
#   declared field. This is the per-field half of the state document
#   written back to the datasets registry.
#
# CLASS: FieldQualityReport (dataclass)
# -------------------------------------
#   Attributes:
#   -----------
#   - name: str                      → Declared field name (may be dotted)
#   - fullness: float | None         → not-empty / N
#   - type_matching: float | None    → matching declared type / not-empty
#   - entropy: float | None          → normalized Shannon entropy of values
#   - indexed: bool                  → Some index references the field
#   - validness: float | None        → Geometry fields only
#   - one_value: bool | None         → Region / Municipality fields only
#   - canonical_id: str | None       → Registry identifier, when resolved
#   - value_groups: list[ValueCount] → Top value group of Region / Municipality
#                                      fields (not serialized)
#
#   Every numeric metric is None when its denominator is zero or its
#   computation failed. None is never written as NaN.
#
#   Methods:
#   --------
#   - to_dict() -> dict
#       Serialize with the registry's key names (typeMatching, oneValue,
#       canonicalId). Keys of metrics that do not apply are omitted.
#
# ==============================================

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from geo_quality.storage.base import ValueCount


def ratio(numerator: Optional[int], denominator: Optional[int]) -> Optional[float]:
    """numerator / denominator, or None when either side is missing or zero."""
    if numerator is None or not denominator:
        return None
    return numerator / denominator


@dataclass
class FieldQualityReport:
    """Quality metrics of a single declared field."""

    # --- Core identity ---
    name: str

    # --- Ratio metrics ---
    fullness: Optional[float] = None
    type_matching: Optional[float] = None
    entropy: Optional[float] = None
    indexed: bool = False

    # --- Geometry fields ---
    validness: Optional[float] = None

    # --- Region / Municipality fields ---
    one_value: Optional[bool] = None
    canonical_id: Optional[str] = None

    # --- Working data (not persisted) ---
    value_groups: List[ValueCount] = field(default_factory=list, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the stored representation.

        Returns:
            A dictionary suitable for a MongoDB document.
        """
        result: Dict[str, Any] = {
            "fullness": self.fullness,
            "typeMatching": self.type_matching,
            "entropy": self.entropy,
            "indexed": self.indexed,
        }
        if self.validness is not None:
            result["validness"] = self.validness
        if self.one_value is not None:
            result["oneValue"] = self.one_value
        if self.canonical_id is not None:
            result["canonicalId"] = self.canonical_id
        return result
