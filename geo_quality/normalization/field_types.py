# ==============================================
# Field Types & Roles
# ==============================================
#
# PURPOSE:
#   Closed vocabulary for what the schema registry declares about
#   a field: its type (FieldType) and its semantic role (FieldRole).
#
# ENUMS:
# ------
# - FieldType: GEOMETRY, STRING, DOUBLE, INT, LONG, DECIMAL, BOOL,
#              DATE, OBJECT, ARRAY, OBJECT_ID, UNKNOWN
# - FieldRole: REGION, MUNICIPALITY, STREET, HOUSE_NUMBER
#
# CLASSES:
# --------
# - FieldDefinition (dataclass)
#     name, field_type, role
#     from_dict(data) parses a schema-registry entry.
#
# - TypeDetector
#     detect(value) -> FieldType   (runtime type of a Python/BSON value)
#     matches(value, field_type) -> bool
#
# TABLES:
# -------
# - BSON_TYPE_ALIASES: FieldType -> $type alias (None = not evaluable)
#
# ==============================================

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from bson import Decimal128, Int64, ObjectId


class FieldType(Enum):
    """Declared type of a dataset field."""
    GEOMETRY = "geometry"
    STRING = "string"
    DOUBLE = "double"
    INT = "int"
    LONG = "long"
    DECIMAL = "decimal"
    BOOL = "bool"
    DATE = "date"
    OBJECT = "object"
    ARRAY = "array"
    OBJECT_ID = "objectid"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "FieldType":
        if not raw:
            return cls.UNKNOWN
        key = raw.strip().lower()
        key = _TYPE_SYNONYMS.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


_TYPE_SYNONYMS = {
    "str": "string",
    "float": "double",
    "integer": "int",
    "boolean": "bool",
    "datetime": "date",
    "dict": "object",
    "list": "array",
}


class FieldRole(Enum):
    """Semantic role of a field in the address hierarchy."""
    REGION = "Region"
    MUNICIPALITY = "Municipality"
    STREET = "Street"
    HOUSE_NUMBER = "HouseNumber"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["FieldRole"]:
        if not raw:
            return None
        return _ROLE_NAMES.get(raw.strip().lower())


_ROLE_NAMES = {
    "region": FieldRole.REGION,
    "municipality": FieldRole.MUNICIPALITY,
    "municipalitet": FieldRole.MUNICIPALITY,
    "street": FieldRole.STREET,
    "housenumber": FieldRole.HOUSE_NUMBER,
}

ADDRESS_ROLES = (
    FieldRole.REGION,
    FieldRole.MUNICIPALITY,
    FieldRole.STREET,
    FieldRole.HOUSE_NUMBER,
)


# $type aliases understood by MongoDB. GEOMETRY and UNKNOWN have none.
BSON_TYPE_ALIASES: Dict[FieldType, Optional[str]] = {
    FieldType.GEOMETRY: None,
    FieldType.STRING: "string",
    FieldType.DOUBLE: "double",
    FieldType.INT: "int",
    FieldType.LONG: "long",
    FieldType.DECIMAL: "decimal",
    FieldType.BOOL: "bool",
    FieldType.DATE: "date",
    FieldType.OBJECT: "object",
    FieldType.ARRAY: "array",
    FieldType.OBJECT_ID: "objectId",
    FieldType.UNKNOWN: None,
}


@dataclass(frozen=True)
class FieldDefinition:
    """One declared field of a dataset."""
    name: str
    field_type: FieldType = FieldType.UNKNOWN
    role: Optional[FieldRole] = None

    @property
    def is_blank(self) -> bool:
        return not self.name or not self.name.strip()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldDefinition":
        """
        Build from a schema-registry entry such as
        {"name": "region", "type": "String", "feature": "Region"}.
        """
        return cls(
            name=data.get("name") or "",
            field_type=FieldType.parse(data.get("type")),
            role=FieldRole.parse(data.get("feature")),
        )


class TypeDetector:
    """Maps runtime values onto FieldType the way BSON would store them."""

    @classmethod
    def detect(cls, value: Any) -> Optional[FieldType]:
        if value is None:
            return None

        if isinstance(value, bool):
            return FieldType.BOOL

        if isinstance(value, Int64):
            return FieldType.LONG

        if isinstance(value, int):
            # BSON stores Python ints that fit in 32 bits as int32
            if -(2 ** 31) <= value < 2 ** 31:
                return FieldType.INT
            return FieldType.LONG

        if isinstance(value, float):
            return FieldType.DOUBLE

        if isinstance(value, (Decimal, Decimal128)):
            return FieldType.DECIMAL

        if isinstance(value, str):
            return FieldType.STRING

        if isinstance(value, datetime):
            return FieldType.DATE

        if isinstance(value, ObjectId):
            return FieldType.OBJECT_ID

        if isinstance(value, (list, tuple)):
            return FieldType.ARRAY

        if isinstance(value, dict):
            return FieldType.OBJECT

        return FieldType.UNKNOWN

    @classmethod
    def matches(cls, value: Any, field_type: FieldType) -> bool:
        """
        True when the value's runtime type is the declared type.

        Arrays also match when one of their elements does, which is how
        $type behaves on array fields.
        """
        detected = cls.detect(value)
        if detected == field_type:
            return True
        if detected == FieldType.ARRAY and field_type != FieldType.ARRAY:
            return any(cls.detect(item) == field_type for item in value)
        return False
