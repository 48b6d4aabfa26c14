# ==============================================
# NORMALIZATION: Types, Roles and Text
# ==============================================
#
# Modules:
# --------
# - field_types.py → FieldType / FieldRole enums, FieldDefinition, TypeDetector
# - text.py        → folding, name normalization, Levenshtein similarity
#
# ==============================================

from .field_types import (
    ADDRESS_ROLES,
    BSON_TYPE_ALIASES,
    FieldDefinition,
    FieldRole,
    FieldType,
    TypeDetector,
)
from .text import fold, fold_set, is_empty, normalize_name, similarity

__all__ = [
    "ADDRESS_ROLES",
    "BSON_TYPE_ALIASES",
    "FieldDefinition",
    "FieldRole",
    "FieldType",
    "TypeDetector",
    "fold",
    "fold_set",
    "is_empty",
    "normalize_name",
    "similarity",
]
