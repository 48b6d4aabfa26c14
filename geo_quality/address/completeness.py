"""Fullness check of the declared Region / Municipality / Street / HouseNumber hierarchy."""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from geo_quality.errors import MetricComputationError
from geo_quality.normalization.field_types import ADDRESS_ROLES, FieldDefinition, FieldRole
from geo_quality.storage.base import DocumentStore, Population

logger = logging.getLogger(__name__)


def role_fields(fields: Iterable[FieldDefinition]) -> Dict[FieldRole, str]:
    """First declared field name per role."""
    mapping: Dict[FieldRole, str] = {}
    for field in fields:
        if field.role is not None and field.role not in mapping:
            mapping[field.role] = field.name
    return mapping


@dataclass
class AddressCompleteness:
    municipality_fullness: Optional[float] = None
    street_house_fullness: Optional[float] = None
    has_address: bool = False


class AddressCompletenessChecker:
    """
    A dataset has an address when all four roles are declared and both the
    municipality and the street+house-number pair are filled in more than
    ``min_fullness`` of the population.
    """

    def __init__(self, store: DocumentStore, min_fullness: float = 0.6):
        self.store = store
        self.min_fullness = min_fullness

    def check(
        self, dataset: str, population: Population, fields: Iterable[FieldDefinition]
    ) -> AddressCompleteness:
        roles = role_fields(fields)
        result = AddressCompleteness()
        if any(role not in roles for role in ADDRESS_ROLES) or population.size == 0:
            return result

        try:
            municipality = self.store.count_not_empty(
                dataset, population, [roles[FieldRole.MUNICIPALITY]]
            )
            street_house = self.store.count_not_empty(
                dataset, population, [roles[FieldRole.STREET], roles[FieldRole.HOUSE_NUMBER]]
            )
        except MetricComputationError as e:
            logger.warning(f"⚠ Address completeness of '{dataset}' left undefined: {e}")
            return result

        result.municipality_fullness = municipality / population.size
        result.street_house_fullness = street_house / population.size
        result.has_address = (
            result.municipality_fullness > self.min_fullness
            and result.street_house_fullness > self.min_fullness
        )
        return result
