"""Canonical administrative registry: regions and their municipalities."""
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from geo_quality.normalization.text import fold


@dataclass(frozen=True)
class RegistryEntry:
    """A canonical administrative name and its stable identifier."""
    name: str
    identifier: str
    parent: Optional[str] = None  # region identifier, for municipalities


@dataclass(frozen=True)
class AdministrativeRegistry:
    """Immutable set of match targets for hierarchy resolution."""
    regions: Tuple[RegistryEntry, ...] = ()
    municipalities: Tuple[RegistryEntry, ...] = ()

    @classmethod
    def build(
        cls,
        regions: Iterable[RegistryEntry],
        municipalities: Iterable[RegistryEntry],
        excluded_tokens: Iterable[str] = (),
    ) -> "AdministrativeRegistry":
        """
        Drop region entries whose name contains an excluded token
        (e.g. "(debug)" copies of a region) and freeze the rest.
        """
        excluded = {fold(t) for t in excluded_tokens if t}
        kept = tuple(
            r for r in regions
            if not excluded.intersection(fold(t) for t in r.name.split())
        )
        return cls(regions=kept, municipalities=tuple(municipalities))

    def children_of(self, region_identifier: Optional[str]) -> Tuple[RegistryEntry, ...]:
        if not region_identifier:
            return ()
        return tuple(m for m in self.municipalities if m.parent == region_identifier)
