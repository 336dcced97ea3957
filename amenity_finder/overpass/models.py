"""
Overpass data models

Data classes for normalized points, filter sets and cache entries
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple


class ElementKind(str, Enum):
    """OSM element type as reported by Overpass"""
    NODE = "node"
    WAY = "way"
    RELATION = "relation"


class Category(str, Enum):
    """Amenity categories the finder knows how to query"""
    TOILETS = "toilets"
    FOUNTAINS = "fountains"
    GLASS = "glass"


@dataclass(frozen=True)
class GeoPoint:
    """One normalized result row (node position or way/relation centroid)"""
    id: str  # "<kind>/<osm id>"
    lat: float
    lon: float
    tags: Mapping[str, str] = field(default_factory=dict, hash=False, compare=True)
    kind: ElementKind = ElementKind.NODE

    def __post_init__(self):
        # Read-only snapshot; cache entries and callers share the same point
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))

    @property
    def osm_id(self) -> int:
        return int(self.id.split("/", 1)[1])


@dataclass(frozen=True)
class FilterSet:
    """Which categories are enabled. Build through normalize_filters()"""
    toilets: bool = False
    fountains: bool = False
    glass: bool = False

    def enabled(self) -> Tuple[Category, ...]:
        return tuple(c for c in Category if getattr(self, c.value))

    def turned_on_from(self, previous: "FilterSet") -> bool:
        """True if at least one category went from off to on"""
        return (
            (self.toilets and not previous.toilets)
            or (self.fountains and not previous.fountains)
            or (self.glass and not previous.glass)
        )


@dataclass(frozen=True)
class CacheEntry:
    """Freshness-stamped fetch result"""
    at: float  # seconds, same clock as the owning ResultCache
    data: Tuple[GeoPoint, ...]
