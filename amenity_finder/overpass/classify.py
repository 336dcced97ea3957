"""
Amenity classification

Maps point tags back to the category they were queried for, so consumers
can re-filter held data locally when a category is switched off.
"""

from typing import Iterable, List, Mapping, Optional

from .models import Category, FilterSet, GeoPoint
from .query import GLASS_TAG_VARIANTS, FiltersLike, normalize_filters


def accepts_glass(tags: Mapping[str, str]) -> bool:
    """True if any of the glass recycling tag variants is present"""
    return any(tags.get(key) == value for key, value in GLASS_TAG_VARIANTS)


def classify_tags(tags: Mapping[str, str]) -> Optional[Category]:
    amenity = tags.get("amenity")
    if amenity == "toilets":
        return Category.TOILETS
    if amenity == "drinking_water":
        return Category.FOUNTAINS
    if amenity == "recycling" or accepts_glass(tags):
        # Recycling points only ever come back from the glass clauses
        return Category.GLASS
    return None


def classify_point(point: GeoPoint) -> Optional[Category]:
    return classify_tags(point.tags)


def filter_points(points: Iterable[GeoPoint], filters: FiltersLike) -> List[GeoPoint]:
    """Keep only points whose category is enabled in filters"""
    f: FilterSet = normalize_filters(filters)
    enabled = set(f.enabled())
    return [p for p in points if classify_point(p) in enabled]


def display_name(tags: Mapping[str, str]) -> str:
    return tags.get("name") or tags.get("operator") or "Point"
