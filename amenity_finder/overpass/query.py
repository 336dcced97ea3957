"""
Overpass QL query building

Translates a center, radius and filter set into the query text sent to
the Overpass API, and derives the quantized cache key for the same inputs.
"""

import math
from typing import Any, List, Mapping, Optional, Tuple, Union

from .models import Category, FilterSet

DEFAULT_QUERY_TIMEOUT_S = 25

# Every tag combination that means "accepts glass" on a recycling amenity
GLASS_TAG_VARIANTS: Tuple[Tuple[str, str], ...] = (
    ("recycling", "glass"),
    ("recycling:glass", "yes"),
    ("recycling:glass_bottles", "yes"),
    ("recycling:glass_packaging", "yes"),
    ("recycling:material", "glass"),
)

# Matches nothing: a zero-area bounding box at (0, 0)
EMPTY_QUERY_BODY = "node(0,0,0,0);\nout;"

FiltersLike = Union[FilterSet, Mapping[str, Any], None]


def normalize_filters(filters: FiltersLike) -> FilterSet:
    """
    Coerce any partial filter description into a FilterSet

    Missing keys and None map to False, so two descriptions of the same
    selection always produce the same key and query.
    """
    if isinstance(filters, FilterSet):
        return FilterSet(
            toilets=bool(filters.toilets),
            fountains=bool(filters.fountains),
            glass=bool(filters.glass),
        )
    f = filters or {}
    return FilterSet(
        toilets=bool(f.get("toilets")),
        fountains=bool(f.get("fountains")),
        glass=bool(f.get("glass")),
    )


def _round_half_up(x: float, step: float) -> float:
    return math.floor(x / step + 0.5) * step


def round_coord(x: float) -> float:
    """Snap a coordinate to 4 decimal places (~11m of latitude)"""
    return math.floor(x * 10000 + 0.5) / 10000


def round_radius(radius_m: Optional[float]) -> int:
    """Snap a radius to the nearest 100m bucket"""
    return int(_round_half_up(radius_m or 0, 100))


def _format_number(x: float) -> str:
    # 52.52 rather than 52.5200, 13 rather than 13.0
    text = repr(float(x))
    if text.endswith(".0"):
        text = text[:-2]
    return text


def cache_key(lat: float, lon: float, radius_m: float, filters: FiltersLike = None) -> str:
    """
    Canonical cache key for a query

    Format: ``<lat>,<lon>|<radius bucket>|t<0|1>f<0|1>g<0|1>``
    """
    f = normalize_filters(filters)
    return (
        f"{_format_number(round_coord(lat))},{_format_number(round_coord(lon))}"
        f"|{round_radius(radius_m)}"
        f"|t{int(f.toilets)}f{int(f.fountains)}g{int(f.glass)}"
    )


def _clauses(category: Category, around: str) -> List[str]:
    if category is Category.TOILETS:
        return [f'nwr["amenity"="toilets"]({around});']
    if category is Category.FOUNTAINS:
        return [f'nwr["amenity"="drinking_water"]({around});']
    return [
        f'nwr["amenity"="recycling"]["{key}"="{value}"]({around});'
        for key, value in GLASS_TAG_VARIANTS
    ]


def build_overpass_query(
    lat: float,
    lon: float,
    radius_m: float,
    filters: FilterSet,
    timeout_s: int = DEFAULT_QUERY_TIMEOUT_S,
) -> str:
    """
    Build Overpass QL for all enabled categories around a point

    Ways and relations are returned with their centroid (``out center``).
    With nothing enabled the query is still complete but can never match.

    Args:
        lat: Center latitude
        lon: Center longitude
        radius_m: Search radius in meters (interpolated as given)
        filters: Normalized filter set
        timeout_s: Server-side query timeout

    Returns:
        Query text with no leading or trailing whitespace
    """
    header = f"[out:json][timeout:{timeout_s}];"
    around = f"around:{_format_number(radius_m)},{_format_number(lat)},{_format_number(lon)}"

    parts: List[str] = []
    for category in filters.enabled():
        parts.extend(_clauses(category, around))

    if not parts:
        return f"{header}\n{EMPTY_QUERY_BODY}"

    body = "\n  ".join(parts)
    return f"{header}\n(\n  {body}\n);\nout center;"
