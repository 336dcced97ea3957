"""
Overpass amenity data module

Components:
- Query: Overpass QL building, filter normalization, cache keys
- Parser: Response normalization into GeoPoint
- API client: Mirror failover, retry and backoff
- Cache: In-process TTL cache
- Classify: Category mapping for local re-filtering
"""

from .models import CacheEntry, Category, ElementKind, FilterSet, GeoPoint
from .query import build_overpass_query, cache_key, normalize_filters, round_coord, round_radius
from .parser import OverpassResponseParser
from .api_client import OverpassAPIClient, parse_retry_after
from .cache import ResultCache
from .classify import classify_point, display_name, filter_points

__all__ = [
    "CacheEntry",
    "Category",
    "ElementKind",
    "FilterSet",
    "GeoPoint",
    "build_overpass_query",
    "cache_key",
    "normalize_filters",
    "round_coord",
    "round_radius",
    "OverpassResponseParser",
    "OverpassAPIClient",
    "parse_retry_after",
    "ResultCache",
    "classify_point",
    "display_name",
    "filter_points",
]
