"""
Pydantic models for amenity reports
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .overpass.classify import classify_point, display_name
from .overpass.models import Category, FilterSet, GeoPoint


class Center(BaseModel):
    lat: float
    lon: float


class Filters(BaseModel):
    toilets: bool = False
    fountains: bool = False
    glass: bool = False


class AmenityPoint(BaseModel):
    id: str
    type: str
    lat: float
    lon: float
    name: str
    category: Optional[Category] = None
    tags: Dict[str, str] = Field(default_factory=dict)


class AmenityReport(BaseModel):
    center: Center
    radius_m: float
    filters: Filters
    generated_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    counts: Dict[str, int] = Field(default_factory=dict)
    points: List[AmenityPoint] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def build(
        cls,
        lat: float,
        lon: float,
        radius_m: float,
        filters: FilterSet,
        points: List[GeoPoint],
        error: Optional[str] = None,
    ) -> "AmenityReport":
        items = []
        counts = {c.value: 0 for c in Category}
        for p in points:
            category = classify_point(p)
            if category is not None:
                counts[category.value] += 1
            items.append(AmenityPoint(
                id=p.id,
                type=p.kind.value,
                lat=p.lat,
                lon=p.lon,
                name=display_name(p.tags),
                category=category,
                tags=dict(p.tags),
            ))
        return cls(
            center=Center(lat=lat, lon=lon),
            radius_m=radius_m,
            filters=Filters(toilets=filters.toilets, fountains=filters.fountains, glass=filters.glass),
            counts=counts,
            points=items,
            error=error,
        )
