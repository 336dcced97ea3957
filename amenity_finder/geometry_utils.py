"""
Geometry utilities for viewport and distance calculations
"""

import math
from dataclasses import dataclass
from typing import Tuple

# Spherical earth radius (meters), same as Leaflet's CRS.Earth
EARTH_RADIUS_M = 6371000.0


@dataclass(frozen=True)
class Viewport:
    """Visible map area described by its center and north-east corner"""
    center_lat: float
    center_lon: float
    north_east_lat: float
    north_east_lon: float

    @property
    def center(self) -> Tuple[float, float]:
        return self.center_lat, self.center_lon

    def corner_distance_m(self) -> float:
        """Distance from the center to the north-east corner"""
        return GeometryUtils.haversine_distance(
            self.center_lat, self.center_lon, self.north_east_lat, self.north_east_lon
        )

    def recentered(self, lat: float, lon: float) -> "Viewport":
        """Same span (zoom level) moved to a new center"""
        return Viewport(
            center_lat=lat,
            center_lon=lon,
            north_east_lat=lat + (self.north_east_lat - self.center_lat),
            north_east_lon=lon + (self.north_east_lon - self.center_lon),
        )

    @classmethod
    def around(cls, lat: float, lon: float, half_width_m: float, half_height_m: float) -> "Viewport":
        """Viewport centered on (lat, lon) spanning the given half sizes in meters"""
        m_per_deg_lat = 111000
        m_per_deg_lon = 111000 * math.cos(math.radians(lat))
        return cls(
            center_lat=lat,
            center_lon=lon,
            north_east_lat=lat + half_height_m / m_per_deg_lat,
            north_east_lon=lon + half_width_m / m_per_deg_lon,
        )


class GeometryUtils:
    """Utility functions for geometric operations"""

    @staticmethod
    def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Great-circle distance in meters"""
        phi1, phi2 = math.radians(lat1), math.radians(lat2)
        dphi = math.radians(lat2 - lat1)
        dlam = math.radians(lon2 - lon1)
        a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
        return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    @staticmethod
    def effective_radius(viewport: Viewport, base_radius_m: float, buffer: float = 1.1) -> float:
        """
        Search radius that covers the whole viewport

        The buffer keeps tiny zoom changes inside the same radius bucket.
        """
        dynamic = math.ceil(viewport.corner_distance_m() * buffer)
        return max(base_radius_m, dynamic)
