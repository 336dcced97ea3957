"""
Overpass response parser

Normalizes Overpass JSON elements into GeoPoint objects
"""

from typing import Any, Dict, List, Optional, Tuple

from ..errors import MalformedResponse
from .models import ElementKind, GeoPoint


class OverpassResponseParser:
    """Parses Overpass API responses"""

    @staticmethod
    def _position(element: Dict[str, Any], kind: ElementKind) -> Optional[Tuple[float, float]]:
        if kind is ElementKind.NODE:
            source = element
        else:
            # 'out center' attaches the centroid to ways and relations
            source = element.get("center")
        if not isinstance(source, dict):
            return None
        lat, lon = source.get("lat"), source.get("lon")
        if lat is None or lon is None:
            return None
        try:
            return float(lat), float(lon)
        except (TypeError, ValueError):
            return None

    @classmethod
    def parse_elements(cls, data: Any, status: int = 200) -> List[GeoPoint]:
        """
        Parse Overpass response into points

        Elements without resolvable coordinates or with a tags value that is
        not an object are dropped silently.

        Args:
            data: Decoded JSON body
            status: HTTP status the body came with (for error reporting)

        Returns:
            Points in source order

        Raises:
            MalformedResponse: If the body is not an object with an elements array
        """
        if not isinstance(data, dict):
            raise MalformedResponse(status, f"expected JSON object, got {type(data).__name__}")
        elements = data.get("elements", [])
        if elements is None:
            elements = []
        if not isinstance(elements, list):
            raise MalformedResponse(status, "'elements' is not an array")

        points = []
        for element in elements:
            if not isinstance(element, dict):
                continue
            try:
                kind = ElementKind(element.get("type"))
            except ValueError:
                continue
            position = cls._position(element, kind)
            if position is None or element.get("id") is None:
                continue
            tags = element.get("tags") or {}
            if not isinstance(tags, dict):
                continue
            points.append(GeoPoint(
                id=f"{kind.value}/{element['id']}",
                lat=position[0],
                lon=position[1],
                tags={str(k): str(v) for k, v in tags.items()},
                kind=kind,
            ))
        return points
