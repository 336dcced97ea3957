"""
Amenity Finder

Finds public toilets, drinking water and glass recycling near a map
viewport through the Overpass API, and keeps the result fresh as the
viewport moves.
"""

__version__ = "1.0.0"

from .errors import Aborted, HttpError, MalformedResponse, NetworkError, OverpassError
from .geometry_utils import Viewport
from .refresher import RefreshController

__all__ = [
    "Aborted",
    "HttpError",
    "MalformedResponse",
    "NetworkError",
    "OverpassError",
    "Viewport",
    "RefreshController",
]
