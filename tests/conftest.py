"""
Shared fixtures for Amenity Finder tests
"""

import threading
from dataclasses import dataclass, field
from typing import Any, List, Optional
from unittest.mock import Mock

import pytest

from amenity_finder.config import APIConfig, RefreshConfig
from amenity_finder.overpass.cache import ResultCache
from amenity_finder.overpass.models import ElementKind, FilterSet, GeoPoint


def make_response(status: int = 200, json_data: Any = None, headers: Optional[dict] = None, text: str = ""):
    """Fake requests.Response"""
    response = Mock()
    response.status_code = status
    response.headers = headers or {}
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data if json_data is not None else {"elements": []}
    return response


def make_point(osm_id: int, amenity: str = "toilets", lat: float = 52.52, lon: float = 13.405) -> GeoPoint:
    return GeoPoint(id=f"node/{osm_id}", lat=lat, lon=lon, tags={"amenity": amenity}, kind=ElementKind.NODE)


class FakeClock:
    """Manually advanced clock for TTL tests"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class FetchCall:
    lat: float
    lon: float
    radius_m: float
    filters: FilterSet
    token: Any
    release: threading.Event = field(default_factory=threading.Event)
    result: List[GeoPoint] = field(default_factory=list)
    error: Optional[Exception] = None


class FakeClient:
    """
    Stand-in for OverpassAPIClient

    With blocking=True each fetch waits until the test releases it, like an
    HTTP call that cannot be interrupted mid-flight. honour_token=False
    returns the result even if the fetch was cancelled meanwhile.
    """

    def __init__(self, blocking: bool = False, honour_token: bool = True):
        self.blocking = blocking
        self.honour_token = honour_token
        self.calls: List[FetchCall] = []
        self.next_result: List[GeoPoint] = []
        self.next_error: Optional[Exception] = None
        self._started = threading.Condition()

    def fetch(self, lat, lon, radius_m, filters, token):
        call = FetchCall(lat, lon, radius_m, filters, token, result=list(self.next_result), error=self.next_error)
        with self._started:
            self.calls.append(call)
            self._started.notify_all()
        if self.blocking:
            call.release.wait(timeout=5)
        if self.honour_token:
            token.raise_if_cancelled()
        if call.error is not None:
            raise call.error
        return call.result

    def wait_for_calls(self, count: int, timeout: float = 2.0) -> bool:
        with self._started:
            return self._started.wait_for(lambda: len(self.calls) >= count, timeout=timeout)


@pytest.fixture
def fast_api_config():
    return APIConfig(
        overpass_urls=["https://mirror-a.test/api/interpreter", "https://mirror-b.test/api/interpreter"],
        backoff_base_s=0.4,
        mirror_switch_pause_s=0.2,
    )


@pytest.fixture
def fast_refresh_config():
    return RefreshConfig(base_radius_m=1200.0, debounce_s=0.05)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Fresh cache per test"""
    return ResultCache(ttl_s=300.0, clock=clock)
