"""
Viewport-driven refresh controller

Keeps the amenity points for one map view up to date:
- Explicit recentering fetches immediately
- Pan/zoom settle events are debounced
- Switching a category on refetches, switching one off never does
- Cache hits skip the network entirely
- A newer fetch cancels the outstanding one, whose late result is dropped
- Loading counts outstanding fetches; a cancelled one stops counting at once
- Fetch errors are logged and exposed, never raised to the caller
"""

import threading
import time
from typing import Callable, List, Optional, Set, Tuple

from loguru import logger

from .cancellation import CancellationToken, Debouncer
from .config import RefreshConfig, get_config
from .errors import Aborted
from .geometry_utils import GeometryUtils, Viewport
from .overpass.api_client import OverpassAPIClient
from .overpass.cache import ResultCache
from .overpass.classify import filter_points
from .overpass.models import FilterSet, GeoPoint
from .overpass.query import FiltersLike, cache_key, normalize_filters

UpdateCallback = Callable[[List[GeoPoint]], None]
LoadingCallback = Callable[[bool], None]
ErrorCallback = Callable[[Exception], None]


class RefreshController:
    """
    Fetch-and-refresh engine for a single map view

    The cache is injected so several controllers (or tests) can share or
    isolate it. All callbacks may be invoked from worker threads.
    """

    def __init__(
        self,
        client: OverpassAPIClient,
        cache: ResultCache,
        on_update: UpdateCallback,
        on_loading_change: Optional[LoadingCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        filters: FiltersLike = None,
        config: Optional[RefreshConfig] = None,
    ):
        cfg = get_config()
        self.config = config or cfg.refresh
        self.client = client
        self.cache = cache
        self._on_update = on_update
        self._on_loading_change = on_loading_change
        self._on_error = on_error

        if filters is None:
            filters = FilterSet(cfg.default_toilets, cfg.default_fountains, cfg.default_glass)
        self._filters = normalize_filters(filters)
        self._base_radius_m = self.config.base_radius_m

        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        self._debouncer = Debouncer(self.config.debounce_s, self._on_viewport_settled)

        self._center: Optional[Tuple[float, float]] = None
        self._viewport: Optional[Viewport] = None
        self._points: List[GeoPoint] = []
        self._loading = False
        self._last_error: Optional[str] = None

        self._token: Optional[CancellationToken] = None
        # Fetches still counted toward loading; a cancelled one leaves at once
        self._counted: Set[CancellationToken] = set()
        self._pending = 0
        self._generation = 0
        self._closed = False

    # ------------------------------------------------------------------
    # State exposed to the presentation layer
    # ------------------------------------------------------------------

    @property
    def points(self) -> List[GeoPoint]:
        with self._lock:
            return list(self._points)

    @property
    def visible_points(self) -> List[GeoPoint]:
        """Held points re-filtered by the current filter set"""
        with self._lock:
            return filter_points(self._points, self._filters)

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._loading

    @property
    def last_error(self) -> Optional[str]:
        with self._lock:
            return self._last_error

    @property
    def filters(self) -> FilterSet:
        with self._lock:
            return self._filters

    @property
    def viewport(self) -> Optional[Viewport]:
        with self._lock:
            return self._viewport

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    def set_viewport(self, center: Tuple[float, float], radius_hint: Optional[float] = None) -> None:
        """
        Explicit center change (e.g. a location fix arrived)

        Recenters the held viewport at its current span and fetches at once.

        Args:
            center: (lat, lon)
            radius_hint: New base radius in meters; keeps the previous one if None
        """
        lat, lon = center
        with self._lock:
            if self._closed:
                return
            # An explicit recenter supersedes a pan/zoom burst still settling
            self._debouncer.cancel()
            if radius_hint is not None:
                self._base_radius_m = radius_hint
            self._center = (lat, lon)
            if self._viewport is not None:
                self._viewport = self._viewport.recentered(lat, lon)
            self._request(lat, lon, self._effective_radius(), self._filters)

    def viewport_changed(self, viewport: Viewport) -> None:
        """Pan/zoom settled; only the last event of a burst fetches"""
        with self._lock:
            if self._closed:
                return
            self._viewport = viewport
            self._center = viewport.center
        self._debouncer.trigger()

    def set_filters(self, filters: FiltersLike) -> None:
        """Update filters; fetch only if a category was switched on"""
        current = normalize_filters(filters)
        with self._lock:
            if self._closed:
                return
            previous, self._filters = self._filters, current
            if not current.turned_on_from(previous):
                return
            if self._center is None:
                logger.debug("Filters switched on before any viewport is known, not fetching")
                return
            lat, lon = self._center
            self._request(lat, lon, self._effective_radius(), current)

    def refresh(self) -> None:
        """Fetch for the current viewport now, bypassing the debounce"""
        with self._lock:
            if self._closed or self._center is None:
                return
            lat, lon = self._center
            self._request(lat, lon, self._effective_radius(), self._filters)

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no debounce is pending and no fetch is outstanding

        Returns:
            False if the timeout expired first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._idle:
            while self._debouncer.pending or self._pending > 0:
                remaining = 0.05
                if deadline is not None:
                    remaining = min(remaining, deadline - time.monotonic())
                    if remaining <= 0:
                        return False
                self._idle.wait(remaining)
            return True

    def close(self) -> None:
        """Tear down: cancel the debounce and any outstanding fetch"""
        self._debouncer.cancel()
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._generation += 1
            if self._token is not None:
                self._token.cancel()
                self._uncount(self._token)
                self._token = None
            self._set_loading(self._pending > 0)
            self._idle.notify_all()
        logger.debug("Refresh controller closed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _effective_radius(self) -> float:
        if self._viewport is None:
            return self._base_radius_m or self.config.fallback_radius_m
        return GeometryUtils.effective_radius(
            self._viewport, self._base_radius_m, self.config.radius_buffer
        )

    def _on_viewport_settled(self) -> None:
        with self._lock:
            if self._closed or self._viewport is None:
                return
            lat, lon = self._viewport.center
            self._request(lat, lon, self._effective_radius(), self._filters)

    def _request(self, lat: float, lon: float, radius_m: float, filters: FilterSet) -> None:
        # Caller holds self._lock
        key = cache_key(lat, lon, radius_m, filters)
        self._generation += 1
        generation = self._generation

        entry = self.cache.lookup(key)
        if entry is not None:
            self._last_error = None
            self._publish(list(entry.data))
            # Another fetch may still be running; it keeps the loading state up
            if self._pending == 0:
                self._set_loading(False)
            return

        if self._token is not None:
            self._token.cancel()
            self._uncount(self._token)
        token = CancellationToken()
        self._token = token
        self._counted.add(token)
        self._pending += 1
        self._set_loading(True)

        worker = threading.Thread(
            target=self._run_fetch,
            args=(token, generation, key, lat, lon, radius_m, filters),
            name=f"overpass-fetch-{generation}",
            daemon=True,
        )
        worker.start()

    def _run_fetch(
        self,
        token: CancellationToken,
        generation: int,
        key: str,
        lat: float,
        lon: float,
        radius_m: float,
        filters: FilterSet,
    ) -> None:
        try:
            points = self.client.fetch(lat, lon, radius_m, filters, token)
        except Aborted:
            logger.debug(f"Fetch for {key} aborted")
        except Exception as e:
            logger.warning(f"Fetch for {key} failed, keeping previous data: {e}")
            with self._lock:
                if generation == self._generation and not self._closed:
                    self._last_error = str(e)
                    self._emit("on_error", self._on_error, e)
        else:
            self.cache.store(key, points)
            with self._lock:
                if generation == self._generation and not token.cancelled and not self._closed:
                    self._last_error = None
                    self._publish(points)
                else:
                    logger.debug(f"Dropping superseded result for {key}")
        finally:
            with self._lock:
                self._uncount(token)
                if self._token is token:
                    self._token = None
                self._set_loading(self._pending > 0)
                self._idle.notify_all()

    def _uncount(self, token: CancellationToken) -> None:
        if token in self._counted:
            self._counted.discard(token)
            self._pending -= 1

    def _publish(self, points: List[GeoPoint]) -> None:
        self._points = list(points)
        self._emit("on_update", self._on_update, list(points))

    def _set_loading(self, loading: bool) -> None:
        if loading == self._loading:
            return
        self._loading = loading
        self._emit("on_loading_change", self._on_loading_change, loading)

    @staticmethod
    def _emit(name: str, callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"{name} callback failed: {e}")
