"""
Overpass API client

Handles communication with the Overpass API mirrors including:
- Retry-After handling for rate limiting and maintenance
- Failover to the next mirror
- Exponential backoff on gateway timeouts
- Cancellation of retries through a CancellationToken
"""

import math
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional

import requests
from loguru import logger

from ..cancellation import CancellationToken
from ..config import APIConfig, get_config
from ..errors import Aborted, HttpError, MalformedResponse, NetworkError
from .models import GeoPoint
from .parser import OverpassResponseParser
from .query import FiltersLike, build_overpass_query, normalize_filters


def parse_retry_after(header: Optional[str], cap_s: float = 15.0, now: Optional[datetime] = None) -> Optional[float]:
    """
    Parse a Retry-After header value

    Accepts delay-seconds or an HTTP-date. Dates in the past yield 0.

    Returns:
        Seconds to wait, capped at cap_s, or None if the header is unusable
    """
    if not header:
        return None
    value = header.strip()
    try:
        seconds = float(value)
    except ValueError:
        seconds = None
    if seconds is not None:
        if not math.isfinite(seconds) or seconds < 0:
            return None
        return min(cap_s, seconds)

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    delta = (when - now).total_seconds()
    return min(cap_s, max(0.0, delta))


def _excerpt(response: requests.Response) -> str:
    try:
        return (response.text or "")[:200]
    except Exception:
        return ""


class OverpassAPIClient:
    """Client for the Overpass API with retry and mirror failover"""

    def __init__(self, config: Optional[APIConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or get_config().api
        self.mirrors = list(self.config.overpass_urls)
        if not self.mirrors:
            raise ValueError("OverpassAPIClient needs at least one mirror URL")
        self.session = session or requests.Session()
        self.parser = OverpassResponseParser()

    def _post(self, url: str, query: str) -> requests.Response:
        headers = {
            "User-Agent": self.config.user_agent,
            "Content-Type": "application/x-www-form-urlencoded;charset=UTF-8",
            "Accept": "application/json",
        }
        return self.session.post(
            url,
            data={"data": query},
            headers=headers,
            timeout=self.config.request_timeout,
        )

    def _should_switch_mirror(self, status: int, mirror_index: int) -> bool:
        if mirror_index >= len(self.mirrors) - 1:
            return False
        return status in (400, 429) or (status >= 500 and status != 504)

    def fetch(
        self,
        lat: float,
        lon: float,
        radius_m: float,
        filters: FiltersLike = None,
        token: Optional[CancellationToken] = None,
    ) -> List[GeoPoint]:
        """
        Fetch amenities around a point

        Args:
            lat: Center latitude
            lon: Center longitude
            radius_m: Search radius in meters
            filters: Categories to query (normalized here)
            token: Cancels pending waits; a cancelled fetch raises Aborted

        Returns:
            Normalized points in source order (possibly empty)

        Raises:
            Aborted: If the token was cancelled
            NetworkError: If a mirror could not be reached
            HttpError: If the retry and failover policy gave up
        """
        token = token or CancellationToken()
        query = build_overpass_query(
            lat, lon, radius_m, normalize_filters(filters), timeout_s=self.config.query_timeout_s
        ).strip()

        max_attempts = self.config.max_attempts
        started = time.monotonic()
        logger.info(f"Overpass request: lat={lat}, lon={lon}, radius={radius_m}m")

        attempt = 0
        mirror = 0
        rate_limit_waits = 0

        while attempt < max_attempts:
            attempt += 1
            token.raise_if_cancelled()
            url = self.mirrors[mirror]

            try:
                response = self._post(url, query)
            except requests.exceptions.RequestException as e:
                if token.cancelled:
                    raise Aborted() from e
                elapsed = time.monotonic() - started
                logger.warning(f"Overpass request to {url} failed after {elapsed:.2f}s (attempt {attempt}): {e}")
                raise NetworkError(f"Overpass request to {url} failed: {e}") from e

            # A superseded request must not deliver its response
            token.raise_if_cancelled()
            status = response.status_code

            if status in (429, 503):
                wait_s = parse_retry_after(
                    response.headers.get("Retry-After"), cap_s=self.config.retry_after_cap_s
                )
                if wait_s is not None and rate_limit_waits < self.config.max_rate_limit_waits:
                    rate_limit_waits += 1
                    logger.warning(
                        f"Overpass {status} with Retry-After={wait_s:.1f}s on {url} "
                        f"(attempt {attempt}/{max_attempts}). Waiting..."
                    )
                    token.sleep(wait_s)
                    attempt -= 1
                    continue

            if self._should_switch_mirror(status, mirror):
                next_url = self.mirrors[mirror + 1]
                logger.info(
                    f"Overpass {status} on {url} (attempt {attempt}), switching to {next_url}. "
                    f"Body: {_excerpt(response)}"
                )
                mirror += 1
                token.sleep(self.config.mirror_switch_pause_s)
                attempt -= 1
                continue

            if status == 504 and attempt < max_attempts:
                backoff_s = self.config.backoff_base_s * (2 ** (attempt - 1))
                logger.warning(
                    f"Overpass 504 on {url} (attempt {attempt}/{max_attempts}). Retrying in {backoff_s:.1f}s..."
                )
                token.sleep(backoff_s)
                continue

            elapsed = time.monotonic() - started
            if not 200 <= status < 300:
                body = _excerpt(response)
                logger.error(
                    f"Overpass API failed: HTTP {status} after {elapsed:.2f}s (attempt {attempt}). Body: {body}"
                )
                raise HttpError(status, body)

            try:
                data = response.json()
            except ValueError as e:
                raise MalformedResponse(status, "body is not valid JSON", _excerpt(response)) from e

            points = self.parser.parse_elements(data, status)
            logger.info(
                f"Overpass returned {len(points)} points in {elapsed:.2f}s on attempt {attempt} ({url})"
            )
            return points

        raise NetworkError(f"Overpass request failed after {max_attempts} attempts")
