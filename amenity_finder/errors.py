"""
Overpass client errors

Aborted is control flow (a superseded or torn-down request), not a failure.
"""

from typing import Optional


class OverpassError(Exception):
    """Base class for everything the Overpass client raises"""


class Aborted(OverpassError):
    """The request was cancelled through its CancellationToken"""

    def __init__(self, message: str = "Aborted"):
        super().__init__(message)


class NetworkError(OverpassError):
    """No HTTP response was received (DNS, connect, read timeout, ...)"""


class HttpError(OverpassError):
    """Non-2xx status after the retry and failover policy gave up"""

    def __init__(self, status: int, body: Optional[str] = None, message: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(message or f"Overpass error {status}")


class MalformedResponse(HttpError):
    """2xx response whose body is not the expected JSON shape"""

    def __init__(self, status: int, reason: str, body: Optional[str] = None):
        self.reason = reason
        super().__init__(status, body, f"Malformed Overpass response ({status}): {reason}")
