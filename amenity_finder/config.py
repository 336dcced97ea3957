"""
Configuration settings for Amenity Finder
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import os


@dataclass
class APIConfig:
    """Overpass endpoints and transport policy"""
    # Ordered mirror list: index 0 is tried first, later ones only on failover
    overpass_urls: List[str] = field(default_factory=lambda: [
        "https://overpass-api.de/api/interpreter",
        "https://overpass.kumi.systems/api/interpreter",
    ])

    # Server-side query timeout, interpolated as [timeout:N]
    query_timeout_s: int = 25

    # HTTP socket timeout per request (seconds)
    request_timeout: float = 30.0

    # Retry policy
    max_attempts: int = 3  # shared across mirrors
    backoff_base_s: float = 0.4  # 504 backoff: 0.4s, 0.8s, ...
    mirror_switch_pause_s: float = 0.2
    retry_after_cap_s: float = 15.0
    max_rate_limit_waits: int = 5  # Retry-After waits honoured per fetch

    # User agent for API requests
    user_agent: str = "AmenityFinder/1.0"


@dataclass
class CacheConfig:
    """In-process result cache"""
    ttl_s: float = 300.0  # 5 minutes


@dataclass
class RefreshConfig:
    """Viewport refresh behaviour"""
    # Minimum search radius (meters); the viewport can only widen it
    base_radius_m: float = 1200.0

    # Used when no viewport bounds are known and base_radius_m is 0
    fallback_radius_m: float = 1000.0

    # Quiet period before a pan/zoom burst triggers a fetch (seconds)
    debounce_s: float = 0.3

    # Radius multiplier over the center-to-corner distance
    radius_buffer: float = 1.1

    # Berlin, used when nothing better is known
    default_center: Tuple[float, float] = (52.520008, 13.404954)


@dataclass
class FinderConfig:
    """Top-level configuration"""
    api: APIConfig = field(default_factory=APIConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)

    # Categories enabled on startup
    default_toilets: bool = True
    default_fountains: bool = True
    default_glass: bool = True


def load_config(environ: Optional[dict] = None) -> FinderConfig:
    """
    Build configuration from defaults plus environment overrides

    OVERPASS_URL: comma-separated mirror list replacing the defaults
    """
    env = os.environ if environ is None else environ
    cfg = FinderConfig()
    urls = env.get("OVERPASS_URL")
    if urls:
        mirrors = []
        for url in urls.split(","):
            url = url.strip()
            if url and url not in mirrors:
                mirrors.append(url)
        if mirrors:
            cfg.api.overpass_urls = mirrors
    return cfg


# Global config instance
config = load_config()


def get_config() -> FinderConfig:
    """Get global configuration"""
    return config


def validate_config(config: FinderConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ValueError if any required value is missing or invalid.
    """
    errors = []

    if config.api is None:
        errors.append("api configuration is required but not set")
    else:
        if not config.api.overpass_urls:
            errors.append("api.overpass_urls needs at least one mirror")
        if config.api.max_attempts < 1:
            errors.append(f"api.max_attempts must be at least 1, got {config.api.max_attempts}")
        for name in ("backoff_base_s", "mirror_switch_pause_s", "retry_after_cap_s"):
            value = getattr(config.api, name)
            if value < 0:
                errors.append(f"api.{name} must not be negative, got {value}")
        if config.api.max_rate_limit_waits < 0:
            errors.append(f"api.max_rate_limit_waits must not be negative, got {config.api.max_rate_limit_waits}")
        if config.api.request_timeout <= 0:
            errors.append(f"api.request_timeout must be positive, got {config.api.request_timeout}")

    if config.cache is None:
        errors.append("cache configuration is required but not set")
    elif config.cache.ttl_s <= 0:
        errors.append(f"cache.ttl_s must be positive, got {config.cache.ttl_s}")

    if config.refresh is None:
        errors.append("refresh configuration is required but not set")
    else:
        if config.refresh.base_radius_m < 0:
            errors.append(f"refresh.base_radius_m must not be negative, got {config.refresh.base_radius_m}")
        if config.refresh.fallback_radius_m <= 0:
            errors.append(f"refresh.fallback_radius_m must be positive, got {config.refresh.fallback_radius_m}")
        if config.refresh.debounce_s < 0:
            errors.append(f"refresh.debounce_s must not be negative, got {config.refresh.debounce_s}")
        if config.refresh.radius_buffer < 1:
            errors.append(f"refresh.radius_buffer must be at least 1, got {config.refresh.radius_buffer}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
