"""
Core Module Package.

Shared infrastructure for every other package:

- clock: UTC time source, injectable for tests
- exceptions: typed error hierarchy
"""

from .clock import (
    ClockProtocol,
    MockClock,
    SystemClock,
    ensure_utc,
    from_iso8601,
    hours_between,
    to_iso8601,
)
from .exceptions import (
    Severity,
    ViralityEngineError,
    ValidationError,
    ConfigurationLoadError,
    NotFoundError,
    InsufficientDataError,
    UpstreamProviderError,
    StoreError,
)

__all__ = [
    "ClockProtocol",
    "MockClock",
    "SystemClock",
    "ensure_utc",
    "from_iso8601",
    "hours_between",
    "to_iso8601",
    "Severity",
    "ViralityEngineError",
    "ValidationError",
    "ConfigurationLoadError",
    "NotFoundError",
    "InsufficientDataError",
    "UpstreamProviderError",
    "StoreError",
]
