"""
Core layer - Raw types and HTTP client.

This layer provides:
- Immutable credentials, endpoint and request types
- Low-level HTTP client with auth, throttle retries and error handling
"""

from lp_cli.core.client import (
    APIClient,
    APIError,
    CLIError,
    RequestCancelled,
    ThrottleLimitError,
    TransportError,
    ValidationError,
)
from lp_cli.core.types import (
    Credentials,
    Endpoint,
    Request,
    ThrottleSignal,
    parse_wait_time,
)

__all__ = [
    "APIClient",
    "APIError",
    "CLIError",
    "Credentials",
    "Endpoint",
    "Request",
    "RequestCancelled",
    "ThrottleLimitError",
    "ThrottleSignal",
    "TransportError",
    "ValidationError",
    "parse_wait_time",
]
