"""
Core types for talking to the LiquidPlanner API.

These dataclasses are fixed at client construction (Credentials, Endpoint)
or live for a single logical call (Request, ThrottleSignal).
"""

import base64
import re
import urllib.parse
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

# =============================================================================
# Throttling
# =============================================================================


WAIT_TIME_PATTERN = re.compile(r"Try again in ([0-9]+) seconds")
THROTTLE_WAIT_PADDING = 2
DEFAULT_THROTTLE_WAIT = 15


def parse_wait_time(message: Any) -> int:
    """
    Extract the number of seconds to wait from a throttle message.

    "... Try again in 7 seconds ..." gives 9 (the advertised delay plus
    padding). Anything that does not match gives the fixed fallback of 15.
    """
    if not isinstance(message, str):
        return DEFAULT_THROTTLE_WAIT
    match = WAIT_TIME_PATTERN.search(message)
    if not match:
        return DEFAULT_THROTTLE_WAIT
    return int(match.group(1)) + THROTTLE_WAIT_PADDING


@dataclass(frozen=True)
class ThrottleSignal:
    """A rate-limit rejection detected in a decoded response."""

    message: str
    wait_seconds: int

    @classmethod
    def from_result(cls, result: Any) -> "ThrottleSignal | None":
        """Return a signal if result has the Throttled error shape, else None."""
        if not isinstance(result, Mapping):
            return None
        if result.get("type") != "Error" or result.get("error") != "Throttled":
            return None
        message = result.get("message")
        if not isinstance(message, str):
            message = ""
        return cls(message=message, wait_seconds=parse_wait_time(message))


# =============================================================================
# Credentials and Endpoint
# =============================================================================


@dataclass(frozen=True)
class Credentials:
    """Account email and password used for HTTP basic authentication."""

    email: str
    password: str = field(repr=False)

    def authorization_header(self) -> str:
        token = base64.b64encode(f"{self.email}:{self.password}".encode("utf-8"))
        return f"Basic {token.decode('ascii')}"


DEFAULT_BASE_URL = "https://app.liquidplanner.com/api"


def build_query(params: Mapping[str, Any] | None) -> str:
    """URL-encode params, dropping None values and expanding sequences."""
    if not params:
        return ""
    filtered = {k: v for k, v in params.items() if v is not None}
    return urllib.parse.urlencode(filtered, doseq=True)


@dataclass(frozen=True)
class Endpoint:
    """API base URL plus the workspace-scoped path prefix."""

    workspace_id: str | int | None
    base_url: str = DEFAULT_BASE_URL

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def service_url(self) -> str:
        """URL of the workspace, e.g. https://.../api/workspaces/123."""
        return f"{self.base_url}/workspaces/{self.workspace_id}"

    @property
    def account_url(self) -> str:
        return f"{self.base_url}/account"

    def url(self, path: str = "", params: Mapping[str, Any] | None = None) -> str:
        """Build a workspace-scoped URL with an optional query string."""
        url = f"{self.service_url}{path}"
        query = build_query(params)
        if query:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{query}"
        return url


# =============================================================================
# Request
# =============================================================================


SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")


@dataclass(frozen=True)
class Request:
    """A single HTTP call, re-sent unchanged when throttled."""

    method: str
    url: str
    body: bytes | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
