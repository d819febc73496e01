"""
Core HTTP client for the LiquidPlanner API.

Handles authentication, request/response decoding, throttle-aware retries
and error handling.
"""

import http.client
import json
import logging
import os
import ssl
import threading
import time
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from typing import Any

from lp_cli.core.types import (
    DEFAULT_BASE_URL,
    SUPPORTED_METHODS,
    Credentials,
    Endpoint,
    Request,
    ThrottleSignal,
    build_query,
)

logger = logging.getLogger(__name__)

# Configuration
DEFAULT_TIMEOUT = 60

FALSE_VALUES = ("0", "false", "no", "off")


class CLIError(Exception):
    """Base error class for CLI errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class APIError(CLIError):
    """API error with status code and message."""

    def __init__(self, message: str, status: int = 0, details: dict | None = None):
        super().__init__(message, details)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        return result


class ThrottleLimitError(APIError):
    """The API kept throttling past the configured retry bounds."""

    def __init__(self, signal: ThrottleSignal, attempts: int, total_wait: float):
        super().__init__(
            f"Gave up after {attempts} throttled attempts: {signal.message}",
            status=429,
            details={"message": signal.message, "attempts": attempts, "total_wait": total_wait},
        )
        self.signal = signal
        self.attempts = attempts
        self.total_wait = total_wait


class TransportError(CLIError):
    """Network or TLS failure before a complete response arrived."""


class RequestCancelled(CLIError):
    """The cancellation event was set before sending or while waiting."""


class ValidationError(CLIError):
    """Validation error for local input/data issues (not API errors)."""


ThrottleObserver = Callable[[ThrottleSignal, Request], None]


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() not in FALSE_VALUES


class APIClient:
    """
    Low-level HTTP client for the LiquidPlanner API.

    Handles:
    - HTTP basic authentication
    - HTTP methods (GET, POST, PUT, DELETE)
    - JSON decoding with a raw-text fallback
    - Waiting and re-sending when the API reports throttling
    """

    def __init__(
        self,
        email: str | None = None,
        password: str | None = None,
        workspace_id: str | int | None = None,
        base_url: str | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        verify_ssl: bool | None = None,
        max_retries: int | None = None,
        max_total_wait: float | None = None,
        debug: bool | None = None,
        on_throttle: ThrottleObserver | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the API client.

        Args:
            email: Account email (or LP_EMAIL env var)
            password: Account password (or LP_PASSWORD env var)
            workspace_id: Workspace ID (or LP_WORKSPACE_ID env var)
            base_url: API base URL (or LP_BASE_URL env var)
            timeout: Network timeout in seconds, None to wait forever
            verify_ssl: Verify TLS certificates (or LP_VERIFY_SSL, default on)
            max_retries: Max throttle retries per call, None for unbounded
            max_total_wait: Max seconds spent waiting per call, None for unbounded
            debug: Log a notice whenever throttling kicks in (or LP_DEBUG)
            on_throttle: Callback invoked with each throttle before waiting;
                setting it enables the callback regardless of debug
            sleep: Blocking wait used when no cancel event is given

        """
        email = email or os.environ.get("LP_EMAIL")
        password = password or os.environ.get("LP_PASSWORD")
        self.credentials = Credentials(email, password) if email and password else None
        self.endpoint = Endpoint(
            workspace_id=workspace_id or os.environ.get("LP_WORKSPACE_ID"),
            base_url=base_url or os.environ.get("LP_BASE_URL") or DEFAULT_BASE_URL,
        )
        self.timeout = timeout
        self.verify_ssl = _env_flag("LP_VERIFY_SSL", True) if verify_ssl is None else verify_ssl
        self.max_retries = max_retries
        self.max_total_wait = max_total_wait
        self.debug = _env_flag("LP_DEBUG", False) if debug is None else debug
        self.on_throttle = on_throttle
        self._sleep = sleep
        self._ssl_context = self._create_ssl_context()

    def _create_ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.verify_ssl:
            logger.warning("TLS certificate verification is disabled")
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _ensure_credentials(self) -> Credentials:
        """Ensure email and password are configured."""
        if self.credentials is None:
            raise ValidationError("LP_EMAIL and LP_PASSWORD environment variables not set")
        return self.credentials

    def _ensure_workspace(self) -> Endpoint:
        """Ensure a workspace ID is available."""
        if not self.endpoint.workspace_id:
            raise ValidationError("Workspace ID required. Set LP_WORKSPACE_ID env var or use --workspace flag")
        return self.endpoint

    # =========================================================================
    # Request execution
    # =========================================================================

    def _send(self, request: Request) -> str:
        """
        Perform one HTTP round trip and return the response body as text.

        Error statuses still carry a body worth decoding (throttling among
        them), so only failures without a response raise.
        """
        credentials = self._ensure_credentials()
        headers = {
            "Authorization": credentials.authorization_header(),
            "Accept": "application/json",
        }
        if request.body is not None:
            headers["Content-Type"] = "application/json"

        req = urllib.request.Request(request.url, data=request.body, headers=headers, method=request.method)
        logger.debug("%s %s", request.method, request.url)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout, context=self._ssl_context) as response:
                return response.read().decode("utf-8", errors="replace")

        except urllib.error.HTTPError as e:
            logger.debug("%s %s returned HTTP %s", request.method, request.url, e.code)
            try:
                return e.read().decode("utf-8", errors="replace")
            except (http.client.HTTPException, OSError) as exc:
                raise TransportError(
                    f"Connection error reading HTTP {e.code} response: {exc}",
                    details={"method": request.method, "url": request.url},
                ) from exc
            finally:
                e.close()

        except urllib.error.URLError as e:
            raise TransportError(
                f"Connection error: {e.reason}",
                details={"method": request.method, "url": request.url},
            ) from e

        except (http.client.HTTPException, OSError) as e:
            # Timeouts, resets and TLS failures that escape URLError wrapping
            raise TransportError(
                f"Connection error: {e}",
                details={"method": request.method, "url": request.url},
            ) from e

    @staticmethod
    def decode(text: str) -> Any:
        """Parse a response body as JSON, or return it unchanged if it isn't JSON."""
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    def _check_limits(self, signal: ThrottleSignal, retries: int, total_wait: float) -> None:
        if self.max_retries is not None and retries >= self.max_retries:
            raise ThrottleLimitError(signal, attempts=retries + 1, total_wait=total_wait)
        if self.max_total_wait is not None and total_wait + signal.wait_seconds > self.max_total_wait:
            raise ThrottleLimitError(signal, attempts=retries + 1, total_wait=total_wait)

    def _notify_throttle(self, signal: ThrottleSignal, request: Request) -> None:
        if self.debug:
            logger.warning(
                "API throttling in effect. %s (waiting %s seconds)",
                signal.message,
                signal.wait_seconds,
            )
        if self.on_throttle is not None:
            self.on_throttle(signal, request)

    def _wait(self, seconds: float, cancel_event: threading.Event | None) -> None:
        if cancel_event is None:
            self._sleep(seconds)
        elif cancel_event.wait(seconds):
            raise RequestCancelled("Request cancelled while waiting out throttling")

    def execute(
        self,
        method: str,
        url: str,
        body: bytes | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Any:
        """
        Make an HTTP request, re-sending it for as long as the API throttles.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            url: Absolute URL including any query string
            body: JSON-encoded request body for POST/PUT
            cancel_event: Optional event that aborts the call when set

        Returns:
            Decoded JSON value, or the raw response text if it isn't JSON

        Raises:
            TransportError: On network or TLS failures (never retried)
            ThrottleLimitError: When max_retries or max_total_wait is exceeded
            RequestCancelled: When cancel_event is set
            ValidationError: On unsupported methods or missing credentials

        """
        request = Request(method, url, body)
        if request.method not in SUPPORTED_METHODS:
            raise ValidationError(f"Unsupported HTTP method: {method}")

        retries = 0
        total_wait = 0.0
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise RequestCancelled("Request cancelled before sending")

            result = self.decode(self._send(request))

            signal = ThrottleSignal.from_result(result)
            if signal is None:
                return result

            self._check_limits(signal, retries, total_wait)
            self._notify_throttle(signal, request)
            self._wait(signal.wait_seconds, cancel_event)
            retries += 1
            total_wait += signal.wait_seconds

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    @staticmethod
    def encode(data: Any) -> bytes | None:
        """JSON-encode a request body."""
        if data is None:
            return None
        return json.dumps(data).encode("utf-8")

    def get(self, url: str, params: Mapping[str, Any] | None = None) -> Any:
        """Make a GET request."""
        query = build_query(params)
        if query:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{query}"
        return self.execute("GET", url)

    def post(self, url: str, data: Any = None) -> Any:
        """Make a POST request."""
        return self.execute("POST", url, self.encode(data))

    def put(self, url: str, data: Any = None) -> Any:
        """Make a PUT request."""
        return self.execute("PUT", url, self.encode(data))

    def delete(self, url: str) -> Any:
        """Make a DELETE request."""
        return self.execute("DELETE", url)

    # =========================================================================
    # Workspace-scoped helpers
    # =========================================================================

    def workspace_url(self, path: str = "", params: Mapping[str, Any] | None = None) -> str:
        """Build a URL under the workspace path prefix."""
        return self._ensure_workspace().url(path, params)

    def workspace_get(self, path: str = "", params: Mapping[str, Any] | None = None) -> Any:
        """Make a GET request to a workspace-scoped endpoint."""
        return self.get(self.workspace_url(path), params)

    def workspace_post(self, path: str, data: Any = None) -> Any:
        """Make a POST request to a workspace-scoped endpoint."""
        return self.post(self.workspace_url(path), data)

    def workspace_put(self, path: str, data: Any = None) -> Any:
        """Make a PUT request to a workspace-scoped endpoint."""
        return self.put(self.workspace_url(path), data)

    def workspace_delete(self, path: str) -> Any:
        """Make a DELETE request to a workspace-scoped endpoint."""
        return self.delete(self.workspace_url(path))
