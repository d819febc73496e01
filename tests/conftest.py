"""Pytest configuration - loads .env for live tests and provides fake transports."""

import email.message
import io
import json
import os
import threading
import urllib.error
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

# Captured before the autouse fixture below scrubs them for each test
LIVE_ENV = {name: os.environ.get(name) for name in ("LP_EMAIL", "LP_PASSWORD", "LP_WORKSPACE_ID", "LP_BASE_URL")}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's LP_* settings out of unit tests."""
    for name in list(os.environ):
        if name.startswith("LP_"):
            monkeypatch.delenv(name)


# =============================================================================
# Fake urlopen
# =============================================================================


class FakeResponse:
    """Stands in for the object urllib.request.urlopen returns."""

    def __init__(self, body: bytes):
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None


def to_bytes(body: Any) -> bytes:
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")


class FailingBody(io.BytesIO):
    """A response body whose read fails, like a connection dropped mid-body."""

    def __init__(self, failure: BaseException):
        super().__init__()
        self.failure = failure

    def read(self, size: int | None = -1) -> bytes:
        raise self.failure


class HTTPErrorReply:
    """
    A queued reply delivered as urllib.error.HTTPError.

    Passing an exception as body makes reading the error body raise it.
    """

    def __init__(self, status: int, body: Any):
        self.status = status
        self.body = body if isinstance(body, BaseException) else to_bytes(body)

    def open_body(self) -> io.BytesIO:
        if isinstance(self.body, BaseException):
            return FailingBody(self.body)
        return io.BytesIO(self.body)


class FakeUrlopen:
    """Replays queued replies and records every request sent."""

    def __init__(self) -> None:
        self.replies: list[Any] = []
        self.requests: list[Any] = []
        self.timeouts: list[Any] = []
        self.contexts: list[Any] = []

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    def __call__(self, req: Any, timeout: Any = None, context: Any = None) -> FakeResponse:
        self.requests.append(req)
        self.timeouts.append(timeout)
        self.contexts.append(context)
        if not self.replies:
            raise AssertionError(f"Unexpected request: {req.get_method()} {req.full_url}")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, HTTPErrorReply):
            raise urllib.error.HTTPError(
                req.full_url, reply.status, "error", email.message.Message(), reply.open_body()
            )
        return FakeResponse(to_bytes(reply))

    @property
    def last(self) -> Any:
        return self.requests[-1]

    def json_body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].data)


@pytest.fixture
def fake_urlopen(monkeypatch: pytest.MonkeyPatch) -> FakeUrlopen:
    fake = FakeUrlopen()
    monkeypatch.setattr("urllib.request.urlopen", fake)
    return fake


class SleepRecorder:
    """Replacement for time.sleep that records instead of blocking."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


# =============================================================================
# Local mock API server
# =============================================================================


class MockAPI:
    """Scripted replies served over real HTTP from a background thread."""

    def __init__(self) -> None:
        self.replies: list[tuple[int, Any]] = []
        self.received: list[dict[str, Any]] = []
        self.server = ThreadingHTTPServer(("127.0.0.1", 0), self._handler_class())
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)

    @property
    def base_url(self) -> str:
        host, port = self.server.server_address[:2]
        return f"http://{host}:{port}/api"

    def reply(self, body: Any, status: int = 200) -> None:
        self.replies.append((status, body))

    def _handler_class(self) -> type:
        api = self

        class Handler(BaseHTTPRequestHandler):
            def _handle(self) -> None:
                length = int(self.headers.get("Content-Length") or 0)
                api.received.append(
                    {
                        "method": self.command,
                        "path": self.path,
                        "headers": self.headers,
                        "body": self.rfile.read(length) if length else None,
                    }
                )
                status, body = api.replies.pop(0) if api.replies else (404, {"error": "NotFound"})
                payload = to_bytes(body)
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(payload)))
                self.end_headers()
                self.wfile.write(payload)

            do_GET = do_POST = do_PUT = do_DELETE = _handle

            def log_message(self, format: str, *args: Any) -> None:
                pass

        return Handler

    def start(self) -> None:
        self.thread.start()

    def stop(self) -> None:
        self.server.shutdown()
        self.server.server_close()


@pytest.fixture
def mock_api():
    api = MockAPI()
    api.start()
    yield api
    api.stop()
