"""GraphQL request/response capture for debugging and fixture generation.

When enabled via GHUPVOTES_LOG_API=1, every GraphQL call made by the client
and its response are written to numbered JSON files, so a run that produced
a surprising score can be replayed in a test.

Files are saved to ~/.ghupvotes/api_logs/ by default, or to
GHUPVOTES_LOG_API_DIR.

File naming:
- Request:  {sequence:04d}_request.json
- Response: {sequence:04d}_response.json
"""

import json
import logging
import os
import threading
from datetime import UTC, datetime
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

SENSITIVE_HEADERS = {"authorization", "x-github-token"}


def is_api_logging_enabled() -> bool:
    """Check if capture is enabled via GHUPVOTES_LOG_API ("1", "true", "yes", "on")."""
    value = os.environ.get("GHUPVOTES_LOG_API", "").lower()
    return value in ("1", "true", "yes", "on")


def get_log_directory() -> Path:
    """Directory for captured calls (default: ~/.ghupvotes/api_logs/)."""
    custom_dir = os.environ.get("GHUPVOTES_LOG_API_DIR")
    if custom_dir:
        return Path(custom_dir)

    return Path.home() / ".ghupvotes" / "api_logs"


def sanitize_headers(headers: httpx.Headers | dict) -> dict:
    """Mask credentials, keeping the token type (e.g. "Bearer [REDACTED]")."""
    result = dict(headers)

    for key, value in result.items():
        if key.lower() not in SENSITIVE_HEADERS or not isinstance(value, str):
            continue
        scheme, _, token = value.partition(" ")
        result[key] = f"{scheme} [REDACTED]" if token else "[REDACTED]"

    return result


def _timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _operation(body: object) -> str | None:
    """First keyword of a GraphQL document: "query" or "mutation"."""
    if isinstance(body, dict) and isinstance(body.get("query"), str):
        words = body["query"].split("(", 1)[0].split()
        return words[0] if words else None
    return None


class ApiCapture:
    """Writes request/response pairs to a directory with a shared sequence.

    Thread-safe: worker threads share one capture through the client.
    """

    def __init__(self, log_dir: Path | None = None):
        self.log_dir = log_dir or get_log_directory()
        self._lock = threading.Lock()
        self._sequence = 0

    def next_sequence(self) -> int:
        with self._lock:
            self._sequence += 1
            return self._sequence

    def _write(self, name: str, data: dict) -> Path:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        path = self.log_dir / name
        with open(path, "w") as f:
            json.dump(data, f, indent=2, default=str)
        return path

    def record_request(self, request: httpx.Request) -> int:
        seq = self.next_sequence()
        # Stored on the request so the response lands under the same number
        request.extensions["log_sequence"] = seq

        body: object = None
        if request.content:
            try:
                body = json.loads(request.content)
            except (json.JSONDecodeError, UnicodeDecodeError):
                body = request.content.decode("utf-8", errors="replace")

        path = self._write(
            f"{seq:04d}_request.json",
            {
                "sequence": seq,
                "timestamp": _timestamp(),
                "operation": _operation(body),
                "method": request.method,
                "url": str(request.url),
                "headers": sanitize_headers(request.headers),
                "body": body,
            },
        )
        logger.debug("Captured API request to %s", path)
        return seq

    def record_response(self, request: httpx.Request, response: httpx.Response) -> None:
        # the client sets response.request only after the transport returns
        seq = request.extensions.get("log_sequence") or self.next_sequence()

        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError):
            body = response.text

        rate_limit = None
        if isinstance(body, dict):
            rate_limit = (body.get("data") or {}).get("rateLimit")

        path = self._write(
            f"{seq:04d}_response.json",
            {
                "sequence": seq,
                "timestamp": _timestamp(),
                "status_code": response.status_code,
                "url": str(request.url),
                "rate_limit": rate_limit,
                "headers": dict(response.headers),
                "body": body,
            },
        )
        logger.debug("Captured API response to %s", path)

    def clear(self) -> int:
        """Delete captured files. Returns the number of files deleted."""
        if not self.log_dir.exists():
            return 0

        count = 0
        for f in self.log_dir.glob("*.json"):
            try:
                f.unlink()
                count += 1
            except OSError as e:
                logger.warning("Failed to delete %s: %s", f, e)

        with self._lock:
            self._sequence = 0
        return count


class LoggingTransport(httpx.BaseTransport):
    """Transport wrapper that captures every request and response.

    A failure to write a capture file is logged and never fails the call.
    """

    def __init__(
        self,
        capture: ApiCapture | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.capture = capture or ApiCapture()
        self._transport = transport or httpx.HTTPTransport()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        try:
            self.capture.record_request(request)
        except OSError as e:
            logger.warning("Failed to capture API request: %s", e)

        response = self._transport.handle_request(request)

        # httpx streams by default; read so the body can be captured
        response.read()

        try:
            self.capture.record_response(request, response)
        except OSError as e:
            logger.warning("Failed to capture API response: %s", e)

        return response

    def close(self) -> None:
        self._transport.close()


def create_logging_client(
    headers: dict | None = None,
    timeout: float = 30.0,
    **kwargs,
) -> httpx.Client:
    """Create an httpx Client, capturing traffic when GHUPVOTES_LOG_API is set.

    Args:
        headers: Request headers
        timeout: Request timeout in seconds
        **kwargs: Additional arguments passed to httpx.Client

    Returns:
        Configured httpx.Client
    """
    if is_api_logging_enabled():
        kwargs["transport"] = LoggingTransport()

    return httpx.Client(headers=headers, timeout=timeout, **kwargs)
