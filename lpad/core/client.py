"""
Core HTTP transport for the Launchpad API.

Handles the error taxonomy, request dispatch and response capture. Redirects
are never followed here; the caller decides what a 3xx means.
"""

import logging
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from email.message import Message
from typing import Any

# Configuration
DEFAULT_TIMEOUT = 60
# Credentials never reach the debug log.
REDACTED_HEADERS = ("authorization",)

logger = logging.getLogger("lpad")


class LpadError(Exception):
    """Base error class for lpad errors."""

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


class HTTPError(LpadError):
    """Server answered with a status the request did not accept."""

    def __init__(self, status: int, body: bytes = b""):
        if body:
            message = f"Server returned {status} and body: {body.decode('utf-8', 'replace')}"
        else:
            message = f"Server returned {status} and no body."
        super().__init__(message)
        self.status = status
        self.body = body

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        result["status"] = self.status
        return result


class ProtocolError(LpadError):
    """Response violates the conventions of the API."""


class MissingLocationError(ProtocolError):
    """Redirect status received without a Location header."""

    def __init__(self, status: int):
        super().__init__(f"Got redirection status {status} without a Location")
        self.status = status


class ContentTypeError(ProtocolError):
    """Successful response whose body is not JSON."""

    def __init__(self, content_type: str):
        super().__init__(f"Non-JSON content-type: {content_type}")
        self.content_type = content_type


class TooManyRedirectsError(ProtocolError):
    """GET kept being redirected past the hop limit."""

    def __init__(self, limit: int):
        super().__init__(f"Stopped after {limit} redirections")
        self.limit = limit


class NoEntriesError(LpadError):
    """Value iterated as a collection has no entries list."""

    def __init__(self) -> None:
        super().__init__("No entries found in value")


@dataclass
class Response:
    """Status, headers and raw body of one HTTP exchange."""

    status: int
    headers: Message
    body: bytes = b""
    url: str = ""

    @property
    def location(self) -> str:
        return self.headers.get("Location") or ""

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type") or ""


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    # Returning None makes urllib surface the 3xx as an HTTPError.
    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


@dataclass
class Transport:
    """
    Low-level HTTP sender shared by every Value of a session.

    Handles:
    - Dispatch through a urllib opener that never follows redirects
    - Turning error statuses into plain responses
    - Debug dumps of requests and responses to the session logger
    """

    timeout: int = DEFAULT_TIMEOUT
    log: logging.Logger = field(default_factory=lambda: logger)

    def __post_init__(self) -> None:
        self._opener = urllib.request.build_opener(_NoRedirect)

    def send(self, request: urllib.request.Request) -> Response:
        """
        Send a prepared request and capture the response.

        Args:
            request: Fully built (and already signed) request

        Returns:
            Response for any HTTP status, including 3xx, 4xx and 5xx

        Raises:
            urllib.error.URLError: On network failures (not wrapped)

        """
        self._dump_request(request)
        try:
            with self._opener.open(request, timeout=self.timeout) as resp:
                response = Response(resp.status, resp.headers, resp.read(), resp.geturl())
        except urllib.error.HTTPError as e:
            # Error statuses are still responses; the caller judges them.
            body = b""
            if e.fp is not None:
                body = e.read()
                e.close()
            response = Response(e.code, e.headers, body, request.full_url)
        self._dump_response(response)
        return response

    def _dump_request(self, request: urllib.request.Request) -> None:
        if not self.log.isEnabledFor(logging.DEBUG):
            return
        lines = [f"{request.get_method()} {request.full_url}"]
        for key, value in request.header_items():
            if key.lower() in REDACTED_HEADERS:
                value = "<redacted>"
            lines.append(f"{key}: {value}")
        self.log.debug("request\n%s", "\n".join(lines))

    def _dump_response(self, response: Response) -> None:
        if not self.log.isEnabledFor(logging.DEBUG):
            return
        lines = [f"{response.status} {response.url}"]
        lines.extend(f"{k}: {v}" for k, v in response.headers.items())
        self.log.debug("response\n%s", "\n".join(lines))


default_transport = Transport()
