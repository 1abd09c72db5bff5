"""Pytest configuration - loads .env for live tests and provides a scripted HTTP server."""

import queue
import threading
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from email.message import Message
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


@dataclass
class RecordedRequest:
    """One request as the server saw it."""

    method: str
    path: str
    query: str
    headers: Message
    body: bytes = b""

    @property
    def params(self) -> dict[str, list[str]]:
        return urllib.parse.parse_qs(self.query)

    @property
    def form(self) -> dict[str, list[str]]:
        return urllib.parse.parse_qs(self.body.decode("utf-8"))


@dataclass
class PreparedResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""


class ScriptServer:
    """Local HTTP server answering with prepared responses, in order."""

    def __init__(self) -> None:
        self.responses: queue.Queue[PreparedResponse] = queue.Queue()
        self.requests: queue.Queue[RecordedRequest] = queue.Queue()
        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), self._handler())
        host, port = self.httpd.server_address[:2]
        self.url = f"http://{host}:{port}"
        self._thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self.httpd.shutdown()
        self.httpd.server_close()

    def prepare(self, status: int, headers: dict[str, str] | None = None, body: str = "") -> None:
        self.responses.put(PreparedResponse(status, dict(headers or {}), body))

    def wait_request(self, timeout: float = 5.0) -> RecordedRequest:
        return self.requests.get(timeout=timeout)

    def pending_requests(self) -> int:
        return self.requests.qsize()

    def _handler(self) -> type[BaseHTTPRequestHandler]:
        server = self

        class Handler(BaseHTTPRequestHandler):
            def _handle(self) -> None:
                length = int(self.headers.get("Content-Length") or 0)
                body = self.rfile.read(length) if length else b""
                path, _, query = self.path.partition("?")
                server.requests.put(
                    RecordedRequest(self.command, path, query, self.headers, body),
                )
                try:
                    prepared = server.responses.get_nowait()
                except queue.Empty:
                    prepared = PreparedResponse(500, {}, "no response prepared")
                payload = prepared.body.encode("utf-8")
                self.send_response(prepared.status)
                for key, value in prepared.headers.items():
                    self.send_header(key, value)
                self.send_header("Content-Length", str(len(payload)))
                self.end_headers()
                self.wfile.write(payload)

            do_GET = _handle
            do_POST = _handle
            do_PATCH = _handle

            def log_message(self, format, *args):  # noqa: A002
                pass

        return Handler


@pytest.fixture
def server():
    """A fresh scripted server per test."""
    srv = ScriptServer()
    srv.start()
    yield srv
    srv.stop()


class DummyAuth:
    """Auth that records what it was asked to do."""

    def __init__(self, login_error: Exception | None = None, sign_error: Exception | None = None):
        self.login_base_url: str | None = None
        self.signed: list[urllib.request.Request] = []
        self.login_error = login_error
        self.sign_error = sign_error

    def login(self, base_url: str) -> None:
        self.login_base_url = base_url
        if self.login_error:
            raise self.login_error

    def sign(self, request: urllib.request.Request) -> None:
        self.signed.append(request)
        if self.sign_error:
            raise self.sign_error
        request.add_header("Authorization", "Dummy signed")


@pytest.fixture
def dummy_auth():
    return DummyAuth()
