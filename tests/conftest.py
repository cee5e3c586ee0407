"""
pytest configuration and fixtures.
"""

import json
import socket
import threading
from pathlib import Path
from typing import Generator, Optional

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from chirpy import HTTPServer, ServerConfig, create_app
from chirpy.core import HitCounter
from chirpy.http import HTTPRequest


def make_request(
    method: str = "GET",
    path: str = "/",
    body: bytes = b"",
    headers: Optional[dict] = None,
    client_address: tuple = ("127.0.0.1", 50000),
) -> HTTPRequest:
    """Build an HTTPRequest directly, without going through the parser."""
    all_headers = {k.lower(): v for k, v in (headers or {}).items()}
    if body:
        all_headers.setdefault("content-length", str(len(body)))
    return HTTPRequest(
        method=method,
        path=path,
        headers=all_headers,
        body=body,
        client_address=client_address,
    )


def chirp_request(payload) -> HTTPRequest:
    """A POST /api/validate_chirp request carrying ``payload`` as JSON."""
    body = json.dumps(payload).encode("utf-8")
    return make_request(
        "POST",
        "/api/validate_chirp",
        body=body,
        headers={"Content-Type": "application/json"},
    )


@pytest.fixture
def sample_get_request() -> bytes:
    """Raw GET for a static asset."""
    return (
        b"GET /app/assets/logo.png?v=2&size=small HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: image/png\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Raw chirp submission."""
    body = b'{"body": "I had something interesting for breakfast"}'
    head = (
        "POST /api/validate_chirp HTTP/1.1\r\n"
        "Host: localhost:8080\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n"
        "\r\n"
    )
    return head.encode("ascii") + body


@pytest.fixture
def free_port() -> int:
    """A port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """A small directory tree for the file server."""
    (tmp_path / "index.html").write_text("<html><body>Welcome to Chirpy</body></html>")
    assets = tmp_path / "assets"
    assets.mkdir()
    (assets / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\nfake")
    (assets / "style.css").write_text("body { color: #333; }")
    return tmp_path


@pytest.fixture
def config(site_root: Path) -> ServerConfig:
    """Test configuration: any free port, few workers, short timeouts."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        filepath_root=str(site_root),
        log_level="WARNING",
    )


class RunningServer:
    """An HTTPServer running in a background thread."""

    def __init__(self, server: HTTPServer, hits: HitCounter):
        self.server = server
        self.hits = hits
        self._thread: Optional[threading.Thread] = None

    @property
    def host(self) -> str:
        return self.server.address[0]

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=15.0)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """The real Chirpy application, listening on a free port."""
    hits = HitCounter()
    srv = RunningServer(create_app(config, hits=hits), hits)
    srv.start()

    yield srv

    srv.stop()
