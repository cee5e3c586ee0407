"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes a Connection hands us into an HTTPRequest object.

=============================================================================
WHAT ARRIVES ON THE SOCKET
=============================================================================

A chirp submission looks like this on the wire:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   POST /api/validate_chirp HTTP/1.1\r\n      ← request line          │
    │   Host: localhost:8080\r\n                   ┐                       │
    │   Content-Type: application/json\r\n         │ headers               │
    │   Content-Length: 27\r\n                     ┘                       │
    │   \r\n                                       ← blank line            │
    │   {"body": "hello, chirpy"}                  ← exactly 27 bytes      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The parser splits it at the blank line, splits the request line on
spaces, collects the headers into a lowercase dict and cuts the body to
Content-Length.

=============================================================================
FAILURE MODES
=============================================================================

Everything that can go wrong raises HTTPParseError, carrying the status
the client should see:

    400  malformed request line, missing terminator, short body, ".." path
    405  a method we do not know
    413  request bigger than max_request_size
    505  anything other than HTTP/1.0 or HTTP/1.1

The same exception type is raised by ``HTTPRequest.json`` when the body is
not valid JSON, so handlers have a single thing to catch at the input
boundary.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, List, Tuple, Any
from urllib.parse import parse_qs, unquote
import json


_UNSET = object()


class HTTPParseError(Exception):
    """
    A request (or a request body) could not be parsed.

    ``status_code`` is the HTTP status to answer with.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lowercase because HTTP header names are
    case-insensitive; ``request.headers["content-type"]`` always works no
    matter how the client spelled it.

    ``path_params`` starts empty and is filled by the Router when a route
    pattern captures something, e.g. ``/app/*path`` requested as
    ``/app/assets/logo.png`` gives ``{"path": "assets/logo.png"}``.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: Tuple[str, int] = ("", 0)
    raw: bytes = b""

    _decoded: Any = field(default=_UNSET, repr=False, compare=False)

    @property
    def content_type(self) -> Optional[str]:
        """Media type without parameters, lowercased (``None`` if absent)."""
        media_type, _, _ = self.get_header("content-type").partition(";")
        return media_type.strip().lower() or None

    @property
    def content_length(self) -> int:
        value = self.get_header("content-length", "0")
        return int(value) if value.isdigit() else 0

    @property
    def host(self) -> str:
        return self.get_header("host")

    @property
    def user_agent(self) -> str:
        return self.get_header("user-agent")

    @property
    def is_json(self) -> bool:
        return self.content_type == "application/json"

    @property
    def json(self) -> Any:
        """
        The body decoded as JSON, or ``None`` when the body is empty.

        Raises:
            HTTPParseError: The body is not UTF-8 or not valid JSON.
        """
        if self._decoded is _UNSET:
            if not self.body:
                return None
            try:
                self._decoded = json.loads(self.body.decode("utf-8"))
            except UnicodeDecodeError as e:
                raise HTTPParseError(f"Request body is not UTF-8: {e}") from e
            except json.JSONDecodeError as e:
                raise HTTPParseError(f"Invalid JSON body: {e}") from e
        return self._decoded

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps connections open unless told ``Connection: close``;
        HTTP/1.0 closes them unless told ``Connection: keep-alive``.
        """
        tokens = {t.strip().lower() for t in self.get_header("connection").split(",")}
        if self.version == "HTTP/1.0":
            return "keep-alive" in tokens
        return "close" not in tokens

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query_params.get(name)
        return values[0] if values else default


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    One parser is shared by every worker thread. It keeps no per-request
    state, so sharing needs no locking.

        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(raw_bytes, ("127.0.0.1", 50412))
    """

    METHODS = frozenset({
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    })
    VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: Tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Raw bytes for exactly one request (as returned by
                  ``Connection.read_request``).
            client_address: Peer ``(ip, port)``, kept for logging.

        Raises:
            HTTPParseError: The request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request of {len(data)} bytes exceeds the {self.max_request_size} byte limit",
                status_code=413,
            )

        head, sep, rest = data.partition(b"\r\n\r\n")
        if not sep:
            raise HTTPParseError("Incomplete request: no blank line after the headers")

        request_line, *header_lines = head.decode("latin-1").split("\r\n")
        method, target, version = self._split_request_line(request_line)
        path, query_params = self._split_target(target)
        headers = self._read_headers(header_lines)

        length = headers.get("content-length", "0").strip()
        if not length.isdigit():
            raise HTTPParseError(f"Invalid Content-Length: {length!r}")
        body = rest[:int(length)]
        if len(body) < int(length):
            raise HTTPParseError(
                f"Incomplete body: Content-Length is {length}, got {len(body)} bytes"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body,
            client_address=client_address,
            raw=data,
        )

    def _split_request_line(self, line: str) -> Tuple[str, str, str]:
        """``"POST /api/validate_chirp HTTP/1.1"`` → its three parts."""
        parts = line.split(" ")
        if len(parts) != 3 or not all(parts):
            raise HTTPParseError(f"Invalid request line: {line!r}")
        method, target, version = parts

        if not method.isalpha() or not method.isupper():
            raise HTTPParseError(f"Invalid method token: {method!r}")
        if method not in self.METHODS:
            raise HTTPParseError(f"Unknown method: {method}", status_code=405)

        if not version.startswith("HTTP/"):
            raise HTTPParseError(f"Invalid protocol: {version!r}")
        if version not in self.VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        return method, target, version

    @staticmethod
    def _split_target(target: str) -> Tuple[str, Dict[str, List[str]]]:
        """Decode the path, refuse ``..`` segments, parse the query string."""
        raw_path, _, query = target.partition("?")
        path = unquote(raw_path) or "/"
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..")
        return path, parse_qs(query, keep_blank_values=True)

    @staticmethod
    def _read_headers(lines: List[str]) -> Dict[str, str]:
        """
        Collect header lines into a dict with lowercase names.

        Repeated headers are joined with ", " (RFC 7230 §3.2.2). Obsolete
        line folding and lines without a colon are rejected.
        """
        headers: Dict[str, str] = {}
        for line in lines:
            if line[:1] in (" ", "\t"):
                raise HTTPParseError("Obsolete header line folding is not supported")
            name, colon, value = line.partition(":")
            name = name.strip().lower()
            if not colon or not name:
                raise HTTPParseError(f"Invalid header line: {line!r}")
            value = value.strip()
            headers[name] = f"{headers[name]}, {value}" if name in headers else value
        return headers


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """Parse a single request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
