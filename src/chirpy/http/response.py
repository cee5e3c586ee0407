"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds the bytes Chirpy writes back to a client.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   HTTP/1.1 400 Bad Request\r\n                ← status line          │
    │   Content-Type: application/json\r\n          ┐                      │
    │   Content-Length: 29\r\n                      │ headers (Length,     │
    │   Date: Sun, 18 Oct 2026 12:00:00 GMT\r\n     │ Date and Server are  │
    │   Server: Chirpy/1.0\r\n                      ┘ filled in for you)   │
    │   \r\n                                                               │
    │   {"error":"Chirp is too long"}               ← body                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Handlers return an HTTPResponse; the server serializes it with
``to_bytes()``. Most handlers never touch HTTPResponse directly. They use
the ResponseBuilder or one of the one-liners at the bottom of this module:

    respond_with_json(200, {"cleaned_body": "hello"})
    respond_with_error(400, "Chirp is too long")
    ok("OK")

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional, Dict, Any, Union
import json
import logging

from .status_codes import HTTPStatus
from .mime_types import get_content_type


logger = logging.getLogger(__name__)

DEFAULT_SERVER_NAME = "Chirpy/1.0"

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    A response waiting to be written to the socket.

        handler ──► HTTPResponse ──► to_bytes() ──► socket.sendall()
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """``"HTTP/1.1 200 OK"``"""
        return f"{self.version} {int(self.status)} {_phrase(self.status)}"

    @property
    def text(self) -> str:
        """The body decoded as UTF-8 (mostly useful in tests and logs)."""
        return self.body.decode("utf-8", errors="replace")

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize status line, headers and body.

        Content-Length, Date and Server are added when the handler did not
        set them. Content-Length always describes ``self.body``, so a HEAD
        response must set it explicitly before emptying the body.
        """
        defaults = {
            "Content-Length": str(len(self.body)),
            "Date": format_http_date(datetime.now(timezone.utc)),
            "Server": server_name,
        }
        headers = {**defaults, **self.headers}

        head = self.status_line + "\r\n"
        head += "".join(f"{name}: {value}\r\n" for name, value in headers.items())
        return head.encode("latin-1", errors="replace") + b"\r\n" + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Every setter returns ``self``; ``build()`` ends the chain:

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .html(page)
            .no_cache()
            .build())
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._server_name = server_name

    def status(self, status: Union[HTTPStatus, int]) -> "ResponseBuilder":
        self._status = _coerce_status(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = TEXT_CONTENT_TYPE) -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: str) -> "ResponseBuilder":
        self._body = html.encode("utf-8")
        self._headers["Content-Type"] = HTML_CONTENT_TYPE
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        Serialize ``data`` as compact JSON.

        Raises:
            TypeError, ValueError: ``data`` is not JSON-serializable.
        """
        self._body = json.dumps(
            data, ensure_ascii=False, separators=(",", ":")
        ).encode("utf-8")
        self._headers["Content-Type"] = JSON_CONTENT_TYPE
        return self

    def file(self, content: bytes, filename: str) -> "ResponseBuilder":
        """Body from a file, with Content-Type picked from its extension."""
        self._body = content
        self._headers["Content-Type"] = get_content_type(filename)
        return self

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        self._headers["Location"] = location
        return self

    def no_cache(self) -> "ResponseBuilder":
        self._headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
        return self

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        return self.build().to_bytes(self._server_name)


# ─── Helpers ─────────────────────────────────────────────────────────────


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an IMF-fixdate (RFC 7231 §7.1.1.1).

    >>> format_http_date(datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc))
    'Sun, 18 Oct 2026 12:00:00 GMT'
    """
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def _coerce_status(status: Union[HTTPStatus, int]) -> Union[HTTPStatus, int]:
    try:
        return HTTPStatus(status)
    except ValueError:
        return int(status)


def _phrase(status: Union[HTTPStatus, int]) -> str:
    if isinstance(status, HTTPStatus):
        return status.phrase
    return "Unknown"


def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    200 OK. A dict or list becomes JSON, a str becomes text/plain, bytes
    are sent as-is.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or TEXT_CONTENT_TYPE)
    else:
        builder.body(body)
        if content_type:
            builder.header("Content-Type", content_type)
    return builder.build()


def not_found(message: str = "Not Found") -> HTTPResponse:
    return respond_with_error(HTTPStatus.NOT_FOUND, message)


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    return respond_with_error(HTTPStatus.FORBIDDEN, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 with the ``Allow`` header RFC 7231 §6.5.5 requires."""
    response = respond_with_error(HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed")
    response.set_header("Allow", ", ".join(sorted(allowed_methods)))
    return response


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return respond_with_error(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def respond_with_json(status: Union[HTTPStatus, int], payload: Any) -> HTTPResponse:
    """
    Send ``payload`` as a JSON body with the given status.

    If the payload cannot be serialized the failure is logged and a bare
    500 with an empty body goes out instead.
    """
    try:
        return ResponseBuilder().status(status).json(payload).build()
    except (TypeError, ValueError) as e:
        logger.error("Error marshalling JSON: %s", e)
        return HTTPResponse(status=HTTPStatus.INTERNAL_SERVER_ERROR)


def respond_with_error(status: Union[HTTPStatus, int], message: str) -> HTTPResponse:
    """``{"error": message}`` with the given status."""
    return respond_with_json(status, {"error": message})


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
#   HTTPResponse      status + headers + body, serialized by to_bytes()
#   ResponseBuilder   fluent construction (text/html/json/file/redirect)
#   respond_with_*    the JSON envelope every API endpoint answers with
#
# =============================================================================
