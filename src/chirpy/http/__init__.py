"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Bytes in, bytes out:

    socket bytes ──► RequestParser ──► HTTPRequest
                                            │
                                            ▼
                                         Router ──► handler
                                                       │
                                                       ▼
    socket bytes ◄── to_bytes() ◄──────────────── HTTPResponse

    request.py       RequestParser, HTTPRequest, HTTPParseError
    response.py      HTTPResponse, ResponseBuilder, respond_with_json/error
    router.py        Router (:param and *wildcard patterns)
    status_codes.py  HTTPStatus
    mime_types.py    extension → Content-Type for the file server

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    forbidden,
    not_found,
    method_not_allowed,
    internal_error,
    respond_with_json,
    respond_with_error,
)
from .router import Router, Route
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "respond_with_json",
    "respond_with_error",

    "Router",
    "Route",

    "HTTPStatus",

    "get_mime_type",
    "get_content_type",
]
