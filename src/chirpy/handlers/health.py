"""
Readiness endpoint.

``GET /api/healthz`` answers ``200 OK`` with the plain-text body ``OK``
whenever the server is accepting connections.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, HTTPStatus


def readiness(request: HTTPRequest) -> HTTPResponse:
    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .text(HTTPStatus.OK.phrase)
        .no_cache()
        .build())
