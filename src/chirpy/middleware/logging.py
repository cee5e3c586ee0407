"""
Access logging.

One line per request on the ``chirpy.access`` logger, in one of two shapes:

    text   127.0.0.1 - - [18/Oct/2026:12:00:00 +0000] "POST /api/validate_chirp" 400 29 0.41ms
    json   {"request_id": "3f2a9c1e", "method": "POST", "path": ..., "status_code": 400, ...}

Every response also gets an ``X-Request-ID`` header carrying the id that
appears in the log line, so a client report can be matched to the log.
"""

import time
import json
import uuid
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("chirpy.access")

LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style line with the duration appended."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Logs every request that passes through it.

    Install it first so its timing covers the whole chain and it sees
    requests other middleware reject. An exception from downstream is
    logged with the request line and re-raised untouched.

    Args:
        log_format: ``"text"`` or ``"json"``.
        include_request_id: Add the ``X-Request-ID`` response header.
        log_level: Level for the access lines.
        skip_paths: Paths that are served but not logged.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        if log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed: %s %s - %s: %s (%.2fms)",
                request.method, request.path, type(e).__name__, e, duration_ms,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if request.path not in self.skip_paths:
            entry = RequestLog(
                request_id=request_id,
                method=request.method,
                path=request.path,
                query=str(request.query_params) if request.query_params else "",
                client_ip=request.client_address[0],
                user_agent=request.user_agent or "-",
                status_code=int(response.status),
                content_length=len(response.body),
                duration_ms=duration_ms,
                timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
            )
            if self.log_format == "json":
                logger.log(self.log_level, json.dumps(entry.to_dict()))
            else:
                logger.log(self.log_level, entry.to_text())

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        return response
