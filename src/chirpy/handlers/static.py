"""
=============================================================================
FILE SERVER
=============================================================================

Serves a directory tree under a URL prefix. Chirpy mounts it at ``/app/``
with the prefix stripped:

    GET /app/                   → <root>/index.html   (or a listing)
    GET /app/assets/logo.png    → <root>/assets/logo.png
    GET /app/assets             → 301 to /app/assets/ (it is a directory)

=============================================================================
REQUEST FLOW
=============================================================================

    path param "assets/logo.png"
        │
        ▼
    resolve against root ──► outside root? ──► 403
        │
        ▼
    directory? ──► no trailing slash ──► 301 to path + "/"
        │      ──► index.html present ──► serve it
        │      ──► listing enabled ──► HTML listing
        │      ──► else ──► 403
        ▼
    missing? ──► 404
        │
        ▼
    If-None-Match matches ETag? ──► 304
        │
        ▼
    200 with Content-Type, ETag, Last-Modified, Cache-Control

The parser already refuses ``..`` segments with a 400; the resolve-and-
compare step here also catches symlinks pointing out of the root.

=============================================================================
"""

import html
import logging
from pathlib import Path
from datetime import datetime, timezone
from urllib.parse import quote

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    format_http_date, not_found, forbidden, respond_with_error,
)
from ..http.mime_types import get_content_type


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves files below ``root_dir``.

        files = StaticFileHandler(".", url_prefix="/app")
        router.add_route("/app/*path", files.handle)

    Raises:
        ValueError: ``root_dir`` is not an existing directory.
    """

    def __init__(
        self,
        root_dir: str,
        url_prefix: str = "/app",
        index_file: str = "index.html",
        cache_max_age: int = 3600,
        enable_directory_listing: bool = True,
    ):
        self.root_dir = Path(root_dir).resolve()
        self.url_prefix = url_prefix.rstrip("/")
        self.index_file = index_file
        self.cache_max_age = cache_max_age
        self.enable_directory_listing = enable_directory_listing

        if not self.root_dir.is_dir():
            raise ValueError(f"File server root is not a directory: {root_dir}")

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        file_path = request.path_params.get("path")
        if file_path is None:
            file_path = request.path
            if file_path.startswith(self.url_prefix):
                file_path = file_path[len(self.url_prefix):]
        file_path = file_path.lstrip("/")

        full_path = (self.root_dir / file_path).resolve()
        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning("Path escapes file server root: %s", file_path)
            return forbidden("Access denied")

        if full_path.is_dir():
            if not request.path.endswith("/"):
                return ResponseBuilder().redirect(quote(request.path + "/"), permanent=True).build()

            index_path = full_path / self.index_file
            if index_path.is_file():
                full_path = index_path
            elif self.enable_directory_listing:
                return self._directory_listing(full_path, request.path)
            else:
                return forbidden("Directory listing not allowed")

        if not full_path.is_file():
            return not_found(f"File not found: {file_path}")

        return self._serve_file(full_path, request)

    def _serve_file(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        try:
            stat = path.stat()
            etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'

            if _etag_matches(request.get_header("if-none-match"), etag):
                return (ResponseBuilder()
                    .status(HTTPStatus.NOT_MODIFIED)
                    .header("ETag", etag)
                    .build())

            content = path.read_bytes()
        except PermissionError:
            return forbidden("Permission denied")
        except OSError as e:
            logger.error("Error serving file %s: %s", path, e)
            return respond_with_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to read file")

        mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Content-Type", get_content_type(path))
            .header("ETag", etag)
            .header("Last-Modified", format_http_date(mtime))
            .cache(self.cache_max_age)
            .body(content)
            .build())

    def _directory_listing(self, path: Path, url_path: str) -> HTTPResponse:
        entries = []
        for entry in sorted(path.iterdir(), key=lambda p: p.name):
            name = entry.name + ("/" if entry.is_dir() else "")
            entries.append(f'<a href="{quote(name)}">{html.escape(name)}</a>')

        page = (
            "<!DOCTYPE html>\n"
            f"<title>Index of {html.escape(url_path)}</title>\n"
            "<pre>\n"
            + "\n".join(entries)
            + "\n</pre>\n"
        )
        return ResponseBuilder().html(page).build()


def _etag_matches(header: str, etag: str) -> bool:
    """If-None-Match may hold ``*`` or a comma-separated list (RFC 7232 §3.2)."""
    if not header:
        return False
    candidates = [c.strip() for c in header.split(",")]
    return "*" in candidates or etag in candidates or f"W/{etag}" in candidates
