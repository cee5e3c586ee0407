"""
The Chirpy application: one HitCounter, five routes, access logging.

    any   /app/*path           file server, counted by hits.wrap
    GET   /api/healthz         readiness
    POST  /api/validate_chirp  chirp validation
    GET   /admin/metrics       hit count page
    POST  /admin/reset         zero the hit count
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core.hit_counter import HitCounter
from .handlers import AdminHandler, ChirpHandler, StaticFileHandler, readiness
from .middleware import LoggingMiddleware
from .server import HTTPServer


logger = logging.getLogger(__name__)


def create_app(
    config: Optional[ServerConfig] = None,
    hits: Optional[HitCounter] = None,
) -> HTTPServer:
    """
    Build a ready-to-run Chirpy server.

    Args:
        config: Server settings; defaults to ``ServerConfig()``.
        hits: The counter to report on. A fresh one is created when not
              given; pass one in to inspect it from outside.

    Raises:
        ValueError: Invalid config, or ``filepath_root`` is not a directory.
    """
    config = config or ServerConfig()
    hits = hits if hits is not None else HitCounter()

    server = HTTPServer(config)

    server.use(LoggingMiddleware(log_format=config.log_format))

    files = StaticFileHandler(
        config.filepath_root,
        url_prefix=config.app_prefix,
        enable_directory_listing=config.directory_listing,
    )
    prefix = config.app_prefix.rstrip("/")
    server.route(f"{prefix}/*path")(hits.wrap(files.handle))

    server.get("/api/healthz")(readiness)

    chirps = ChirpHandler()
    server.post("/api/validate_chirp")(chirps.handle)

    admin = AdminHandler(hits)
    server.get("/admin/metrics")(admin.metrics)
    server.post("/admin/reset")(admin.reset)

    logger.debug("Application built, serving %s under %s/", files.root_dir, prefix)
    return server
