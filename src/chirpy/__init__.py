"""
=============================================================================
CHIRPY
=============================================================================

A small social-posting backend on a from-scratch threaded HTTP/1.1 server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   chirpy.app          create_app(): routes + shared HitCounter      │
    │   chirpy.handlers     file server, healthz, admin, chirp validation │
    │   chirpy.middleware   access log, request counting                  │
    │   chirpy.http         parser, responses, router, status codes       │
    │   chirpy.core         sockets, connections, thread pool, counter    │
    │   chirpy.config       ServerConfig (defaults < env/.env < CLI)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    from chirpy import create_app, ServerConfig

    app = create_app(ServerConfig(port=8080, filepath_root="./public"))
    app.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig
from .app import create_app

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
