"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the layers together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ── accept ──► ThreadPool.submit(_serve_connection)    │
    │                                        │                             │
    │                                        ▼  (worker thread)            │
    │   Connection.read_request ──► RequestParser.parse                    │
    │                                        │                             │
    │                                        ▼                             │
    │   MiddlewarePipeline.wrap(Router.handle)(request) ──► HTTPResponse   │
    │                                        │                             │
    │                                        ▼                             │
    │   Connection.send_response ──► keep-alive? loop : close              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Failures are contained per connection:

    parse error          → error JSON with the parser's status, close
    request too large    → 413, close
    first-request timeout→ 408, close
    handler raises       → 500 {"error": "Internal Server Error"}, logged
                           with traceback; the connection stays usable

=============================================================================
"""

import logging
from typing import Optional, Callable, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool, RequestTooLargeError
from .http import (
    HTTPRequest, HTTPResponse, HTTPStatus,
    RequestParser, HTTPParseError, Router,
    respond_with_error,
)
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class HTTPServer:
    """
    A threaded HTTP/1.1 server with routing and middleware.

        server = HTTPServer(ServerConfig(port=8080))

        @server.get("/api/healthz")
        def healthz(request):
            return ok("OK")

        server.use(LoggingMiddleware())
        server.run()

    Raises:
        ValueError: ``config`` fails validation.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        config = config or ServerConfig()
        config.validate()
        self.config = config

        self.router = Router()
        self.middleware = MiddlewarePipeline()

        self._parser = RequestParser(max_request_size=config.max_request_size)
        self._pool = ThreadPool(min_workers=config.min_workers, max_workers=config.max_workers)
        self._listener = SocketServer(config)
        self._chain: Optional[Handler] = None

    # ─── Registration ────────────────────────────────────────────────────

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add server-wide middleware. The first added runs outermost."""
        self.middleware.add(middleware)
        return self

    def route(self, path: str, method: Optional[str] = None):
        return self.router.route(path, method)

    def get(self, path: str):
        return self.router.get(path)

    def post(self, path: str):
        return self.router.post(path)

    def put(self, path: str):
        return self.router.put(path)

    def delete(self, path: str):
        return self.router.delete(path)

    def patch(self, path: str):
        return self.router.patch(path)

    # ─── Dispatch ────────────────────────────────────────────────────────

    def build_handler(self) -> Handler:
        """The full chain (middleware around the router) as a plain callable."""
        return self.middleware.wrap(self.router.handle)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run one request through the chain without a socket.

        Exceptions become a 500 exactly as they would on the wire.
        """
        return self._dispatch(self._chain or self.build_handler(), request)

    def _dispatch(self, chain: Handler, request: HTTPRequest) -> HTTPResponse:
        try:
            return chain(request)
        except Exception:
            logger.exception("Unhandled error serving %s %s", request.method, request.path)
            return respond_with_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")

    # ─── Lifecycle ───────────────────────────────────────────────────────

    @property
    def address(self) -> Tuple[str, int]:
        """Bound ``(host, port)`` once listening (the real port when 0 was asked for)."""
        return self._listener.address

    @property
    def is_running(self) -> bool:
        return self._pool.is_running

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Serve until ``shutdown()``, SIGINT or SIGTERM. Blocks.

        Raises:
            OSError: The address could not be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._configure_logging()
        self._chain = self.build_handler()
        self._pool.start()
        try:
            self._listener.start(self._on_accept, on_listening=self._announce)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            logger.info("Shutting down server...")
            self._pool.shutdown(wait=True, timeout=10.0)
            logger.info("Server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections. False on timeout."""
        return self._listener.wait_until_listening(timeout)

    def shutdown(self):
        """Stop accepting connections; ``run()`` returns once workers drain."""
        self._listener.shutdown()

    def _configure_logging(self):
        level = logging.getLevelName(self.config.log_level.upper())
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        logging.getLogger("chirpy").setLevel(level)

    def _announce(self, address: Tuple[str, int]):
        host, port = address
        logger.info("%s listening on http://%s:%d", self.config.server_name, host, port)
        print()
        print(f"  {self.config.server_name} on http://{host}:{port}")
        print(f"  Serving {self.config.filepath_root} under {self.config.app_prefix.rstrip('/')}/")
        print(f"  Workers: {self.config.min_workers}-{self.config.max_workers}")
        print()
        for route in self.router.routes:
            print(f"  {route.method or 'ANY':<7} {route.path}")
        print()
        print("  Press Ctrl+C to stop")
        print()

    # ─── Connections ─────────────────────────────────────────────────────

    def _on_accept(self, conn: Connection):
        """Accept-loop callback: hand the connection to a worker or shed it."""
        try:
            queued = self._pool.submit(self._serve_connection, args=(conn,), block=False)
        except RuntimeError:
            queued = False

        if not queued:
            logger.warning("[%s] No worker available, answering 503", conn.id)
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _serve_connection(self, conn: Connection):
        """Answer requests on ``conn`` until either side closes it (worker thread)."""
        with conn:
            while self._pool.is_running:
                request = self._next_request(conn)
                if request is None:
                    return

                response = self._dispatch(self._chain, request)
                keep_open = self.config.keep_alive and request.is_keep_alive
                self._finalize(request, response, keep_open)

                if not conn.send_response(response.to_bytes(self.config.server_name)):
                    return
                if not keep_open:
                    return
                conn.set_keep_alive()

    def _next_request(self, conn: Connection) -> Optional[HTTPRequest]:
        """Read and parse one request. Errors are answered here and give None."""
        try:
            raw = conn.read_request()
            if raw is None:
                return None
            return self._parser.parse(raw, conn.address)
        except TimeoutError:
            self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
        except RequestTooLargeError as e:
            self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
        except HTTPParseError as e:
            logger.debug("[%s] Bad request: %s", conn.id, e)
            self._send_error(conn, e.status_code, str(e))
        return None

    def _finalize(self, request: HTTPRequest, response: HTTPResponse, keep_open: bool):
        """Connection headers, and an empty body for HEAD."""
        if keep_open:
            response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")
        else:
            response.headers["Connection"] = "close"

        if request.method == "HEAD":
            response.headers.setdefault("Content-Length", str(len(response.body)))
            response.body = b""

    def _send_error(self, conn: Connection, status: int, message: str):
        response = respond_with_error(status, message).set_header("Connection", "close")
        conn.send_response(response.to_bytes(self.config.server_name))


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
#   HTTPServer   config + socket server + thread pool + parser + router
#                + middleware; one worker per connection; keep-alive loop;
#                exceptions contained per request
#
# =============================================================================
