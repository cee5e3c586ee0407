"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) pairs to handlers.

Chirpy's whole route table fits on one screen:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   any   /app/*path           → file server (counts a hit)            │
    │   GET   /api/healthz         → "OK"                                  │
    │   POST  /api/validate_chirp  → chirp validation                      │
    │   GET   /admin/metrics       → hit counter page                      │
    │   POST  /admin/reset         → zero the hit counter                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PATTERNS
=============================================================================

    /api/healthz        static, exact match (a trailing slash is ignored)
    /users/:id          one segment        /users/42        → {"id": "42"}
    /app/*path          rest of the path   /app/css/a.css   → {"path": "css/a.css"}
                                           /app/            → {"path": ""}
                                           /app             → {"path": ""}

A wildcard route also matches its bare prefix, so ``/app`` and ``/app/``
both reach the file server's root. Wildcard paths are matched without
trimming the trailing slash; the file server needs it to tell
``/app/assets/`` (a directory) from ``/app/assets``.

A route registered for GET also answers HEAD.

=============================================================================
NO MATCH
=============================================================================

    path known, method not     → 405 with an Allow header
    path unknown               → 404

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List, Tuple
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


Handler = Callable[[HTTPRequest], HTTPResponse]

ALL_METHODS = ("DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT")


def compile_pattern(path: str) -> Tuple[re.Pattern, Optional[str]]:
    """
    Turn a route pattern into an anchored regex and the wildcard name, if any.

        /users/:id     → ^/users/(?P<id>[^/]+)$
        /app/*path     → ^/app(?:/(?P<path>.*))?$

    Raises:
        ValueError: A wildcard segment is not the last one.
    """
    segments = [s for s in path.split("/") if s]
    wildcard = None
    regex = ""

    for position, segment in enumerate(segments, start=1):
        kind, name = segment[:1], segment[1:]
        if kind == "*":
            if position != len(segments):
                raise ValueError(f"Wildcard must be the last segment: {path}")
            wildcard = name or "wildcard"
            regex += f"(?:/(?P<{wildcard}>.*))?"
        elif kind == ":":
            regex += f"/(?P<{name}>[^/]+)"
        else:
            regex += "/" + re.escape(segment)

    return re.compile("^" + (regex or "/") + "$"), wildcard


@dataclass
class Route:
    """A URL pattern bound to a handler, optionally restricted to one method."""

    path: str
    handler: Handler
    method: Optional[str] = None

    pattern: re.Pattern = field(init=False, repr=False)
    wildcard: Optional[str] = field(init=False, repr=False)

    def __post_init__(self):
        if self.method:
            self.method = self.method.upper()
        self.pattern, self.wildcard = compile_pattern(self.path)

    def methods(self) -> Tuple[str, ...]:
        """Every method this route answers."""
        if self.method is None:
            return ALL_METHODS
        if self.method == "GET":
            return ("GET", "HEAD")
        return (self.method,)

    def accepts(self, method: str) -> bool:
        return method.upper() in self.methods()

    def match_path(self, path: str) -> Optional[Dict[str, str]]:
        """Captured parameters if ``path`` fits this route, else ``None``."""
        found = self.pattern.match(path if self.wildcard else _normalize(path))
        if found is None:
            return None
        return {name: value or "" for name, value in found.groupdict().items()}


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    First-registered, first-matched router with decorator registration.

        router = Router()

        @router.get("/api/healthz")
        def healthz(request):
            return ok("OK")

        router.add_route("/app/*path", file_server)
    """

    def __init__(self):
        self._routes: List[Route] = []

    @property
    def routes(self) -> List[Route]:
        return list(self._routes)

    def add_route(self, path: str, handler: Handler, method: Optional[str] = None) -> Route:
        """
        Register ``handler`` for ``path``. ``method=None`` accepts any method.

        Raises:
            ValueError: A wildcard segment is not the last one.
        """
        route = Route(path, handler, method)
        self._routes.append(route)
        return route

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        for route in self._routes:
            if route.accepts(method):
                params = route.match_path(path)
                if params is not None:
                    return RouteMatch(route, params)
        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods some route would accept for ``path`` (feeds the Allow header)."""
        allowed = set()
        for route in self._routes:
            if route.match_path(path) is not None:
                allowed.update(route.methods())
        return sorted(allowed)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch ``request``; 405 or 404 when nothing matches."""
        found = self.match(request.method, request.path)
        if found is not None:
            request.path_params = found.params
            return found.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)
        return not_found(f"No route matches {request.path}")

    # ─── Decorators ──────────────────────────────────────────────────────

    def route(self, path: str, method: Optional[str] = None) -> Callable[[Handler], Handler]:
        def register(handler: Handler) -> Handler:
            self.add_route(path, handler, method)
            return handler
        return register

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "GET")

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "POST")

    def put(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT")

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE")

    def patch(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "PATCH")


def _normalize(path: str) -> str:
    """``/api/healthz/`` → ``/api/healthz``; ``/`` stays ``/``."""
    stripped = path.strip("/")
    return "/" + stripped if stripped else "/"
