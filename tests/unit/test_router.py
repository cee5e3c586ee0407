"""
Unit tests for URL router.
"""

import json

import pytest

from chirpy.http.router import Router
from chirpy.http.request import HTTPRequest
from chirpy.http.response import HTTPResponse, ResponseBuilder, HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    return HTTPRequest(method=method, path=path)


def echo_handler(request: HTTPRequest) -> HTTPResponse:
    return ResponseBuilder().json({"path": request.path, "params": request.path_params}).build()


class TestRouter:
    """Tests for Router matching and dispatch."""

    def test_add_route(self):
        router = Router()
        router.add_route("/api/healthz", echo_handler, method="get")

        assert len(router.routes) == 1
        assert router.routes[0].path == "/api/healthz"
        assert router.routes[0].method == "GET"

    def test_match_static_path(self):
        router = Router()
        router.add_route("/api/healthz", echo_handler, method="GET")
        router.add_route("/admin/metrics", echo_handler, method="GET")

        match = router.match("GET", "/admin/metrics")

        assert match is not None
        assert match.route.path == "/admin/metrics"
        assert match.params == {}

    def test_trailing_slash_ignored_for_static_routes(self):
        router = Router()
        router.add_route("/api/healthz", echo_handler, method="GET")

        assert router.match("GET", "/api/healthz/") is not None

    def test_match_with_method(self):
        router = Router()
        router.add_route("/admin/reset", echo_handler, method="POST")

        assert router.match("POST", "/admin/reset") is not None
        assert router.match("GET", "/admin/reset") is None

    def test_get_route_answers_head(self):
        router = Router()
        router.add_route("/api/healthz", echo_handler, method="GET")

        assert router.match("HEAD", "/api/healthz") is not None

    def test_match_dynamic_params(self):
        router = Router()
        router.add_route("/chirps/:id", echo_handler, method="GET")

        match = router.match("GET", "/chirps/42")

        assert match.params == {"id": "42"}
        assert router.match("GET", "/chirps/42/likes") is None

    def test_match_wildcard(self):
        router = Router()
        router.add_route("/app/*path", echo_handler)

        assert router.match("GET", "/app/assets/logo.png").params == {"path": "assets/logo.png"}
        assert router.match("GET", "/app/assets/").params == {"path": "assets/"}

    def test_wildcard_matches_bare_prefix(self):
        router = Router()
        router.add_route("/app/*path", echo_handler)

        assert router.match("GET", "/app").params == {"path": ""}
        assert router.match("GET", "/app/").params == {"path": ""}

    def test_wildcard_does_not_match_longer_prefix(self):
        router = Router()
        router.add_route("/app/*path", echo_handler)

        assert router.match("GET", "/apps") is None
        assert router.match("GET", "/api/healthz") is None

    def test_wildcard_any_method(self):
        router = Router()
        router.add_route("/app/*path", echo_handler)

        for method in ("GET", "POST", "DELETE"):
            assert router.match(method, "/app/index.html") is not None

    def test_wildcard_must_be_last(self):
        with pytest.raises(ValueError):
            Router().add_route("/app/*path/more", echo_handler)

    def test_root_route(self):
        router = Router()
        router.add_route("/", echo_handler, method="GET")

        assert router.match("GET", "/") is not None
        assert router.match("GET", "/other") is None

    def test_first_registered_wins(self):
        router = Router()
        router.add_route("/chirps/latest", lambda r: ResponseBuilder().text("latest").build(), method="GET")
        router.add_route("/chirps/:id", echo_handler, method="GET")

        assert router.handle(make_request("GET", "/chirps/latest")).body == b"latest"

    def test_get_allowed_methods(self):
        router = Router()
        router.add_route("/admin/metrics", echo_handler, method="GET")
        router.add_route("/admin/metrics", echo_handler, method="DELETE")

        assert router.get_allowed_methods("/admin/metrics") == ["DELETE", "GET", "HEAD"]
        assert router.get_allowed_methods("/nowhere") == []

    def test_handle_success(self):
        router = Router()
        router.add_route("/chirps/:id", echo_handler, method="GET")

        response = router.handle(make_request("GET", "/chirps/7"))

        assert response.status == HTTPStatus.OK
        assert json.loads(response.body) == {"path": "/chirps/7", "params": {"id": "7"}}

    def test_handle_not_found(self):
        router = Router()
        router.add_route("/api/healthz", echo_handler, method="GET")

        response = router.handle(make_request("GET", "/api/nope"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert "error" in json.loads(response.body)

    def test_handle_method_not_allowed(self):
        router = Router()
        router.add_route("/api/validate_chirp", echo_handler, method="POST")

        response = router.handle(make_request("GET", "/api/validate_chirp"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "POST"


class TestRouterDecorators:
    """Tests for decorator-style route registration."""

    def test_get_decorator(self):
        router = Router()

        @router.get("/api/healthz")
        def healthz(request):
            return ResponseBuilder().text("OK").build()

        assert router.routes[0].method == "GET"
        assert router.handle(make_request("GET", "/api/healthz")).body == b"OK"

    def test_post_decorator(self):
        router = Router()

        @router.post("/admin/reset")
        def reset(request):
            return ResponseBuilder().build()

        assert router.routes[0].method == "POST"

    def test_decorator_returns_handler_unchanged(self):
        router = Router()

        def handler(request):
            return ResponseBuilder().build()

        assert router.route("/x")(handler) is handler
