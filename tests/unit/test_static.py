"""
Unit tests for the file server.
"""

import os
from pathlib import Path

import pytest

from chirpy.handlers.static import StaticFileHandler

from conftest import make_request


@pytest.fixture
def files(site_root: Path) -> StaticFileHandler:
    return StaticFileHandler(str(site_root), url_prefix="/app")


def get(handler: StaticFileHandler, path: str, **headers):
    return handler.handle(make_request("GET", path, headers=headers))


class TestStaticFileHandler:

    def test_root_serves_index(self, files):
        response = get(files, "/app/")

        assert response.status == 200
        assert response.body == b"<html><body>Welcome to Chirpy</body></html>"
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"

    def test_serves_nested_file(self, files):
        response = get(files, "/app/assets/logo.png")

        assert response.status == 200
        assert response.body.startswith(b"\x89PNG")
        assert response.headers["Content-Type"] == "image/png"
        assert "ETag" in response.headers
        assert "Last-Modified" in response.headers
        assert response.headers["Cache-Control"] == "public, max-age=3600"

    def test_uses_path_param_when_routed(self, files):
        request = make_request("GET", "/app/assets/style.css")
        request.path_params = {"path": "assets/style.css"}

        response = files.handle(request)

        assert response.status == 200
        assert response.body == b"body { color: #333; }"

    def test_missing_file(self, files):
        response = get(files, "/app/nope.txt")

        assert response.status == 404

    def test_etag_not_modified(self, files):
        etag = get(files, "/app/assets/style.css").headers["ETag"]

        response = get(files, "/app/assets/style.css", **{"If-None-Match": etag})

        assert response.status == 304
        assert response.body == b""

    def test_etag_list_and_star(self, files):
        etag = get(files, "/app/assets/style.css").headers["ETag"]

        assert get(files, "/app/assets/style.css", **{"If-None-Match": f'"other", {etag}'}).status == 304
        assert get(files, "/app/assets/style.css", **{"If-None-Match": "*"}).status == 304
        assert get(files, "/app/assets/style.css", **{"If-None-Match": '"stale"'}).status == 200

    def test_directory_redirects_to_slash(self, files):
        response = get(files, "/app/assets")

        assert response.status == 301
        assert response.headers["Location"] == "/app/assets/"

    def test_directory_listing(self, files):
        response = get(files, "/app/assets/")

        assert response.status == 200
        assert b'<a href="logo.png">logo.png</a>' in response.body
        assert b'<a href="style.css">style.css</a>' in response.body

    def test_listing_escapes_names(self, site_root, files):
        (site_root / "assets" / "<b>.txt").write_text("x")

        response = get(files, "/app/assets/")

        assert b"&lt;b&gt;.txt" in response.body
        assert b"<b>.txt" not in response.body

    def test_listing_disabled(self, site_root):
        handler = StaticFileHandler(str(site_root), enable_directory_listing=False)

        assert get(handler, "/app/assets/").status == 403
        assert get(handler, "/app/").status == 200

    def test_escape_outside_root(self, files):
        assert get(files, "/app/../../etc/passwd").status == 403

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_out_of_root(self, site_root, tmp_path_factory, files):
        outside = tmp_path_factory.mktemp("outside")
        (outside / "secret.txt").write_text("secret")
        (site_root / "leak").symlink_to(outside / "secret.txt")

        assert get(files, "/app/leak").status == 403

    def test_root_must_exist(self, tmp_path):
        with pytest.raises(ValueError):
            StaticFileHandler(str(tmp_path / "missing"))
