"""
Admin endpoints backed by the HitCounter.

    GET  /admin/metrics   HTML page with the current hit count
    POST /admin/reset     set the count back to 0
"""

import logging

from ..core.hit_counter import HitCounter
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, HTTPStatus


logger = logging.getLogger(__name__)

METRICS_TEMPLATE = """<html>
  <body>
    <h1>Welcome, Chirpy Admin</h1>
    <p>Chirpy has been visited {hits} times!</p>
  </body>
</html>"""


class AdminHandler:
    """
    Reads and resets one HitCounter.

        admin = AdminHandler(hits)
        router.get("/admin/metrics", admin.metrics)
        router.post("/admin/reset", admin.reset)
    """

    def __init__(self, hits: HitCounter):
        self.hits = hits

    def metrics(self, request: HTTPRequest) -> HTTPResponse:
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .html(METRICS_TEMPLATE.format(hits=self.hits.read()))
            .no_cache()
            .build())

    def reset(self, request: HTTPRequest) -> HTTPResponse:
        self.hits.reset()
        logger.info("Hit counter reset")
        return ResponseBuilder().status(HTTPStatus.OK).build()
