"""
Request counting middleware.

Counts every request that reaches the wrapped handler, then delegates.
The count happens before the handler runs, so a 404 from the file server,
or a handler that raises, is still counted exactly once.
"""

import logging
from typing import TYPE_CHECKING

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse

if TYPE_CHECKING:
    from ..core.hit_counter import HitCounter


logger = logging.getLogger(__name__)


class MetricsMiddleware(Middleware):
    """Increments ``counter`` once per request."""

    def __init__(self, counter: "HitCounter"):
        self.counter = counter

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        logger.debug("metrics middleware hit: %s", request.path)
        self.counter.increment()
        return next(request)
