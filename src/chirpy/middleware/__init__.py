"""
Request/response middleware.

    base.py       Middleware, MiddlewarePipeline, FunctionMiddleware
    logging.py    LoggingMiddleware (access log on "chirpy.access")
    metrics.py    MetricsMiddleware (feeds the HitCounter)
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    FunctionMiddleware,
    NextHandler,
    function_middleware,
)
from .logging import LoggingMiddleware
from .metrics import MetricsMiddleware

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "NextHandler",
    "function_middleware",
    "LoggingMiddleware",
    "MetricsMiddleware",
]
