"""
=============================================================================
MIDDLEWARE
=============================================================================

A middleware is a callable ``(request, next) -> response`` that sits
between the server and a handler. It may act before calling ``next``,
after it, or instead of it.

    pipeline.add(LoggingMiddleware())     # first added = outermost
    pipeline.add(MetricsMiddleware(hits))

        request ──► Logging ──► Metrics ──► handler
                                              │
        response ◄── Logging ◄── Metrics ◄────┘

The pipeline is plain function composition: ``wrap(handler)`` returns a
new handler, so the result can be wrapped again, registered on a router or
called directly in a test.

=============================================================================
"""

from abc import ABC, abstractmethod
from functools import partial, reduce
from typing import Callable, Iterator, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                start = time.monotonic()
                response = next(request)
                response.set_header("X-Elapsed", f"{time.monotonic() - start:.3f}")
                return response

    Not calling ``next`` short-circuits the chain.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered middleware list that composes around a final handler."""

    def __init__(self):
        self._stack: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._stack.append(middleware)
        logger.debug("Added middleware: %s", middleware.name)
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for item in middleware:
            self.add(item)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Compose every middleware around ``handler``.

        ``[A, B]`` around ``h`` gives ``A(B(h))``: A sees the request first
        and the response last.
        """
        return reduce(
            lambda inner, middleware: partial(middleware, next=inner),
            reversed(self._stack),
            handler,
        )

    def __len__(self) -> int:
        return len(self._stack)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._stack)


class FunctionMiddleware(Middleware):
    """A plain ``(request, next) -> response`` function used as middleware."""

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse]
) -> FunctionMiddleware:
    """Decorator form of FunctionMiddleware."""
    return FunctionMiddleware(func)
