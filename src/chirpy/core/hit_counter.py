"""
=============================================================================
HIT COUNTER
=============================================================================

Counts requests served by the file server under ``/app/``.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET /app/...          ──► hits.wrap(file_server) ──► increment()   │
    │   GET /admin/metrics    ──► read()                                   │
    │   POST /admin/reset     ──► reset()                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Requests are served by many worker threads at once, and ``count += 1`` is
a read, an add and a store. Two threads can both read 41 and both store 42.
Every operation therefore holds a ``threading.Lock``:

    Thread A                      Thread B
    ────────                      ────────
    with lock:                    with lock:  (waits)
        count = 41 + 1
                                      count = 42 + 1

One HitCounter is created per application and handed to the handlers that
need it. Separate applications (and separate tests) never share a count.

=============================================================================
"""

import threading
from typing import Callable

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..middleware.base import MiddlewarePipeline
from ..middleware.metrics import MetricsMiddleware


Handler = Callable[[HTTPRequest], HTTPResponse]


class HitCounter:
    """
    Thread-safe request counter.

        hits = HitCounter()
        counted = hits.wrap(file_server)
        counted(request)
        hits.read()    # 1
        hits.reset()
    """

    def __init__(self):
        self._count = 0
        self._lock = threading.Lock()

    def increment(self) -> None:
        with self._lock:
            self._count += 1

    def read(self) -> int:
        with self._lock:
            return self._count

    def reset(self) -> None:
        with self._lock:
            self._count = 0

    def wrap(self, handler: Handler) -> Handler:
        """
        Return a handler that counts one hit and then calls ``handler``.

        The hit is recorded before ``handler`` runs, whatever it returns or
        raises.
        """
        return MiddlewarePipeline().add(MetricsMiddleware(self)).wrap(handler)

    def __repr__(self) -> str:
        return f"HitCounter(count={self.read()})"
